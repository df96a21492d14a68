import math
from typing import Dict, List, Sequence, Tuple
from .model import ConnectionStatus, Coordinates, MeshNode, Unit

# Link range in raw coordinate degrees; flat approximation, no geodesic correction
MESH_RANGE = 0.03

SIGNAL_STRENGTH: Dict[ConnectionStatus, int] = {
    ConnectionStatus.ONLINE: 90,
    ConnectionStatus.MESH_ONLY: 70,
    ConnectionStatus.DEGRADED: 40,
    ConnectionStatus.OFFLINE: 0,
}

def distance_2d(a: Coordinates, b: Coordinates) -> float:
    """Planar Euclidean distance over (lat, lng)."""
    dlat = b.lat - a.lat
    dlng = b.lng - a.lng
    return math.sqrt(dlat * dlat + dlng * dlng)

def signal_strength(status: ConnectionStatus) -> int:
    return SIGNAL_STRENGTH[status]

def build_mesh(units: Sequence[Unit]) -> List[MeshNode]:
    """Derive the mesh graph from a unit snapshot.

    One node per unit, in input order. Two active nodes are connected iff
    their distance is below MESH_RANGE; OFFLINE units appear as inactive
    nodes with no connections. Pure: the input is never modified.
    """
    active = [u for u in units if u.connection_status != ConnectionStatus.OFFLINE]
    links: Dict[str, set] = {u.id: set() for u in active}

    for u in active:
        for other in active:
            if other.id == u.id:
                continue
            if distance_2d(u.position, other.position) < MESH_RANGE:
                links[u.id].add(other.id)

    return [
        MeshNode(
            unit_id=u.id,
            callsign=u.callsign,
            position=u.position,
            is_active=u.connection_status != ConnectionStatus.OFFLINE,
            connections=frozenset(links.get(u.id, ())),
            last_seen=u.last_update,
            signal_strength=signal_strength(u.connection_status),
        )
        for u in units
    ]

def mesh_links(nodes: Sequence[MeshNode]) -> List[Tuple[str, str]]:
    """Undirected edge list of a mesh graph, each pair sorted, list sorted."""
    edges = set()
    for n in nodes:
        for other_id in n.connections:
            edges.add(tuple(sorted((n.unit_id, other_id))))
    return sorted(edges)
