from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional
from enum import Enum

class UnitType(Enum):
    """Kind of field unit"""
    INFANTRY = "INFANTRY"
    ARMOR = "ARMOR"
    AIR = "AIR"
    COMMAND = "COMMAND"
    SUPPORT = "SUPPORT"

class ConnectionStatus(Enum):
    """Link state of a unit (or of the whole simulated network)"""
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    MESH_ONLY = "MESH_ONLY"
    DEGRADED = "DEGRADED"

class MessagePriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

class CommandType(Enum):
    MOVE = "MOVE"
    ENGAGE = "ENGAGE"
    WITHDRAW = "WITHDRAW"
    HOLD = "HOLD"
    RECONNECT = "RECONNECT"

# Order used by NetworkMode.toggle()
NETWORK_MODE_CYCLE: List[ConnectionStatus] = [
    ConnectionStatus.ONLINE,
    ConnectionStatus.MESH_ONLY,
    ConnectionStatus.DEGRADED,
    ConnectionStatus.OFFLINE,
]

def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))

def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None

@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> Dict:
        return {"lat": self.lat, "lng": self.lng}

@dataclass(frozen=True)
class UnitStatus:
    personnel: float
    condition: float  # 0-100
    ammo: float  # 0-100
    fuel: float  # 0-100

    def clamped(self, lo: float = 0.0, hi: float = 100.0) -> "UnitStatus":
        """Return a copy with every field forced into [lo, hi]."""
        return UnitStatus(
            personnel=clamp(self.personnel, lo, hi),
            condition=clamp(self.condition, lo, hi),
            ammo=clamp(self.ammo, lo, hi),
            fuel=clamp(self.fuel, lo, hi),
        )

    def to_dict(self) -> Dict:
        return {
            "personnel": self.personnel,
            "condition": self.condition,
            "ammo": self.ammo,
            "fuel": self.fuel,
        }

@dataclass(frozen=True)
class Unit:
    id: str
    callsign: str
    type: UnitType
    position: Coordinates
    status: UnitStatus
    last_update: datetime
    connection_status: ConnectionStatus

    @property
    def is_offline(self) -> bool:
        return self.connection_status == ConnectionStatus.OFFLINE

    def with_clamped_status(self) -> "Unit":
        return replace(self, status=self.status.clamped())

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "callsign": self.callsign,
            "type": self.type.value,
            "position": self.position.to_dict(),
            "status": self.status.to_dict(),
            "lastUpdate": _iso(self.last_update),
            "connectionStatus": self.connection_status.value,
        }

@dataclass(frozen=True)
class MeshNode:
    """Connectivity record derived from one Unit; rebuilt, never patched."""
    unit_id: str
    callsign: str
    position: Coordinates
    is_active: bool
    connections: FrozenSet[str]  # IDs of units in range
    last_seen: datetime
    signal_strength: int  # 0-100

    def to_dict(self) -> Dict:
        return {
            "unitId": self.unit_id,
            "callsign": self.callsign,
            "position": self.position.to_dict(),
            "isActive": self.is_active,
            "connections": sorted(self.connections),
            "lastSeen": _iso(self.last_seen),
            "signalStrength": self.signal_strength,
        }

@dataclass(frozen=True)
class Message:
    id: str
    sender_id: str
    sender_callsign: str
    content: str  # plaintext or "nonce:ciphertext" envelope
    timestamp: datetime
    priority: MessagePriority = MessagePriority.MEDIUM
    acknowledged: bool = False
    delivered_to: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "senderCallsign": self.sender_callsign,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "priority": self.priority.value,
            "acknowledged": self.acknowledged,
            "deliveredTo": sorted(self.delivered_to),
        }

@dataclass(frozen=True)
class Command:
    id: str
    type: CommandType
    issuer_id: str
    issuer_callsign: str
    target_unit_ids: FrozenSet[str]
    description: str
    timestamp: datetime
    coordinates: Optional[Coordinates] = None
    expires_at: Optional[datetime] = None
    acknowledged: bool = False

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "issuerId": self.issuer_id,
            "issuerCallsign": self.issuer_callsign,
            "targetUnitIds": sorted(self.target_unit_ids),
            "description": self.description,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "timestamp": _iso(self.timestamp),
            "expiresAt": _iso(self.expires_at),
            "acknowledged": self.acknowledged,
        }

@dataclass(frozen=True)
class Operator:
    """Local identity stamped on outgoing messages and commands."""
    id: str = "unit-1"
    callsign: str = "Alpha-1"

class NetworkMode:
    """Simulated network-wide connection mode, owned by one store."""

    def __init__(self, status: ConnectionStatus = ConnectionStatus.MESH_ONLY):
        self.status = status

    def toggle(self) -> ConnectionStatus:
        """Advance to the next mode in the cycle and return it."""
        idx = NETWORK_MODE_CYCLE.index(self.status)
        self.status = NETWORK_MODE_CYCLE[(idx + 1) % len(NETWORK_MODE_CYCLE)]
        return self.status

@dataclass
class Event:
    kind: str
    ts_ms: int
    data: Dict

@dataclass(frozen=True)
class Snapshot:
    """Committed state as seen by readers."""
    units: tuple
    mesh: tuple
    messages: tuple
    commands: tuple
    network_status: ConnectionStatus
    tick: int = 0
