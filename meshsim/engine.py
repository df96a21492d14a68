import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional
from .model import Coordinates, Event, Unit, UnitStatus
from .rng import DRNG
from .store import EntityStore, utcnow
from .topology import build_mesh, mesh_links

logger = logging.getLogger(__name__)

# Max position offset per tick, in degrees
POSITION_JITTER = 0.001

# field -> (probability of changing on a tick, max delta magnitude)
STATUS_DRIFT = {
    "personnel": (0.3, 2.5),
    "ammo": (0.3, 1.5),
    "fuel": (0.2, 2.0),
}

# Drifted resources never show as empty
STATUS_MIN = 1.0
STATUS_MAX = 100.0

class Engine:
    """Seeded simulation engine advancing an EntityStore one tick at a time."""

    def __init__(self, seed: int, store: EntityStore):
        self.store = store
        self._rng = DRNG(seed)

    def _move(self, u: Unit) -> Coordinates:
        """Random walk, applied to every unit whatever its link state."""
        return Coordinates(
            lat=u.position.lat + self._rng.jitter(POSITION_JITTER),
            lng=u.position.lng + self._rng.jitter(POSITION_JITTER),
        )

    def _drift(self, status: UnitStatus) -> UnitStatus:
        """Randomly nudge consumable resources, then clamp them."""
        values = {
            "personnel": status.personnel,
            "condition": status.condition,
            "ammo": status.ammo,
            "fuel": status.fuel,
        }
        for name, (p, magnitude) in STATUS_DRIFT.items():
            if self._rng.bernoulli(p):
                values[name] += self._rng.jitter(magnitude)
        return UnitStatus(**values).clamped(STATUS_MIN, STATUS_MAX)

    def _advance(self, u: Unit, now: datetime) -> Unit:
        position = self._move(u)
        if u.is_offline:
            # last known status and timestamp stay frozen
            return replace(u, position=position)
        return replace(u, position=position, status=self._drift(u.status), last_update=now)

    def step(self, now: Optional[datetime] = None) -> List[Event]:
        """Advance the simulation by one tick and return the tick event."""
        now = now or utcnow()
        with self.store.transaction():
            units = [self._advance(u, now) for u in self.store.units]
            mesh = build_mesh(units)
            self.store.commit_units(units, mesh)
            tick = self.store.tick

        active = sum(1 for n in mesh if n.is_active)
        links = mesh_links(mesh)
        logger.debug("[Engine] Tick %d: %d/%d nodes active, %d links", tick, active, len(mesh), len(links))
        return [Event("Tick", int(now.timestamp() * 1000),
                      {"tick": tick, "units": len(units), "active": active,
                       "links": [list(pair) for pair in links]})]

    def snapshot(self):
        """Return current state."""
        return self.store.snapshot()
