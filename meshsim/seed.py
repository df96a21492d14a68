from datetime import datetime, timedelta
from typing import List, Optional
from .model import (
    Command,
    CommandType,
    ConnectionStatus,
    Coordinates,
    Message,
    MessagePriority,
    NetworkMode,
    Operator,
    Unit,
    UnitStatus,
    UnitType,
)
from .store import EntityStore, utcnow

def make_units(now: datetime) -> List[Unit]:
    """Initial deployment around the operating area."""
    return [
        Unit(id="unit-1", callsign="Alpha-1", type=UnitType.COMMAND,
             position=Coordinates(28.218, 94.727),
             status=UnitStatus(personnel=45, condition=92, ammo=78, fuel=85),
             last_update=now, connection_status=ConnectionStatus.ONLINE),
        Unit(id="unit-2", callsign="Bravo-2", type=UnitType.INFANTRY,
             position=Coordinates(28.224, 94.735),
             status=UnitStatus(personnel=32, condition=65, ammo=42, fuel=50),
             last_update=now - timedelta(minutes=20), connection_status=ConnectionStatus.MESH_ONLY),
        Unit(id="unit-3", callsign="Charlie-3", type=UnitType.ARMOR,
             position=Coordinates(28.210, 94.720),
             status=UnitStatus(personnel=18, condition=88, ammo=75, fuel=30),
             last_update=now - timedelta(minutes=5), connection_status=ConnectionStatus.MESH_ONLY),
        Unit(id="unit-4", callsign="Delta-4", type=UnitType.SUPPORT,
             position=Coordinates(28.205, 94.738),
             status=UnitStatus(personnel=24, condition=95, ammo=90, fuel=85),
             last_update=now - timedelta(hours=2), connection_status=ConnectionStatus.OFFLINE),
        Unit(id="unit-5", callsign="Echo-5", type=UnitType.AIR,
             position=Coordinates(28.230, 94.710),
             status=UnitStatus(personnel=8, condition=75, ammo=60, fuel=45),
             last_update=now - timedelta(minutes=2), connection_status=ConnectionStatus.DEGRADED),
    ]

def make_messages(now: datetime) -> List[Message]:
    # most recent first, matching the send order of the log
    return [
        Message(id="msg-2", sender_id="unit-3", sender_callsign="Charlie-3",
                content="Enemy movement detected at north ridge.",
                timestamp=now - timedelta(minutes=5), priority=MessagePriority.CRITICAL,
                acknowledged=False, delivered_to=frozenset({"unit-1", "unit-2"})),
        Message(id="msg-1", sender_id="unit-1", sender_callsign="Alpha-1",
                content="All units regroup at checkpoint Bravo.",
                timestamp=now - timedelta(minutes=10), priority=MessagePriority.HIGH,
                acknowledged=True, delivered_to=frozenset({"unit-2", "unit-3", "unit-5"})),
        Message(id="msg-3", sender_id="unit-2", sender_callsign="Bravo-2",
                content="Supply drop received. Ammo restocked.",
                timestamp=now - timedelta(minutes=15), priority=MessagePriority.MEDIUM,
                acknowledged=True, delivered_to=frozenset({"unit-1"})),
    ]

def make_commands(now: datetime) -> List[Command]:
    return [
        Command(id="cmd-2", type=CommandType.ENGAGE, issuer_id="unit-1", issuer_callsign="Alpha-1",
                target_unit_ids=frozenset({"unit-5"}),
                description="Provide air support at marked location",
                coordinates=Coordinates(28.215, 94.722),
                timestamp=now - timedelta(minutes=5)),
        Command(id="cmd-1", type=CommandType.MOVE, issuer_id="unit-1", issuer_callsign="Alpha-1",
                target_unit_ids=frozenset({"unit-2", "unit-3"}),
                description="Proceed to hill 42 and establish defensive position",
                coordinates=Coordinates(28.220, 94.740),
                timestamp=now - timedelta(minutes=15),
                expires_at=now + timedelta(hours=1),
                acknowledged=True),
        Command(id="cmd-3", type=CommandType.RECONNECT, issuer_id="unit-1", issuer_callsign="Alpha-1",
                target_unit_ids=frozenset({"unit-4"}),
                description="Restore communications with base",
                timestamp=now - timedelta(minutes=30)),
    ]

def make_store(network: Optional[NetworkMode] = None,
               operator: Optional[Operator] = None,
               now: Optional[datetime] = None) -> EntityStore:
    """Build a store holding the initial scenario."""
    now = now or utcnow()
    return EntityStore(
        units=make_units(now),
        messages=make_messages(now),
        commands=make_commands(now),
        network=network,
        operator=operator,
    )
