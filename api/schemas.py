from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from meshsim.model import (
    CommandType,
    ConnectionStatus,
    Coordinates,
    MessagePriority,
    Unit,
    UnitStatus,
    UnitType,
)
from meshsim.store import new_id

class StartRequest(BaseModel):
    """Simulation start request schema."""
    seed: Optional[int] = None
    run_loop: bool = True

class CoordinatesIn(BaseModel):
    lat: float
    lng: float

    def to_model(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)

class UnitStatusIn(BaseModel):
    personnel: float
    condition: float
    ammo: float
    fuel: float

class UnitIn(BaseModel):
    """Unit deployment schema; field names match the unit JSON shape."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None  # assigned by the server when omitted
    callsign: str = Field(min_length=1)
    type: UnitType
    position: CoordinatesIn
    status: UnitStatusIn
    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")
    connection_status: ConnectionStatus = Field(default=ConnectionStatus.ONLINE, alias="connectionStatus")

    def to_model(self, now: datetime) -> Unit:
        return Unit(
            id=self.id or new_id("unit"),
            callsign=self.callsign,
            type=self.type,
            position=self.position.to_model(),
            status=UnitStatus(**self.status.model_dump()),
            last_update=self.last_update or now,
            connection_status=self.connection_status,
        )

class MessageIn(BaseModel):
    """Outgoing message schema."""
    content: str = Field(min_length=1)
    priority: MessagePriority = MessagePriority.MEDIUM
    encrypt: bool = False

class CommandIn(BaseModel):
    """Command issue schema."""
    model_config = ConfigDict(populate_by_name=True)

    type: CommandType
    target_unit_ids: List[str] = Field(alias="targetUnitIds")
    description: str
    coordinates: Optional[CoordinatesIn] = None
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")

class KeyIn(BaseModel):
    password: str = Field(min_length=1)

class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
