import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Sequence
from .errors import DuplicateUnitError, EmptyTargetsError, UnknownEntityError
from .model import (
    Command,
    CommandType,
    ConnectionStatus,
    Coordinates,
    MeshNode,
    Message,
    MessagePriority,
    NetworkMode,
    Operator,
    Snapshot,
    Unit,
)
from .topology import build_mesh

logger = logging.getLogger(__name__)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def new_id(prefix: str) -> str:
    """Process-unique id such as "msg-1f3a9c0d2b4e"."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"

class EntityStore:
    """Owns units, messages and commands plus the mesh graph derived from the units.

    Every read-modify-write happens under one re-entrant lock. The unit list and
    mesh graph are only ever replaced together (see commit_units), so readers
    never observe a half-applied tick.
    """

    def __init__(self,
                 units: Iterable[Unit] = (),
                 messages: Iterable[Message] = (),
                 commands: Iterable[Command] = (),
                 network: Optional[NetworkMode] = None,
                 operator: Optional[Operator] = None,
                 clock: Callable[[], datetime] = utcnow):
        self._lock = threading.RLock()
        self.network = network or NetworkMode()
        self.operator = operator or Operator()
        self._clock = clock
        self._units: List[Unit] = []
        self._mesh: List[MeshNode] = []
        self._messages: List[Message] = list(messages)
        self._commands: List[Command] = list(commands)
        self._tick = 0
        for u in units:
            self._append_unit(u)
        self._mesh = build_mesh(self._units)

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Hold the store lock for a multi-step read-modify-write."""
        with self._lock:
            yield self

    # -- reads ---------------------------------------------------------------

    @property
    def units(self) -> tuple:
        with self._lock:
            return tuple(self._units)

    @property
    def mesh(self) -> tuple:
        with self._lock:
            return tuple(self._mesh)

    @property
    def messages(self) -> tuple:
        with self._lock:
            return tuple(self._messages)

    @property
    def commands(self) -> tuple:
        with self._lock:
            return tuple(self._commands)

    @property
    def tick(self) -> int:
        return self._tick

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        with self._lock:
            return next((u for u in self._units if u.id == unit_id), None)

    def snapshot(self) -> Snapshot:
        """Latest committed state."""
        with self._lock:
            return Snapshot(
                units=tuple(self._units),
                mesh=tuple(self._mesh),
                messages=tuple(self._messages),
                commands=tuple(self._commands),
                network_status=self.network.status,
                tick=self._tick,
            )

    # -- simulation ----------------------------------------------------------

    def commit_units(self, units: Sequence[Unit], mesh: Sequence[MeshNode]) -> None:
        """Swap in a new unit list together with the mesh built from it."""
        with self._lock:
            self._units = list(units)
            self._mesh = list(mesh)
            self._tick += 1

    # -- operations ----------------------------------------------------------

    def _append_unit(self, unit: Unit) -> Unit:
        if any(u.id == unit.id for u in self._units):
            raise DuplicateUnitError(unit.id)
        unit = unit.with_clamped_status()
        self._units.append(unit)
        return unit

    def add_unit(self, unit: Unit) -> Unit:
        """Deploy a unit; the mesh graph is rebuilt so it shows up at once."""
        with self._lock:
            stored = self._append_unit(unit)
            self._mesh = build_mesh(self._units)
        logger.info("[EntityStore] Deployed unit %s (%s)", stored.callsign, stored.type.value)
        return stored

    def send_message(self, content: str,
                     priority: MessagePriority = MessagePriority.MEDIUM) -> Message:
        """Stamp a new message from the local operator and prepend it to the log."""
        msg = Message(
            id=new_id("msg"),
            sender_id=self.operator.id,
            sender_callsign=self.operator.callsign,
            content=content,
            timestamp=self._clock(),
            priority=priority,
            acknowledged=False,
            delivered_to=frozenset(),
        )
        with self._lock:
            self._messages.insert(0, msg)
        logger.debug("[EntityStore] Message %s queued (%s)", msg.id, priority.value)
        return msg

    def issue_command(self,
                      command_type: CommandType,
                      target_unit_ids: Iterable[str],
                      description: str,
                      coordinates: Optional[Coordinates] = None,
                      expires_at: Optional[datetime] = None) -> Command:
        """Stamp a new command from the local operator and prepend it to the log."""
        targets = frozenset(target_unit_ids)
        if not targets:
            raise EmptyTargetsError("a command needs at least one target unit")
        cmd = Command(
            id=new_id("cmd"),
            type=command_type,
            issuer_id=self.operator.id,
            issuer_callsign=self.operator.callsign,
            target_unit_ids=targets,
            description=description,
            timestamp=self._clock(),
            coordinates=coordinates,
            expires_at=expires_at,
            acknowledged=False,
        )
        with self._lock:
            self._commands.insert(0, cmd)
        logger.info("[EntityStore] Command %s %s -> %s", cmd.id, command_type.value, sorted(targets))
        return cmd

    def toggle_network_mode(self) -> ConnectionStatus:
        with self._lock:
            status = self.network.toggle()
        logger.info("[EntityStore] Network mode now %s", status.value)
        return status

    def acknowledge_message(self, message_id: str) -> Message:
        with self._lock:
            for i, m in enumerate(self._messages):
                if m.id == message_id:
                    self._messages[i] = replace(m, acknowledged=True)
                    return self._messages[i]
        raise UnknownEntityError("message", message_id)

    def acknowledge_command(self, command_id: str) -> Command:
        with self._lock:
            for i, c in enumerate(self._commands):
                if c.id == command_id:
                    self._commands[i] = replace(c, acknowledged=True)
                    return self._commands[i]
        raise UnknownEntityError("command", command_id)
