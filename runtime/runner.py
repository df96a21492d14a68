import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Optional
from meshsim.engine import Engine
from meshsim.model import (
    Command,
    CommandType,
    ConnectionStatus,
    Coordinates,
    Event,
    Message,
    MessagePriority,
    Snapshot,
    Unit,
)
from meshsim.store import EntityStore, utcnow
from .eventlog import EventLog

logger = logging.getLogger(__name__)

def _ts_ms(ts: datetime) -> int:
    return int(ts.timestamp() * 1000)

class TickRunner:
    """Async driver that runs the engine on a fixed tick cadence.

    Ticks run one after another in a single task, so they never overlap.
    Store operations go through the runner so they are recorded in the event log.
    """

    def __init__(self, engine: Engine, tick_ms: int = 5000):
        self.engine = engine
        self.tick_ms = tick_ms
        self.sleep_s = tick_ms / 1000.0
        self.events = EventLog()
        self._task: asyncio.Task | None = None

    @property
    def store(self) -> EntityStore:
        return self.engine.store

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start the tick loop."""
        if self._task:
            return
        logger.info("[TickRunner] Starting, tick every %d ms", self.tick_ms)
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the tick loop gracefully."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[TickRunner] Stopped")

    async def _loop(self):
        """Main tick loop - step engine, log events, wait for the next period."""
        while True:
            try:
                self.tick_once()
            except Exception:
                logger.exception("[TickRunner] Tick failed, loop stopped")
                raise
            await asyncio.sleep(self.sleep_s)

    def tick_once(self, now: Optional[datetime] = None) -> List[Event]:
        """Run a single tick right away."""
        evts: List[Event] = self.engine.step(now)
        self.events.append_many(evts)
        return evts

    async def snapshot(self) -> Snapshot:
        """Get the last committed state."""
        return self.engine.snapshot()

    def add_unit(self, unit: Unit) -> Unit:
        stored = self.store.add_unit(unit)
        self.events.append(Event("UnitDeployed", _ts_ms(stored.last_update),
                                 {"unit_id": stored.id, "callsign": stored.callsign,
                                  "type": stored.type.value}))
        return stored

    def send_message(self, content: str,
                     priority: MessagePriority = MessagePriority.MEDIUM) -> Message:
        msg = self.store.send_message(content, priority)
        self.events.append(Event("MessageSent", _ts_ms(msg.timestamp),
                                 {"message_id": msg.id, "priority": msg.priority.value}))
        return msg

    def issue_command(self,
                      command_type: CommandType,
                      target_unit_ids: Iterable[str],
                      description: str,
                      coordinates: Optional[Coordinates] = None,
                      expires_at: Optional[datetime] = None) -> Command:
        cmd = self.store.issue_command(command_type, target_unit_ids, description,
                                       coordinates=coordinates, expires_at=expires_at)
        self.events.append(Event("CommandIssued", _ts_ms(cmd.timestamp),
                                 {"command_id": cmd.id, "type": cmd.type.value,
                                  "targets": sorted(cmd.target_unit_ids)}))
        return cmd

    def toggle_network_mode(self) -> ConnectionStatus:
        status = self.store.toggle_network_mode()
        self.events.append(Event("NetworkModeChanged", _ts_ms(utcnow()),
                                 {"status": status.value}))
        return status

    def acknowledge_message(self, message_id: str) -> Message:
        msg = self.store.acknowledge_message(message_id)
        self.events.append(Event("MessageAcknowledged", _ts_ms(utcnow()),
                                 {"message_id": msg.id}))
        return msg

    def acknowledge_command(self, command_id: str) -> Command:
        cmd = self.store.acknowledge_command(command_id)
        self.events.append(Event("CommandAcknowledged", _ts_ms(utcnow()),
                                 {"command_id": cmd.id}))
        return cmd
