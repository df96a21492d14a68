from typing import List, Tuple
from meshsim.model import Event

class EventLog:
    """Append-only record of ticks and store operations, read by offset."""

    def __init__(self):
        self._log: List[Event] = []

    def append(self, evt: Event) -> int:
        """Record one event and return its offset."""
        self._log.append(evt)
        return len(self._log) - 1

    def append_many(self, evts: List[Event]) -> Tuple[int, int]:
        """Record a tick's events; returns (first_offset, last_offset)."""
        start = len(self._log)
        self._log.extend(evts)
        return start, len(self._log) - 1

    def since(self, offset: int, limit: int = 1000) -> Tuple[List[Event], int]:
        """Page of at most limit events from offset, plus the offset to poll next.

        A client that keeps passing the returned offset sees every event once.
        """
        offset = max(0, offset)
        page = self._log[offset: offset + limit]
        return page, offset + len(page)

    def __len__(self) -> int:
        return len(self._log)
