from typing import List, Tuple
from skirmish.model import BattleState, LogEntry


class EventLog:
    """Chronological journal of a battle's log, oldest first.

    BattleState.log is capped and newest-first; this keeps every entry the
    runner has seen so clients can page through it by offset.
    """

    def __init__(self):
        self._log: List[LogEntry] = []
        self._last_tick = -1

    def __len__(self) -> int:
        return len(self._log)

    def record(self, state: BattleState) -> Tuple[int, int]:
        """Copy entries newer than the last recorded tick; return (start, count)."""
        fresh = [e for e in state.log if e.tick > self._last_tick]
        fresh.reverse()
        start = len(self._log)
        self._log.extend(fresh)
        self._last_tick = max(self._last_tick, state.tick_count)
        return start, len(fresh)

    def for_tick(self, tick: int) -> List[LogEntry]:
        return [e for e in self._log if e.tick == tick]

    def since(self, offset: int, limit: int = 1000) -> Tuple[List[LogEntry], int]:
        """Return entries starting from offset, up to limit, and the next offset."""
        offset = max(0, offset)
        chunk = self._log[offset: offset + limit]
        return chunk, offset + len(chunk)
