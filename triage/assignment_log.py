"""
Capped, newest-first log of confirmed assignments.
Oldest entries are evicted once ASSIGNMENT_LOG_CAP is reached.
"""

import threading
from collections import Counter, deque
from typing import Iterable, Optional

from triage.config import ASSIGNMENT_LOG_CAP
from triage.models import AssignmentLogEntry


class AssignmentLog:
    """Append-only assignment history (newest first)."""

    def __init__(
        self,
        entries: Optional[Iterable[AssignmentLogEntry]] = None,
        cap: int = ASSIGNMENT_LOG_CAP,
    ) -> None:
        self.cap = cap
        # Stored newest first; `entries` is expected in the same order.
        self._entries: deque[AssignmentLogEntry] = deque(list(entries or [])[:cap], maxlen=cap)
        self._lock = threading.Lock()

    def append(self, entry: AssignmentLogEntry) -> None:
        """Add an entry at the front; evicts the oldest beyond the cap."""
        with self._lock:
            self._entries.appendleft(entry)

    def recent(self, limit: Optional[int] = None) -> list[AssignmentLogEntry]:
        """Most recent entries, newest first."""
        with self._lock:
            out = list(self._entries)
        return out if limit is None else out[:limit]

    def __len__(self) -> int:
        return len(self._entries)


def workload_from_log(entries: Iterable[AssignmentLogEntry]) -> dict[int, int]:
    """
    Replay log entries from zero: agent_id -> number of confirmed assignments.
    Only entries still retained in the log are counted.
    """
    return dict(Counter(e.agent_id for e in entries))
