"""Bounded rolling window of recent readings."""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

from models.readings import HistoryEntry, Reading, Severity

DEFAULT_CAPACITY = 100


class HistoryBuffer:
    """Append-only FIFO that evicts the oldest entry once full."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self._entries: Deque[HistoryEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, reading: Reading, severity: Severity) -> HistoryEntry:
        entry = HistoryEntry(
            timestamp=reading.observed_at,
            value=reading.value,
            severity=severity,
        )
        self._entries.append(entry)
        return entry

    def snapshot(self) -> List[HistoryEntry]:
        """Return the entries oldest first."""
        return list(self._entries)

    @property
    def latest(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)
