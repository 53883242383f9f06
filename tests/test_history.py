"""Unit tests for the rolling history window."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.readings import Reading, Severity
from services.history import HistoryBuffer

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _reading(index: int) -> Reading:
    return Reading(value=float(index), observed_at=START + timedelta(seconds=index))


def test_buffer_keeps_latest_entries_in_arrival_order() -> None:
    buffer = HistoryBuffer()

    for index in range(1, 151):
        buffer.append(_reading(index), Severity.SAFE)

    entries = buffer.snapshot()
    assert len(buffer) == 100
    assert [entry.value for entry in entries] == [float(i) for i in range(51, 151)]
    assert entries[0].timestamp == START + timedelta(seconds=51)
    assert buffer.latest is not None and buffer.latest.value == 150.0


def test_buffer_never_exceeds_capacity() -> None:
    buffer = HistoryBuffer(capacity=3)

    for index in range(10):
        buffer.append(_reading(index), Severity.MODERATE)
        assert len(buffer) <= 3

    assert buffer.capacity == 3


def test_snapshot_is_a_copy() -> None:
    buffer = HistoryBuffer()
    buffer.append(_reading(1), Severity.HAZARD)

    snapshot = buffer.snapshot()
    snapshot.clear()

    assert len(buffer) == 1
    assert buffer.snapshot()[0].severity is Severity.HAZARD


def test_empty_buffer() -> None:
    buffer = HistoryBuffer()

    assert buffer.snapshot() == []
    assert buffer.latest is None


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HistoryBuffer(capacity=0)
