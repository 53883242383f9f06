"""Pipeline tests for the monitoring session."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import pytest

from models.alerts import AlertRequest
from models.readings import AlertClass, HistoryEntry, Reading, Severity, Thresholds
from services.alert_engine import AlertEngine, DedupStrategy
from services.errors import NotifyError, RateLimitedError
from services.session import MonitorSession
from services.supervisor import ConnectionState


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StubNotifier:
    def __init__(self) -> None:
        self.sent: List[AlertRequest] = []
        self.error: Optional[Exception] = None

    async def send(self, request: AlertRequest) -> None:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        self.sent.append(request)


class RecordingDisplay:
    def __init__(self) -> None:
        self.readings: List[Tuple[Reading, Severity, Sequence[HistoryEntry]]] = []
        self.statuses: List[Tuple[ConnectionState, Optional[str]]] = []

    def show_reading(self, reading, severity, history) -> None:
        self.readings.append((reading, severity, history))

    def show_status(self, state, diagnostic) -> None:
        self.statuses.append((state, diagnostic))


@pytest.fixture()
def notifier() -> StubNotifier:
    return StubNotifier()


@pytest.fixture()
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture()
def session(transports, scheduler, notifier, display) -> MonitorSession:
    return MonitorSession(
        transport_factory=transports,
        notifier=notifier,
        display=display,
        engine=AlertEngine(strategy=DedupStrategy.state_change),
        scheduler=scheduler,
    )


def _connect(session: MonitorSession, transports):
    session.start("192.168.1.100", 81)
    listener = transports.latest.listener
    listener.on_open()
    return listener


def test_hazard_reading_end_to_end(session, transports, notifier, display) -> None:
    async def scenario() -> None:
        listener = _connect(session, transports)
        listener.on_message('{"waterLevel": 85}')
        await session.drain()

    asyncio.run(scenario())

    reading, severity, history = display.readings[-1]
    assert reading.value == 85.0
    assert severity is Severity.HAZARD
    assert severity.label == "FLOOD HAZARD!"
    assert [entry.value for entry in history] == [85.0]
    assert len(notifier.sent) == 1
    assert notifier.sent[0].status == "FLOOD_HAZARD"
    assert session.engine.memory.last_class is AlertClass.FLOOD_HAZARD
    assert display.statuses[-1] == (ConnectionState.connected, None)


def test_safe_and_moderate_readings_only_display(session, transports, notifier, display) -> None:
    async def scenario() -> None:
        listener = _connect(session, transports)
        listener.on_message("20")
        listener.on_message("55")
        await session.drain()

    asyncio.run(scenario())

    assert [severity for _, severity, _ in display.readings] == [Severity.SAFE, Severity.MODERATE]
    assert notifier.sent == []


def test_failed_delivery_leaves_alert_eligible(session, notifier, caplog) -> None:
    async def scenario() -> None:
        notifier.error = NotifyError("relay down")
        session.handle_reading(Reading(value=90.0, observed_at=_now()))
        await session.drain()
        assert session.engine.memory.last_class is None

        notifier.error = None
        assert session.handle_reading(Reading(value=91.0, observed_at=_now())) is not None
        await session.drain()

    with caplog.at_level(logging.ERROR, logger="services.session"):
        asyncio.run(scenario())

    assert len(notifier.sent) == 1
    assert notifier.sent[0].reading.value == 91.0
    assert any("Alert delivery failed" in record.message for record in caplog.records)


def test_rate_limited_delivery_is_informational(session, notifier, caplog) -> None:
    async def scenario() -> None:
        notifier.error = RateLimitedError("Alert sent recently.")
        session.handle_reading(Reading(value=72.0, observed_at=_now()))
        await session.drain()

    with caplog.at_level(logging.INFO, logger="services.session"):
        asyncio.run(scenario())

    assert session.engine.memory.last_class is None
    levels = {record.levelno for record in caplog.records if record.name == "services.session"}
    assert logging.ERROR not in levels


def test_unexpected_notifier_error_is_logged_and_class_stays_eligible(session, notifier, caplog) -> None:
    async def scenario() -> None:
        notifier.error = RuntimeError("notifier bug")
        session.handle_reading(Reading(value=90.0, observed_at=_now()))
        await session.drain()

        notifier.error = None
        assert session.handle_reading(Reading(value=91.0, observed_at=_now())) is not None
        await session.drain()

    with caplog.at_level(logging.ERROR, logger="services.session"):
        asyncio.run(scenario())

    failures = [record for record in caplog.records if record.message == "Alert delivery failed"]
    assert len(failures) == 1
    assert failures[0].exc_info is not None
    assert [request.reading.value for request in notifier.sent] == [91.0]


def test_one_dispatch_in_flight_per_class(session, notifier) -> None:
    async def scenario() -> None:
        first = session.handle_reading(Reading(value=85.0, observed_at=_now()))
        second = session.handle_reading(Reading(value=86.0, observed_at=_now()))
        assert first is not None
        assert second is None
        await session.drain()

    asyncio.run(scenario())

    assert len(notifier.sent) == 1


def test_state_change_sequence_through_session(session, notifier) -> None:
    async def scenario() -> None:
        for value in (72.0, 73.0, 85.0, 86.0, 71.0):
            session.handle_reading(Reading(value=value, observed_at=_now()))
            await session.drain()

    asyncio.run(scenario())

    assert [request.reading.value for request in notifier.sent] == [72.0, 85.0, 71.0]


def test_disabling_alerts_suppresses_and_reenabling_resets(session, notifier) -> None:
    async def scenario() -> None:
        session.handle_reading(Reading(value=85.0, observed_at=_now()))
        await session.drain()

        session.set_alerts_enabled(False)
        assert session.handle_reading(Reading(value=86.0, observed_at=_now())) is None

        session.set_alerts_enabled(True)
        assert session.engine.memory.last_class is None
        session.handle_reading(Reading(value=87.0, observed_at=_now()))
        await session.drain()

    asyncio.run(scenario())

    assert [request.reading.value for request in notifier.sent] == [85.0, 87.0]


def test_message_threshold_override_applies_to_one_reading(session, transports, display) -> None:
    async def scenario() -> None:
        listener = _connect(session, transports)
        listener.on_message('{"level": 60, "hazardThreshold": 55}')
        listener.on_message('{"level": 60}')
        await session.drain()

    asyncio.run(scenario())

    assert [severity for _, severity, _ in display.readings] == [Severity.HAZARD, Severity.MODERATE]
    assert session.thresholds == Thresholds()


def test_set_thresholds(session) -> None:
    session.set_thresholds(60.0, 75.0)
    assert session.thresholds == Thresholds(warning=60.0, hazard=75.0)

    with pytest.raises(ValueError):
        session.set_thresholds(float("nan"), 75.0)
    assert session.thresholds == Thresholds(warning=60.0, hazard=75.0)


def test_control_surface_drives_supervisor(session, transports, scheduler) -> None:
    session.start("192.168.1.100", 81)
    assert session.state is ConnectionState.connecting

    session.stop()

    assert session.state is ConnectionState.idle
    assert transports.latest.closed is True
    assert scheduler.pending == []
