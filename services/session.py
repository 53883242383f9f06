"""Monitoring session: wires the supervisor, classifier, history and alerts."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable, List, Optional, Protocol, Sequence, Set

from models.alerts import AlertRequest
from models.readings import AlertClass, HistoryEntry, Reading, Severity, Thresholds
from services.alert_engine import AlertEngine
from services.classifier import classify_reading
from services.errors import NotifyError, RateLimitedError
from services.history import HistoryBuffer
from services.supervisor import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_RECONNECT_DELAY,
    ConnectionState,
    ConnectionSupervisor,
    Scheduler,
    Transport,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, request: AlertRequest) -> None:
        """Deliver the alert or raise NotifyError / RateLimitedError."""
        ...


class DisplaySink(Protocol):
    def show_reading(
        self, reading: Reading, severity: Severity, history: Sequence[HistoryEntry]
    ) -> None: ...

    def show_status(self, state: ConnectionState, diagnostic: Optional[str]) -> None: ...


class MonitorSession:
    """One monitored sensor: the control surface plus the reading pipeline.

    All methods run on the event loop thread. Alert dispatch is spawned as a
    task so a slow notifier never holds up incoming readings.
    """

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        notifier: Notifier,
        display: DisplaySink,
        thresholds: Optional[Thresholds] = None,
        engine: Optional[AlertEngine] = None,
        history: Optional[HistoryBuffer] = None,
        alerts_enabled: bool = True,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.notifier = notifier
        self.display = display
        self.thresholds = thresholds or Thresholds()
        self.engine = engine or AlertEngine()
        self.history = history or HistoryBuffer()
        self._alerts_enabled = alerts_enabled
        self._in_flight: Set[AlertClass] = set()
        self._tasks: Set[asyncio.Task[None]] = set()
        self.supervisor = ConnectionSupervisor(
            transport_factory=transport_factory,
            on_reading=self.handle_reading,
            on_status=display.show_status,
            connect_timeout=connect_timeout,
            reconnect_delay=reconnect_delay,
            scheduler=scheduler,
        )

    @property
    def alerts_enabled(self) -> bool:
        return self._alerts_enabled

    @property
    def state(self) -> ConnectionState:
        return self.supervisor.state

    def start(self, host: str, port: int | str) -> None:
        self.supervisor.start(host, port)

    def stop(self) -> None:
        self.supervisor.stop()

    def set_alerts_enabled(self, enabled: bool) -> None:
        if enabled and not self._alerts_enabled:
            self.engine.reset()
        self._alerts_enabled = enabled
        logger.info("Alerts %s", "enabled" if enabled else "disabled")

    def set_thresholds(self, warning: float, hazard: float) -> None:
        if not (math.isfinite(warning) and math.isfinite(hazard)):
            raise ValueError("Thresholds must be finite numbers.")
        if warning >= hazard:
            logger.warning("Warning threshold is not below hazard threshold; hazard takes precedence.")
        self.thresholds = Thresholds(warning=warning, hazard=hazard)

    def handle_reading(self, reading: Reading) -> Optional[AlertRequest]:
        severity = classify_reading(reading, self.thresholds)
        self.history.append(reading, severity)
        self.display.show_reading(reading, severity, self.history.snapshot())

        if not self._alerts_enabled:
            return None
        alert_class = severity.alert_class
        if alert_class is None or alert_class in self._in_flight:
            return None
        request = self.engine.consider(reading, severity)
        if request is None:
            return None

        self._in_flight.add(alert_class)
        task = asyncio.get_running_loop().create_task(self._dispatch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return request

    async def drain(self) -> None:
        """Wait for alert dispatches that are still running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _dispatch(self, request: AlertRequest) -> None:
        extra = {"alert_class": request.status, "value": request.reading.value}
        try:
            await self.notifier.send(request)
        except RateLimitedError as exc:
            logger.info(
                "Alert rate limited by relay",
                extra={**extra, "cooldown_until": exc.cooldown_until},
            )
        except NotifyError as exc:
            logger.error("Alert delivery failed", extra={**extra, "reason": exc})
        except Exception:
            logger.exception("Alert delivery failed", extra=extra)
        else:
            self.engine.mark_sent(request)
            logger.info("Alert sent", extra=extra)
        finally:
            self._in_flight.discard(request.alert_class)

    def snapshot(self) -> List[HistoryEntry]:
        return self.history.snapshot()
