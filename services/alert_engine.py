"""Alert deduplication: decide when a reading warrants a notification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from models.alerts import AlertRequest
from models.readings import AlertClass, Reading, Severity

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(minutes=5)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DedupStrategy(str, Enum):
    """How repeat alerts for the same class are suppressed."""

    state_change = "state_change"
    cooldown = "cooldown"
    combined = "combined"


@dataclass
class AlertMemory:
    """What the engine knows about alerts that were actually delivered."""

    last_sent: Dict[AlertClass, datetime] = field(default_factory=dict)
    last_class: Optional[AlertClass] = None

    def record(self, alert_class: AlertClass, sent_at: datetime) -> None:
        self.last_sent[alert_class] = sent_at
        self.last_class = alert_class

    def clear(self) -> None:
        self.last_sent.clear()
        self.last_class = None


class AlertEngine:
    """Stateful alert gate for one session.

    ``consider`` never records a send. The caller reports confirmed delivery
    through ``mark_sent`` so a failed dispatch leaves the next qualifying
    reading eligible.
    """

    def __init__(
        self,
        strategy: DedupStrategy = DedupStrategy.combined,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        clock: Clock = utcnow,
        memory: Optional[AlertMemory] = None,
    ) -> None:
        self.strategy = DedupStrategy(strategy)
        self.cooldown = cooldown
        self._clock = clock
        self.memory = memory if memory is not None else AlertMemory()

    def consider(self, reading: Reading, severity: Severity) -> Optional[AlertRequest]:
        alert_class = severity.alert_class
        if alert_class is None:
            return None

        now = self._clock()
        reason = self._suppression_reason(alert_class, now)
        if reason is not None:
            logger.debug(
                "Alert suppressed",
                extra={"alert_class": alert_class.value, "value": reading.value, "reason": reason},
            )
            return None

        return AlertRequest(severity=severity, reading=reading, generated_at=now)

    def mark_sent(self, request: AlertRequest, sent_at: Optional[datetime] = None) -> None:
        self.memory.record(request.alert_class, sent_at or self._clock())

    def reset(self) -> None:
        """Forget every delivered alert so the next qualifying reading notifies."""
        self.memory.clear()

    def cooldown_until(self, alert_class: AlertClass) -> Optional[datetime]:
        last = self.memory.last_sent.get(alert_class)
        if last is None:
            return None
        return last + self.cooldown

    def _suppression_reason(self, alert_class: AlertClass, now: datetime) -> Optional[str]:
        if self.strategy in (DedupStrategy.state_change, DedupStrategy.combined):
            if self.memory.last_class is alert_class:
                return "unchanged_class"
        if self.strategy in (DedupStrategy.cooldown, DedupStrategy.combined):
            last = self.memory.last_sent.get(alert_class)
            if last is not None and now - last <= self.cooldown:
                return "cooldown"
        return None
