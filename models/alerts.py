"""Alert request model handed from the alert engine to notifiers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from models.readings import AlertClass, Reading, Severity


@dataclass(frozen=True, slots=True)
class AlertRequest:
    """An alert the engine decided should go out.

    Carries both the triggering reading and its severity so the notification
    text can be rebuilt from the request alone.
    """

    severity: Severity
    reading: Reading
    generated_at: datetime

    @property
    def alert_class(self) -> AlertClass:
        alert_class = self.severity.alert_class
        if alert_class is None:
            raise ValueError(f"Severity {self.severity.name} is not alert-eligible.")
        return alert_class

    @property
    def status(self) -> str:
        return self.alert_class.value

    def to_payload(self) -> Dict[str, Any]:
        return {
            "waterLevel": self.reading.value,
            "status": self.status,
            "timestamp": self.generated_at.isoformat(),
        }
