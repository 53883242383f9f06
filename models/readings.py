"""Domain models for sensor telemetry."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class AlertClass(str, Enum):
    """Alert key shared by every severity that may notify; doubles as the wire status."""

    WARNING = "WARNING"
    FLOOD_HAZARD = "FLOOD_HAZARD"


class Severity(IntEnum):
    """Classification tiers, ordered from least to most severe."""

    SAFE = 0
    MODERATE = 1
    WARNING = 2
    HAZARD = 3

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def alert_class(self) -> Optional[AlertClass]:
        if self is Severity.HAZARD:
            return AlertClass.FLOOD_HAZARD
        if self is Severity.WARNING:
            return AlertClass.WARNING
        return None


_LABELS = {
    Severity.SAFE: "SAFE",
    Severity.MODERATE: "MODERATE",
    Severity.WARNING: "HIGH - WARNING",
    Severity.HAZARD: "FLOOD HAZARD!",
}


@dataclass(frozen=True)
class Thresholds:
    warning: float = 70.0
    hazard: float = 80.0

    def with_hazard(self, hazard: Optional[float]) -> Thresholds:
        if hazard is None:
            return self
        return replace(self, hazard=hazard)


@dataclass(frozen=True, slots=True)
class Reading:
    """A single normalized fill-level sample.

    ``hazard_threshold`` is set when the producer attached a per-message
    override; it applies to the classification of this reading only.
    """

    value: float
    observed_at: datetime
    hazard_threshold: Optional[float] = None


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    timestamp: datetime
    value: float
    severity: Severity
