"""Severity classification for fill-level readings."""

from __future__ import annotations

from models.readings import Reading, Severity, Thresholds

MODERATE_LEVEL = 50.0


def classify(value: float, thresholds: Thresholds) -> Severity:
    """Map a value to its severity. Boundary values belong to the higher tier."""
    # Hazard first so an inverted warning/hazard pair still reports the hazard.
    if value >= thresholds.hazard:
        return Severity.HAZARD
    if value >= thresholds.warning:
        return Severity.WARNING
    if value >= MODERATE_LEVEL:
        return Severity.MODERATE
    return Severity.SAFE


def effective_thresholds(reading: Reading, thresholds: Thresholds) -> Thresholds:
    return thresholds.with_hazard(reading.hazard_threshold)


def classify_reading(reading: Reading, thresholds: Thresholds) -> Severity:
    return classify(reading.value, effective_thresholds(reading, thresholds))
