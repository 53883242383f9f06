"""Unit tests for severity classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.readings import AlertClass, Reading, Severity, Thresholds
from services.classifier import classify, classify_reading


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.0, Severity.SAFE),
        (49.999, Severity.SAFE),
        (50.0, Severity.MODERATE),
        (69.999, Severity.MODERATE),
        (70.0, Severity.WARNING),
        (79.999, Severity.WARNING),
        (80.0, Severity.HAZARD),
        (150.0, Severity.HAZARD),
    ],
)
def test_boundaries_belong_to_higher_severity(value: float, expected: Severity) -> None:
    assert classify(value, Thresholds()) is expected


def test_classification_is_monotonic() -> None:
    thresholds = Thresholds()
    values = [step / 4 for step in range(-40, 500)]

    severities = [classify(value, thresholds) for value in values]

    assert severities == sorted(severities)


def test_inverted_thresholds_prefer_hazard() -> None:
    thresholds = Thresholds(warning=90.0, hazard=60.0)

    assert classify(65.0, thresholds) is Severity.HAZARD
    assert classify(55.0, thresholds) is Severity.MODERATE


def test_per_reading_override_does_not_touch_defaults() -> None:
    thresholds = Thresholds()
    reading = Reading(value=75.0, observed_at=datetime.now(timezone.utc), hazard_threshold=72.0)

    assert classify_reading(reading, thresholds) is Severity.HAZARD
    assert thresholds.hazard == 80.0
    assert classify(75.0, thresholds) is Severity.WARNING


def test_labels_and_alert_classes() -> None:
    assert Severity.HAZARD.label == "FLOOD HAZARD!"
    assert Severity.WARNING.label == "HIGH - WARNING"
    assert Severity.HAZARD.alert_class is AlertClass.FLOOD_HAZARD
    assert Severity.WARNING.alert_class is AlertClass.WARNING
    assert Severity.MODERATE.alert_class is None
    assert Severity.SAFE.alert_class is None
