"""Turn raw transport payloads into canonical readings."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from models.readings import Reading
from services.errors import ParseError

# Checked in order; the first key holding a finite number wins.
VALUE_KEYS = ("waterLevel", "water_level", "level", "value")
HAZARD_OVERRIDE_KEY = "hazardThreshold"


def normalize(payload: bytes | str, observed_at: Optional[datetime] = None) -> Reading:
    """Parse a JSON record or a bare number into a :class:`Reading`.

    Raises :class:`ParseError` when neither interpretation yields a finite value.
    """
    text = _decode(payload)
    stamp = observed_at or datetime.now(timezone.utc)

    record = _decode_record(text)
    if record is not None:
        value = _first_number(record)
        if value is not None:
            return Reading(
                value=value,
                observed_at=stamp,
                hazard_threshold=_as_number(record.get(HAZARD_OVERRIDE_KEY)),
            )

    value = _parse_bare_number(text)
    if value is None:
        raise ParseError("unrecognized payload", payload=payload)
    return Reading(value=value, observed_at=stamp)


def _decode(payload: bytes | str) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return bytes(payload).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("payload is not valid UTF-8", payload=payload) from exc


def _decode_record(text: str) -> Optional[Mapping[str, Any]]:
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def _first_number(record: Mapping[str, Any]) -> Optional[float]:
    for key in VALUE_KEYS:
        value = _as_number(record.get(key))
        if value is not None:
            return value
    return None


def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass; "true" is not a level.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _parse_bare_number(text: str) -> Optional[float]:
    candidate = text.strip()
    if not candidate:
        return None
    try:
        number = float(candidate)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
