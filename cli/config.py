from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from services.alert_engine import DedupStrategy

DEFAULT_BASE_URL = "http://localhost:3001"
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_RECONNECT_DELAY = 3.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_HISTORY_CAPACITY = 100
DEFAULT_COOLDOWN_SECONDS = 300.0

_BASE_URL_ENV = "ALERT_API_URL"
_CONNECT_TIMEOUT_ENV = "SENSOR_CONNECT_TIMEOUT"
_RECONNECT_DELAY_ENV = "SENSOR_RECONNECT_DELAY"
_REQUEST_TIMEOUT_ENV = "ALERT_REQUEST_TIMEOUT"
_HISTORY_CAPACITY_ENV = "HISTORY_CAPACITY"
_DEDUP_STRATEGY_ENV = "ALERT_DEDUP_STRATEGY"
_COOLDOWN_ENV = "ALERT_COOLDOWN_SECONDS"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    dedup_strategy: DedupStrategy = DedupStrategy.combined
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_strategy(value: Optional[str]) -> DedupStrategy:
    if value is None:
        return DedupStrategy.combined
    try:
        return DedupStrategy(value.strip().lower())
    except ValueError:
        return DedupStrategy.combined


def load_config(
    base_url: Optional[str] = None,
    connect_timeout: Optional[float] = None,
    reconnect_delay: Optional[float] = None,
    dedup_strategy: Optional[DedupStrategy] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if connect_timeout is None:
        connect_timeout = _read_float(os.getenv(_CONNECT_TIMEOUT_ENV), DEFAULT_CONNECT_TIMEOUT)
    if reconnect_delay is None:
        reconnect_delay = _read_float(os.getenv(_RECONNECT_DELAY_ENV), DEFAULT_RECONNECT_DELAY)
    if dedup_strategy is None:
        dedup_strategy = _read_strategy(os.getenv(_DEDUP_STRATEGY_ENV))
    return CLIConfig(
        base_url=url.rstrip("/"),
        connect_timeout=connect_timeout,
        reconnect_delay=reconnect_delay,
        request_timeout=_read_float(os.getenv(_REQUEST_TIMEOUT_ENV), DEFAULT_REQUEST_TIMEOUT),
        history_capacity=_read_int(os.getenv(_HISTORY_CAPACITY_ENV), DEFAULT_HISTORY_CAPACITY),
        dedup_strategy=dedup_strategy,
        cooldown_seconds=_read_float(os.getenv(_COOLDOWN_ENV), DEFAULT_COOLDOWN_SECONDS),
    )
