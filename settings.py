from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BOT_TOKEN_ENV = "TELEGRAM_BOT_TOKEN"
_CHAT_ID_ENV = "TELEGRAM_CHAT_ID"
_API_BASE_ENV = "TELEGRAM_API_BASE"
_COOLDOWN_ENV = "ALERT_COOLDOWN_SECONDS"
_NOTIFY_TIMEOUT_ENV = "NOTIFY_TIMEOUT_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]
    telegram_api_base: str
    alert_cooldown_seconds: float
    notify_timeout_seconds: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
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


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        telegram_bot_token=_read_optional_env(_BOT_TOKEN_ENV, None),
        telegram_chat_id=_read_optional_env(_CHAT_ID_ENV, None),
        telegram_api_base=_read_str_env(_API_BASE_ENV, "https://api.telegram.org").rstrip("/"),
        alert_cooldown_seconds=_read_positive_float(_COOLDOWN_ENV, 300.0),
        notify_timeout_seconds=_read_positive_float(_NOTIFY_TIMEOUT_ENV, 10.0),
        log_level=_read_log_level("INFO"),
    )
