"""Server-side alert relay: cooldown gate in front of Telegram delivery."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Protocol

from models.readings import AlertClass, Reading, Severity
from services.alert_engine import AlertEngine, DedupStrategy
from services.errors import RateLimitedError
from services.telegram import TelegramClient
from settings import get_settings

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    @property
    def configured(self) -> bool: ...

    async def send_message(self, text: str) -> None: ...

    async def aclose(self) -> None: ...


def alert_class_for_status(status: Optional[str]) -> AlertClass:
    # Anything that is not an explicit hazard is treated as a warning.
    if status == AlertClass.FLOOD_HAZARD.value:
        return AlertClass.FLOOD_HAZARD
    return AlertClass.WARNING


def format_alert_message(water_level: float, alert_class: AlertClass, timestamp: str) -> str:
    if alert_class is AlertClass.FLOOD_HAZARD:
        lines = [
            "🚨 <b>FLOOD HAZARD ALERT!</b> 🚨",
            "",
            f"⚠️ Water Level: <b>{water_level:.1f}%</b>",
            "📊 Status: <b>CRITICAL</b>",
            f"⏰ Time: {timestamp}",
            "",
            "⚡ Immediate action required!",
            "The water level has reached a dangerous level.",
        ]
    else:
        lines = [
            "⚠️ <b>Water Level Warning</b>",
            "",
            f"💧 Water Level: <b>{water_level:.1f}%</b>",
            "📊 Status: <b>HIGH - WARNING</b>",
            f"⏰ Time: {timestamp}",
            "",
            "Please monitor the situation closely.",
        ]
    return "\n".join(lines)


def format_test_message(now: datetime) -> str:
    return "\n".join(
        [
            "🔔 <b>Telegram Bot Test</b>",
            "",
            "✅ Connection successful!",
            f"⏰ {now.isoformat(timespec='seconds')}",
            "",
            "Your water level monitoring system is ready.",
        ]
    )


class AlertRelay:
    """Applies a per-class cooldown and forwards alerts to the message sender."""

    def __init__(self, sender: MessageSender, engine: AlertEngine) -> None:
        self.sender = sender
        self.engine = engine
        self._lock = asyncio.Lock()

    @property
    def cooldown(self) -> timedelta:
        return self.engine.cooldown

    async def relay(
        self, water_level: float, status: Optional[str], timestamp: Optional[str] = None
    ) -> datetime:
        """Send one alert and return when the cooldown for its class ends.

        Raises :class:`RateLimitedError` inside the cooldown window and
        :class:`NotifyError` when delivery fails; neither updates the cooldown.
        """
        alert_class = alert_class_for_status(status)
        severity = Severity.HAZARD if alert_class is AlertClass.FLOOD_HAZARD else Severity.WARNING
        now = datetime.now(timezone.utc)
        reading = Reading(value=water_level, observed_at=now)

        async with self._lock:
            request = self.engine.consider(reading, severity)
            if request is None:
                raise RateLimitedError(
                    "Alert sent recently. Please wait before sending another.",
                    cooldown_until=self.engine.cooldown_until(alert_class),
                )

            message = format_alert_message(water_level, alert_class, timestamp or now.isoformat())
            await self.sender.send_message(message)
            self.engine.mark_sent(request)
            cooldown_until = self.engine.cooldown_until(alert_class)

        logger.info(
            "Alert relayed",
            extra={"alert_class": alert_class.value, "value": water_level, "cooldown_until": cooldown_until},
        )
        return cooldown_until

    async def send_test_message(self) -> None:
        await self.sender.send_message(format_test_message(datetime.now(timezone.utc)))

    async def aclose(self) -> None:
        await self.sender.aclose()


@lru_cache
def build_default_relay() -> AlertRelay:
    """Factory that wires the relay from environment settings."""
    settings = get_settings()
    sender = TelegramClient(
        token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        api_base=settings.telegram_api_base,
        timeout=settings.notify_timeout_seconds,
    )
    engine = AlertEngine(
        strategy=DedupStrategy.cooldown,
        cooldown=timedelta(seconds=settings.alert_cooldown_seconds),
    )
    return AlertRelay(sender=sender, engine=engine)
