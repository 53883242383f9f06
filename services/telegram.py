"""Telegram Bot API client used by the alert relay."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from services.errors import NotifyError

logger = logging.getLogger(__name__)


class TelegramClient:
    """Sends HTML-formatted messages to a single chat."""

    def __init__(
        self,
        token: Optional[str],
        chat_id: Optional[str],
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._chat_id = chat_id
        self._client = httpx.AsyncClient(base_url=api_base, timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self._token and self._chat_id)

    async def send_message(self, text: str) -> None:
        if not self.configured:
            raise NotifyError("Telegram bot token or chat id is not configured.")
        try:
            response = await self._client.post(
                f"/bot{self._token}/sendMessage",
                json={"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _describe(exc.response)
            logger.error("Telegram rejected message", extra={"status": exc.response.status_code})
            raise NotifyError(f"Telegram API returned {exc.response.status_code}: {detail}") from exc
        except httpx.HTTPError as exc:
            logger.error("Telegram request failed", extra={"reason": type(exc).__name__})
            raise NotifyError(f"Telegram request failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()


def _describe(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or "no detail provided."
    if isinstance(data, dict):
        return str(data.get("description") or data)
    return str(data)
