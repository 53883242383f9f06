from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig
from models.alerts import AlertRequest
from services.errors import NotifyError, RateLimitedError


class ApiClient:
    """Minimal synchronous HTTP client for the alert relay."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def health(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/api/health")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def test_telegram(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/api/test-telegram")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def _handle_transport_error(self, exc: httpx.HTTPError) -> None:
        typer.secho(
            f"Could not reach alert relay at {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("message") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


class AlertNotifier:
    """Posts alert requests to the relay's ``/api/alert`` endpoint."""

    def __init__(
        self,
        config: CLIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    async def send(self, request: AlertRequest) -> None:
        try:
            response = await self._client.post("/api/alert", json=request.to_payload())
        except httpx.HTTPError as exc:
            raise NotifyError(f"Alert relay unreachable: {exc}") from exc

        body = _json_or_empty(response)
        if response.status_code == 429:
            raise RateLimitedError(
                body.get("message") or "Alert rate limited.",
                cooldown_until=_parse_datetime(body.get("cooldownUntil")),
            )
        if response.is_error or not body.get("success"):
            reason = body.get("error") or body.get("message") or response.text.strip()
            raise NotifyError(f"Alert relay returned {response.status_code}: {reason}")

    async def aclose(self) -> None:
        await self._client.aclose()


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None
