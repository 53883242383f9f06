"""HTTP route definitions for the alert relay."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.schemas import AlertPayload, AlertResponse, HealthResponse, TelegramHealth
from services.alert_relay import AlertRelay, build_default_relay
from services.errors import NotifyError, RateLimitedError

router = APIRouter(prefix="/api")


def get_relay() -> AlertRelay:
    return build_default_relay()


def _failure(status_code: int, body: AlertResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post(
    "/alert",
    response_model=AlertResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Send a water level alert through Telegram.",
)
async def send_alert(
    payload: AlertPayload,
    relay: AlertRelay = Depends(get_relay),
) -> AlertResponse | JSONResponse:
    if payload.water_level is None:
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            AlertResponse(success=False, message="Water level is required"),
        )
    try:
        cooldown_until = await relay.relay(payload.water_level, payload.status, payload.timestamp)
    except RateLimitedError as exc:
        return _failure(
            status.HTTP_429_TOO_MANY_REQUESTS,
            AlertResponse(success=False, message=str(exc), cooldown_until=exc.cooldown_until),
        )
    except NotifyError as exc:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            AlertResponse(success=False, message="Failed to send alert", error=str(exc)),
        )
    return AlertResponse(success=True, message="Alert sent successfully", cooldown_until=cooldown_until)


@router.get(
    "/test-telegram",
    response_model=AlertResponse,
    response_model_exclude_none=True,
    summary="Send a test message to verify the Telegram configuration.",
)
async def test_telegram(relay: AlertRelay = Depends(get_relay)) -> AlertResponse | JSONResponse:
    try:
        await relay.send_test_message()
    except NotifyError as exc:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            AlertResponse(success=False, message="Failed to send test message", error=str(exc)),
        )
    return AlertResponse(success=True, message="Test message sent successfully")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(relay: AlertRelay = Depends(get_relay)) -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        telegram=TelegramHealth(
            configured=relay.sender.configured,
            cooldown=f"{int(relay.cooldown.total_seconds())} seconds",
        ),
    )
