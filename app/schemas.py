"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertPayload(BaseModel):
    """Alert submitted by a monitor."""

    model_config = ConfigDict(populate_by_name=True)

    water_level: Optional[float] = Field(
        default=None, alias="waterLevel", description="Fill level in percent."
    )
    status: Optional[str] = Field(
        default=None, description="FLOOD_HAZARD or WARNING; anything else is treated as WARNING."
    )
    timestamp: Optional[str] = Field(
        default=None, description="Observation time as reported by the monitor."
    )


class AlertResponse(BaseModel):
    """Outcome of an alert submission."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    cooldown_until: Optional[datetime] = Field(
        default=None, alias="cooldownUntil"
    )
    error: Optional[str] = None


class TelegramHealth(BaseModel):
    configured: bool
    cooldown: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime
    telegram: TelegramHealth
