"""Exception taxonomy for the monitoring pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class ParseError(ValueError):
    """An inbound payload could not be turned into a reading."""

    def __init__(self, reason: str, payload: object = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.payload = payload


class TransportError(Exception):
    """The telemetry transport failed to connect or dropped."""


class InvalidTargetError(TransportError, ValueError):
    """A connection target was rejected before any connection attempt."""


class ConnectTimeoutError(TransportError):
    pass


class NotifyError(Exception):
    """Alert delivery failed."""


class RateLimitedError(Exception):
    """An alert was suppressed by a cooldown. Informational, not a failure."""

    def __init__(self, message: str, cooldown_until: Optional[datetime] = None) -> None:
        super().__init__(message)
        self.cooldown_until = cooldown_until
