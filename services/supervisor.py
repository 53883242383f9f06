"""Connection lifecycle for a single telemetry subscription."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from models.readings import Reading
from services.errors import ConnectTimeoutError, InvalidTargetError, ParseError, TransportError
from services.normalizer import normalize

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_RECONNECT_DELAY = 3.0

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


class ConnectionState(str, Enum):
    idle = "idle"
    connecting = "connecting"
    connected = "connected"
    disconnected = "disconnected"
    failed = "failed"


@dataclass(frozen=True)
class Target:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_target(host: str, port: int | str) -> Target:
    """Validate a host/port pair, raising :class:`InvalidTargetError` with the reason."""
    host = (host or "").strip()
    port_text = str(port).strip() if port is not None else ""
    if not host or not port_text:
        raise InvalidTargetError("Please enter both a host and a port.")
    if not _is_valid_host(host):
        raise InvalidTargetError(
            f"Invalid host {host!r}; expected an IP address (e.g. 192.168.1.100) or hostname."
        )
    try:
        port_number = int(port_text)
    except ValueError:
        port_number = 0
    if not 1 <= port_number <= 65535:
        raise InvalidTargetError(f"Invalid port {port_text!r}; expected a number between 1 and 65535.")
    return Target(host=host, port=port_number)


def _is_valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    # Dotted-quad lookalikes such as 300.1.1.1 are malformed addresses, not hostnames.
    if re.fullmatch(r"[\d.]+", host):
        return False
    if len(host) > 253:
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in host.rstrip(".").split("."))


class TransportListener(Protocol):
    def on_open(self) -> None: ...

    def on_message(self, data: bytes | str) -> None: ...

    def on_error(self, error: BaseException) -> None: ...

    def on_close(self) -> None: ...


class Transport(Protocol):
    """A raw message source. Signals are delivered on the supervisor's event loop."""

    def open(self, target: Target, listener: TransportListener) -> None: ...

    def close(self) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


ReadingCallback = Callable[[Reading], None]
StatusCallback = Callable[[ConnectionState, Optional[str]], None]


class _BoundListener:
    """Routes transport signals to the supervisor tagged with their generation."""

    def __init__(self, supervisor: ConnectionSupervisor, generation: int) -> None:
        self._supervisor = supervisor
        self._generation = generation

    def on_open(self) -> None:
        self._supervisor._handle_open(self._generation)

    def on_message(self, data: bytes | str) -> None:
        self._supervisor._handle_message(self._generation, data)

    def on_error(self, error: BaseException) -> None:
        self._supervisor._handle_drop(self._generation, error)

    def on_close(self) -> None:
        self._supervisor._handle_drop(self._generation, None)


class ConnectionSupervisor:
    """Keeps at most one live transport and reconnects it at a fixed interval.

    Every transport and timer belongs to a generation. ``start``, ``stop`` and
    each drop advance the generation, so late signals from a superseded
    transport and timers that already fired are ignored.
    """

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        on_reading: ReadingCallback,
        on_status: Optional[StatusCallback] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._on_reading = on_reading
        self._on_status = on_status
        self.connect_timeout = connect_timeout
        self.reconnect_delay = reconnect_delay
        self._scheduler = scheduler

        self._state = ConnectionState.idle
        self._target: Optional[Target] = None
        self._transport: Optional[Transport] = None
        self._generation = 0
        self._connect_timer: Optional[TimerHandle] = None
        self._reconnect_timer: Optional[TimerHandle] = None
        self.last_error: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def target(self) -> Optional[Target]:
        return self._target

    def start(self, host: str, port: int | str) -> None:
        try:
            target = parse_target(host, port)
        except InvalidTargetError as exc:
            # A live subscription is left alone; only an inactive one reports failure.
            if self._transport is None and self._reconnect_timer is None:
                self._set_state(ConnectionState.failed, str(exc))
            raise

        self.stop()
        self._target = target
        self._connect()

    def stop(self) -> None:
        self._generation += 1
        self._cancel_timers()
        self._close_transport()
        if self._state is not ConnectionState.idle:
            logger.info("Connection stopped", extra={"target": self._target})
            self.last_error = None
            self._set_state(ConnectionState.idle, None)

    def _connect(self) -> None:
        assert self._target is not None
        self._generation += 1
        generation = self._generation
        self._reconnect_timer = None
        self.last_error = None
        self._set_state(ConnectionState.connecting, None)
        logger.info("Connecting", extra={"target": self._target})

        transport = self._transport_factory()
        self._transport = transport
        self._connect_timer = self._get_scheduler().call_later(
            self.connect_timeout, self._handle_connect_timeout, generation
        )
        try:
            transport.open(self._target, _BoundListener(self, generation))
        except TransportError as exc:
            self._handle_drop(generation, exc)

    def _handle_open(self, generation: int) -> None:
        if generation != self._generation or self._state is not ConnectionState.connecting:
            return
        self._cancel_connect_timer()
        self.last_error = None
        self._set_state(ConnectionState.connected, None)
        logger.info("Connected", extra={"target": self._target})

    def _handle_message(self, generation: int, data: bytes | str) -> None:
        if generation != self._generation or self._state is not ConnectionState.connected:
            return
        try:
            reading = normalize(data)
        except ParseError as exc:
            self.last_error = "Invalid data format received from sensor."
            logger.warning("Dropped sensor message", extra={"reason": exc.reason, "target": self._target})
            self._set_state(ConnectionState.connected, self.last_error)
            return
        try:
            self._on_reading(reading)
        except Exception:
            logger.exception("Reading handler failed", extra={"target": self._target, "value": reading.value})

    def _handle_drop(self, generation: int, error: Optional[BaseException]) -> None:
        if generation != self._generation:
            return
        if self._state not in (ConnectionState.connecting, ConnectionState.connected):
            return
        self._generation += 1
        self._cancel_connect_timer()
        self._close_transport()
        if error is not None:
            diagnostic = f"Connection error: cannot reach {self._target} ({error})."
            logger.warning("Transport error", extra={"target": self._target, "reason": error})
        else:
            diagnostic = None
            logger.info("Disconnected", extra={"target": self._target})
        self.last_error = diagnostic
        self._set_state(ConnectionState.disconnected, diagnostic)
        self._schedule_reconnect()

    def _handle_connect_timeout(self, generation: int) -> None:
        if generation != self._generation or self._state is not ConnectionState.connecting:
            return
        self._connect_timer = None
        self._generation += 1
        self._close_transport()
        error = ConnectTimeoutError(
            f"Connection timeout after {self.connect_timeout:g}s. "
            f"Check that the sensor at {self._target} is running."
        )
        self.last_error = str(error)
        logger.warning("Connect timed out", extra={"target": self._target, "delay": self.connect_timeout})
        self._set_state(ConnectionState.failed, str(error))
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        generation = self._generation
        logger.info("Reconnect scheduled", extra={"target": self._target, "delay": self.reconnect_delay})
        self._reconnect_timer = self._get_scheduler().call_later(
            self.reconnect_delay, self._handle_reconnect, generation
        )

    def _handle_reconnect(self, generation: int) -> None:
        if generation != self._generation:
            return
        if self._state not in (ConnectionState.disconnected, ConnectionState.failed):
            return
        self._connect()

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def _cancel_connect_timer(self) -> None:
        if self._connect_timer is not None:
            self._connect_timer.cancel()
            self._connect_timer = None

    def _cancel_timers(self) -> None:
        self._cancel_connect_timer()
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.close()
        except TransportError as exc:
            logger.debug("Transport close failed", extra={"reason": exc})

    def _set_state(self, state: ConnectionState, diagnostic: Optional[str]) -> None:
        self._state = state
        if self._on_status is not None:
            self._on_status(state, diagnostic)
