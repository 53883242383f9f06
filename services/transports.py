"""WebSocket transport for the connection supervisor."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import websockets
from websockets.exceptions import WebSocketException

from services.supervisor import Target, TransportListener

logger = logging.getLogger(__name__)


def websocket_url(target: Target) -> str:
    # The sensor firmware serves on the root path and expects the trailing slash.
    return f"ws://{target.host}:{target.port}/"


class WebSocketTransport:
    """Runs one client connection as a task on the running event loop.

    Connect timeouts are owned by the supervisor, so the library's own open
    timeout is disabled.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task[None]] = None

    def open(self, target: Target, listener: TransportListener) -> None:
        if self._task is not None:
            raise RuntimeError("WebSocketTransport instances are single-use.")
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(websocket_url(target), listener))

    def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, url: str, listener: TransportListener) -> None:
        logger.debug("Opening WebSocket", extra={"target": url})
        cancelled = False
        try:
            async with websockets.connect(url, open_timeout=None) as socket:
                listener.on_open()
                async for message in socket:
                    listener.on_message(message)
        except asyncio.CancelledError:
            cancelled = True
            raise
        except (OSError, WebSocketException) as exc:
            listener.on_error(exc)
        except Exception as exc:
            logger.exception("WebSocket reader failed", extra={"target": url})
            listener.on_error(exc)
        finally:
            # Any exit other than close() counts as a drop.
            if not cancelled:
                listener.on_close()
