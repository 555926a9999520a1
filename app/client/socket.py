# app/client/socket.py
"""
Process-wide shared WebSocket to the live-updates endpoint.

Every consumer in a process that points at the same URL shares one
connection (get_shared_socket), so mounting ten widgets opens one socket, not
ten. The socket stays up while at least one consumer holds it.

  - Commands sent while disconnected are queued and flushed on open
  - Inbound `{type, data}` frames are fanned out to every subscriber
  - On close or connection failure: wait `reconnect_delay`, then reconnect
"""

import asyncio
import json
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

Subscriber = Callable[[dict], Any]

_shared: dict[str, "SharedSocket"] = {}


def get_shared_socket(url: str, **kwargs) -> "SharedSocket":
    """The one SharedSocket for `url` in this process."""
    sock = _shared.get(url)
    if sock is None:
        sock = _shared[url] = SharedSocket(url, **kwargs)
    return sock


class SharedSocket:
    def __init__(self, url: str, reconnect_delay: float = None, connect: Callable = None):
        self.url = url
        self.reconnect_delay = settings.CLIENT_RECONNECT_SECONDS if reconnect_delay is None else reconnect_delay
        self._connect = connect or websockets.connect
        self._ws = None
        self._outbox: list[dict] = []
        self._subscribers: dict[Subscriber, None] = {}   # ordered set
        self._holders = 0
        self._task: Optional[asyncio.Task] = None
        self.connected = asyncio.Event()

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    @property
    def holders(self) -> int:
        return self._holders

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers[callback] = None
        return lambda: self._subscribers.pop(callback, None)

    def acquire(self):
        """Register a consumer; the first one starts the connection loop."""
        self._holders += 1
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name=f"shared-socket {self.url}")

    async def release(self):
        """Drop a consumer; the last one tears the connection down."""
        self._holders = max(0, self._holders - 1)
        if self._holders == 0 and self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def send(self, message_type: str, data: Any = None) -> bool:
        """Send now if open, else queue for the next open. Returns True if sent."""
        message = {"type": message_type, "data": data if data is not None else {}}
        if self._ws is not None:
            try:
                await self._ws.send(json.dumps(message))
                return True
            except ConnectionClosed:
                logger.debug(f"Socket closed while sending '{message_type}' — queued")
        if message not in self._outbox:
            self._outbox.append(message)
        return False

    async def _flush(self):
        while self._outbox and self._ws is not None:
            message = self._outbox.pop(0)
            await self._ws.send(json.dumps(message))

    def _dispatch(self, raw):
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Unparseable frame from server — ignored")
            return
        for callback in list(self._subscribers):
            try:
                callback(message)
            except Exception as e:
                logger.error(f"Subscriber failed on '{message.get('type')}': {e}", exc_info=True)

    async def _run(self):
        while True:
            logger.info(f"📡 Connecting to {self.url}")
            try:
                async with self._connect(self.url) as ws:
                    self._ws = ws
                    self.connected.set()
                    logger.info(f"✅ Connected to {self.url}")
                    await self._flush()
                    async for raw in ws:
                        self._dispatch(raw)
                logger.info(f"WebSocket to {self.url} closed")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning(f"❌ WebSocket to {self.url} failed: {e!r}")
            finally:
                self._ws = None
                self.connected.clear()

            logger.info(f"Reconnecting in {self.reconnect_delay}s")
            await asyncio.sleep(self.reconnect_delay)
