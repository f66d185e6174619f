"""
Async feed WebSocket client with resubscription support.

Manages a persistent connection to one feed endpoint with exponential
backoff and heartbeat, pushes {"op": ..., "args": [...]} subscriptions on
every connect, and can cycle a channel (unsubscribe then subscribe) on
request to obtain a fresh snapshot.
"""
from __future__ import annotations
import asyncio
import contextlib
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from .messages import build_control_message

MessageHandler = Callable[[Dict[str, Any]], Awaitable[None]]
LOGGER = logging.getLogger(__name__)
MAX_BACKOFF_SECONDS = 60.0

class FeedWebSocketClient:
    """
    WebSocket client for one market-data endpoint.

    Decodes each text frame as JSON and forwards JSON objects to the message
    handler in arrival order. Frames that are not JSON objects are dropped.

    Attributes:
        ws_url: WebSocket endpoint URL
        message_handler: Async callback invoked for each decoded envelope
        heartbeat_interval: Seconds between pings
        reconnect_backoff: Initial backoff delay in seconds (doubles on retry)
        name: Label used in log lines
    """
    def __init__(
        self,
        ws_url: str,
        message_handler: MessageHandler,
        heartbeat_interval: float = 15.0,
        reconnect_backoff: float = 2.0,
        name: str = "feed",
    ) -> None:
        self.ws_url = ws_url
        self.message_handler = message_handler
        self.heartbeat_interval = heartbeat_interval
        self.reconnect_backoff = reconnect_backoff
        self.name = name
        self._channels: List[str] = []
        self._ws: Optional[ClientConnection] = None
        self._last_heartbeat = time.time()
        self._running = False

    @property
    def channels(self) -> List[str]:
        return list(self._channels)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def subscribe(self, channel: str) -> None:
        """
        Register a channel to be subscribed on every connect.

        Args:
            channel: Feed topic, e.g. "update:BTCPFC_0"
        """
        if channel not in self._channels:
            self._channels.append(channel)

    async def connect_forever(self) -> None:
        """
        Main loop maintaining persistent connection with exponential backoff.

        Continues reconnecting until stop() is called. Backoff resets on
        successful connection, doubles on failure up to 60 second maximum.
        """
        self._running = True
        backoff = self.reconnect_backoff
        while self._running:
            try:
                LOGGER.info("[%s] Connecting to %s", self.name, self.ws_url)
                async with connect(self.ws_url, ping_interval=None) as ws:
                    self._ws = ws
                    if not self._running:
                        await ws.close()
                        break
                    await self._on_connect(ws)
                    await self._listen(ws)
                backoff = self.reconnect_backoff
            except (WebSocketException, OSError) as exc:
                LOGGER.warning("[%s] WebSocket disconnected: %s", self.name, exc)
                if not self._running:
                    break
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)
            finally:
                self._ws = None

    async def stop(self) -> None:
        """Exit the reconnection loop and close any live connection."""
        self._running = False
        ws = self._ws
        if ws is not None:
            await ws.close()

    async def resubscribe(self, channel: Optional[str] = None) -> None:
        """
        Cycle a channel so the server sends a fresh snapshot.

        Sends exactly one unsubscribe followed by one subscribe. When no
        connection is live the request is dropped; the next connect pushes
        subscriptions anyway.

        Args:
            channel: Channel to cycle, defaults to every registered channel
        """
        channels = [channel] if channel else list(self._channels)
        ws = self._ws
        if ws is None or not channels:
            LOGGER.warning(
                "[%s] Not connected; resubscribe deferred to reconnect",
                self.name,
            )
            return
        try:
            await self._send_control(ws, "unsubscribe", channels)
            await self._send_control(ws, "subscribe", channels)
        except ConnectionClosed as exc:
            LOGGER.warning(
                "[%s] Connection closed during resubscribe: %s", self.name, exc
            )

    async def _on_connect(self, ws: ClientConnection) -> None:
        """Initialize heartbeat and push subscriptions."""
        self._last_heartbeat = time.time()
        if self._channels:
            await self._send_control(ws, "subscribe", self._channels)

    async def _send_control(
        self, ws: ClientConnection, op: str, channels: List[str]
    ) -> None:
        LOGGER.info("[%s] %s %s", self.name, op, ", ".join(channels))
        await ws.send(json.dumps(build_control_message(op, channels)))

    async def _listen(self, ws: ClientConnection) -> None:
        """
        Consume messages from WebSocket until disconnection.

        Spawns heartbeat monitor task and ensures cleanup on exit.

        Args:
            ws: Active WebSocket connection
        """
        heartbeat_task = asyncio.create_task(self._monitor_heartbeat(ws))
        try:
            async for raw in ws:
                self._last_heartbeat = time.time()
                await self._handle_raw(raw)
        finally:
            heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await heartbeat_task

    async def _monitor_heartbeat(self, ws: ClientConnection) -> None:
        """
        Periodically send pings and close connection if no data received.

        Args:
            ws: Active WebSocket connection
        """
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            elapsed = time.time() - self._last_heartbeat
            if elapsed > self.heartbeat_interval * 2:
                LOGGER.warning("[%s] Heartbeat timeout, closing", self.name)
                await ws.close()
                break
            with contextlib.suppress(ConnectionClosed):
                await ws.ping()

    async def _handle_raw(self, raw: Any) -> None:
        """
        Decode one frame and forward it to the handler.

        Args:
            raw: Text or binary frame payload
        """
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            LOGGER.debug("[%s] Dropping non-JSON frame: %r", self.name, raw)
            return
        if not isinstance(message, dict):
            LOGGER.debug("[%s] Dropping non-object frame", self.name)
            return
        await self.message_handler(message)

__all__ = ["FeedWebSocketClient"]
