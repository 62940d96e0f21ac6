"""
client.py
---------
WebSocket client for the energy collector's live feed.

Features
- Explicit connection state (DISCONNECTED, CONNECTING, OPEN, CLOSED)
- Listener callbacks for open, message and close events
- Automatic full-log request after every successful open
- Thread-safe ``send()`` that is a no-op unless the socket is open
- Async context-manager support

Connection failures never raise to the caller; they show up as a transition
to CLOSED. Reconnecting is left to the host (see ``ReconnectingRunner``).

Requires: websockets
    pip install websockets
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum, auto
from typing import Any, Awaitable, Callable, List, Optional, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, InvalidURI, WebSocketException

from energy_collector.errors import ConnectionUnavailable

logger = logging.getLogger(__name__)

WHOLE_LOG_REQUEST = {"request": "wholeLog"}
DELETE_LOG_REQUEST = {"request": "deleteDataLogFile"}


# ----------------------------- Data structures -----------------------------

class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    OPEN = auto()
    CLOSED = auto()


class ConnectionListener(Protocol):
    """Receives connection events in delivery order."""

    def on_open(self) -> None:
        ...

    def on_message(self, raw: Any) -> None:
        ...

    def on_close(self) -> None:
        ...


Connector = Callable[[str], Awaitable[Any]]
StateCallback = Callable[[ConnectionState], None]


def default_connector(open_timeout: float = 10.0) -> Connector:
    async def _connect(url: str):
        return await websockets.connect(url, open_timeout=open_timeout)

    return _connect


# ----------------------------- Client class --------------------------------

class ConnectionManager:
    """Owns the lifecycle of one WebSocket connection to the collector."""

    def __init__(self,
                 url: Optional[str] = None,
                 connector: Optional[Connector] = None,
                 on_state: Optional[StateCallback] = None,
                 ):
        self.url = url
        self._connector = connector or default_connector()
        self.on_state = on_state

        self._state = ConnectionState.DISCONNECTED
        self._ws: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listeners: List[ConnectionListener] = []

    # ------------------------------ Listeners --------------------------------

    def add_listener(self, listener: ConnectionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConnectionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners):
            handler = getattr(listener, event, None)
            if handler is None:
                continue
            try:
                handler(*args)
            except Exception:
                logger.exception("Listener %r failed handling %s", listener, event)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.info("Connection %s -> %s", self._state.name, state.name)
        self._state = state
        if self.on_state:
            try:
                self.on_state(state)
            except Exception:
                logger.exception("State callback failed")

    # ------------------------- Connection management ------------------------

    async def connect(self, url: Optional[str] = None) -> bool:
        """Open the socket. Returns False (state CLOSED) on any failure."""
        if self.is_open:
            return True
        target = url or self.url
        if not target:
            logger.error("No WebSocket URL configured")
            self._set_state(ConnectionState.CLOSED)
            return False
        self.url = target
        self._loop = asyncio.get_running_loop()
        self._set_state(ConnectionState.CONNECTING)
        try:
            self._ws = await self._connector(target)
        except (OSError, asyncio.TimeoutError, InvalidURI, WebSocketException) as exc:
            logger.warning("Could not connect to %s: %s", target, exc)
            self._ws = None
            self._set_state(ConnectionState.CLOSED)
            self._emit("on_close")
            return False

        self._set_state(ConnectionState.OPEN)
        self._emit("on_open")
        # Every (re)connect resynchronises the series from a full snapshot.
        self.send(WHOLE_LOG_REQUEST)
        return True

    async def receive_loop(self) -> None:
        """Deliver inbound messages until the socket closes."""
        ws = self._ws
        if ws is None:
            return
        try:
            async for raw in ws:
                self._emit("on_message", raw)
        except ConnectionClosed as exc:
            logger.info("Connection closed by peer: %s", exc)
        finally:
            self._mark_closed()

    async def run(self, url: Optional[str] = None) -> None:
        """Connect and pump messages until the connection ends."""
        if await self.connect(url):
            await self.receive_loop()

    async def close(self) -> None:
        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as exc:
                logger.debug("Error while closing socket: %s", exc)
        self._mark_closed()

    def _mark_closed(self) -> None:
        self._ws = None
        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            self._set_state(ConnectionState.CLOSED)
            self._emit("on_close")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ------------------------------- Sending ---------------------------------

    def _require_open(self):
        ws, loop = self._ws, self._loop
        if not self.is_open or ws is None or loop is None:
            raise ConnectionUnavailable(f"Cannot send while connection is {self._state.name}")
        return ws, loop

    def send(self, message: Any) -> bool:
        """Queue a JSON message for sending. No-op returning False unless OPEN."""
        try:
            ws, loop = self._require_open()
        except ConnectionUnavailable as exc:
            logger.warning("%s", exc)
            return False
        text = message if isinstance(message, str) else json.dumps(message)
        future = asyncio.run_coroutine_threadsafe(ws.send(text), loop)
        future.add_done_callback(self._log_send_result)
        return True

    @staticmethod
    def _log_send_result(future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Send failed: %s", exc)
