"""Offline stand-in for the collector, for demos and tests.

Mirrors the bench rig: a pulse generator fires a random number of impulses
in each 10 s window, one every 80 ms, and the collector logs the running
total once per window.
"""

from __future__ import annotations

import asyncio
import json
import random
import time
from typing import Any, List, Optional

from energy_collector.connection import DELETE_LOG_REQUEST, WHOLE_LOG_REQUEST
from energy_collector.telemetry import LogEntry

WINDOW_S = 10
IMPULSE_PERIOD_S = 0.08


class MockImpulseSource:
    """Generates the collector's accumulated-value log."""

    def __init__(
        self,
        start_time: Optional[int] = None,
        window_s: int = WINDOW_S,
        seed: Optional[int] = None,
        initial_value: float = 0.0,
    ) -> None:
        self.window_s = window_s
        self.max_impulses = int(window_s / IMPULSE_PERIOD_S)
        self._rng = random.Random(seed)
        self._time = int(start_time if start_time is not None else time.time())
        self._total = initial_value
        self.log: List[LogEntry] = []

    def step(self) -> LogEntry:
        self._time += self.window_s
        self._total += self._rng.randint(0, self.max_impulses)
        entry = LogEntry(time=self._time, accumulated_value=self._total)
        self.log.append(entry)
        return entry

    def backfill(self, windows: int) -> None:
        for _ in range(windows):
            self.step()

    def clear(self) -> None:
        self.log.clear()

    def whole_log_message(self) -> str:
        return json.dumps({"log": [entry.to_wire() for entry in self.log]})

    def entry_message(self) -> str:
        return json.dumps(self.step().to_wire())

    def handle_request(self, text: str) -> Optional[str]:
        """Answer a client command the way the collector does."""
        try:
            request = json.loads(text)
        except json.JSONDecodeError:
            return None
        if request == WHOLE_LOG_REQUEST:
            return self.whole_log_message()
        if request == DELETE_LOG_REQUEST:
            self.clear()
        return None


class MockCollectorSocket:
    """Minimal async socket speaking the collector protocol from a :class:`MockImpulseSource`."""

    def __init__(self, source: MockImpulseSource, tick_s: float = 1.0) -> None:
        self.source = source
        self.tick_s = tick_s
        self.sent: List[str] = []
        self._outbox: "asyncio.Queue[Any]" = asyncio.Queue()
        self._closed = False

    async def send(self, text: str) -> None:
        self.sent.append(text)
        reply = self.source.handle_request(text)
        if reply is not None:
            await self._outbox.put(reply)

    async def close(self) -> None:
        self._closed = True
        await self._outbox.put(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            message = await asyncio.wait_for(self._outbox.get(), timeout=self.tick_s)
        except asyncio.TimeoutError:
            return self.source.entry_message()
        if message is None:
            raise StopAsyncIteration
        return message


def mock_connector(source: MockImpulseSource, tick_s: float = 1.0):
    """Connector for :class:`ConnectionManager` that never touches the network."""

    async def _connect(url: str) -> MockCollectorSocket:
        return MockCollectorSocket(source, tick_s=tick_s)

    return _connect
