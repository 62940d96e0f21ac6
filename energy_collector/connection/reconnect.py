"""Host-side reconnect loop for :class:`ConnectionManager`."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from energy_collector.connection.client import ConnectionManager

logger = logging.getLogger(__name__)


@dataclass
class ReconnectPolicy:
    """Capped exponential backoff between connection attempts."""

    enabled: bool = True
    interval_s: float = 2.0
    max_interval_s: float = 30.0
    max_attempts: Optional[int] = None

    def delay(self, failures: int) -> float:
        return min(self.max_interval_s, self.interval_s * (2 ** max(0, failures - 1)))


class ReconnectingRunner:
    """Keeps a connection alive; each reconnect triggers a fresh full-log sync."""

    def __init__(self, connection: ConnectionManager, policy: Optional[ReconnectPolicy] = None) -> None:
        self.connection = connection
        self.policy = policy or ReconnectPolicy()
        self._stop: Optional[asyncio.Event] = None
        self._stop_requested = False
        self.attempts = 0

    def _stop_event(self) -> asyncio.Event:
        # Bound to whichever loop runs the runner, not the thread that built it.
        if self._stop is None:
            self._stop = asyncio.Event()
            if self._stop_requested:
                self._stop.set()
        return self._stop

    async def stop(self) -> None:
        """End the loop; closing the socket unblocks a pending receive."""
        self._stop_requested = True
        self._stop_event().set()
        await self.connection.close()

    async def run(self, url: Optional[str] = None) -> None:
        stop = self._stop_event()
        failures = 0
        while not stop.is_set():
            self.attempts += 1
            opened = await self.connection.connect(url)
            if opened:
                failures = 0
                await self.connection.receive_loop()
            else:
                failures += 1

            if not self.policy.enabled or stop.is_set():
                break
            if self.policy.max_attempts is not None and self.attempts >= self.policy.max_attempts:
                logger.info("Giving up after %d connection attempts", self.attempts)
                break

            delay = self.policy.delay(max(failures, 1))
            logger.info("Reconnecting in %.1f s", delay)
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        await self.connection.close()
