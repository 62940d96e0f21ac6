#!/usr/bin/env python3
"""Follow the energy collector feed without a GUI and log the impulse rate."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from energy_collector.connection import ConnectionManager, default_connector
from energy_collector.errors import Notification
from energy_collector.io import load_collector_settings, update_settings_value
from energy_collector.mock import MockImpulseSource, mock_connector
from energy_collector.session import CollectorSession
from energy_collector.telemetry import LogEntryWriter, SeriesView, compute_rate

logger = logging.getLogger("monitor")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--mock", action="store_true", help="Use a simulated collector instead of the device.")
    parser.add_argument("--settings", help="Optional path to a settings YAML file.")
    parser.add_argument("--url", help="WebSocket URL overriding the configured device host.")
    parser.add_argument("--save-host", help="Store this collector host in the settings file before connecting.")
    parser.add_argument("--record", type=Path, help="Append received entries to this CSV file.")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args()


class RateReporter:
    """Logs the rate when it changes and optionally records new entries."""

    def __init__(self, writer: Optional[LogEntryWriter] = None) -> None:
        self.writer = writer
        self.last_rate: Optional[float] = None
        self.last_time: Optional[int] = None

    def __call__(self, series: SeriesView) -> None:
        rate = compute_rate(series)
        if rate != self.last_rate:
            logger.info("%d entries, %.2f impulses/hour", len(series), rate)
            self.last_rate = rate
        if self.writer is None:
            return
        for entry in series:
            if self.last_time is None or entry.time > self.last_time:
                self.writer.write(entry)
                self.last_time = entry.time


def log_notification(notification: Notification) -> None:
    level = logging.WARNING if notification.is_error else logging.INFO
    logger.log(level, "%s: %s", notification.kind.value, notification.message)


async def follow(session: CollectorSession, duration: Optional[float]) -> None:
    runner = session.runner()
    task = asyncio.create_task(runner.run())
    try:
        if duration is None:
            await task
            return
        await asyncio.wait_for(asyncio.shield(task), timeout=duration)
    except asyncio.TimeoutError:
        logger.info("Stopping after %.0f s", duration)
    finally:
        if not task.done():
            await runner.stop()
            await task


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.save_host:
        update_settings_value("device.host", args.save_host, args.settings)
    settings = load_collector_settings(args.settings)

    if args.mock:
        source = MockImpulseSource()
        source.backfill(60)
        connector = mock_connector(source)
    else:
        connector = default_connector(settings.open_timeout_s)

    connection = ConnectionManager(url=args.url or settings.websocket_url, connector=connector)
    session = CollectorSession(settings=settings, connection=connection, notify=log_notification)

    writer = LogEntryWriter(args.record) if args.record else None
    session.model.subscribe(RateReporter(writer))
    try:
        asyncio.run(follow(session, args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        if writer:
            writer.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
