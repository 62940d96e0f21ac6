#!/usr/bin/env python3
"""Launch the energy collector dashboard."""

from __future__ import annotations

import argparse
import logging

from energy_collector.connection import ConnectionManager, default_connector
from energy_collector.gui.main_window import run_gui
from energy_collector.io import load_collector_settings, update_settings_value
from energy_collector.mock import MockImpulseSource, mock_connector
from energy_collector.session import CollectorSession


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--mock", action="store_true", help="Use a simulated collector instead of the device.")
    parser.add_argument("--settings", help="Optional path to a settings YAML file.")
    parser.add_argument("--url", help="WebSocket URL overriding the configured device host.")
    parser.add_argument("--save-host", help="Store this collector host in the settings file before connecting.")
    parser.add_argument(
        "--interval",
        type=int,
        help="Chart refresh interval in milliseconds (default: from settings).",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args()


def main() -> None:
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

    def session_factory(notify, on_state):
        connection = ConnectionManager(
            url=args.url or settings.websocket_url,
            connector=connector,
            on_state=on_state,
        )
        return CollectorSession(
            settings=settings,
            connection=connection,
            notify=notify,
            feed_from_connection=False,
        )

    run_gui(session_factory, refresh_interval_ms=args.interval)


if __name__ == "__main__":
    main()
