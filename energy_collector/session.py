"""Wiring of connection, series model, commands and render sink for one host session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from energy_collector.commands import CommandDispatcher
from energy_collector.connection import (
    ConnectionManager,
    ConnectionState,
    ReconnectingRunner,
    ReconnectPolicy,
    default_connector,
)
from energy_collector.errors import Notifier, ignore_notification
from energy_collector.io import CollectorSettings
from energy_collector.telemetry import SeriesModel, SeriesView, compute_rate

logger = logging.getLogger(__name__)


class RenderSink(Protocol):
    """Anything that can draw the series and the rate gauge."""

    def set_data(self, points: Sequence[Dict[str, Any]]) -> None:
        ...

    def set_gauge(self, value: float) -> None:
        ...


@dataclass
class DashboardState:
    """Aggregated read model for presentation."""

    points: List[Dict[str, Any]]
    rate: float
    entry_count: int
    latest_value: Optional[float] = None
    connection: ConnectionState = ConnectionState.DISCONNECTED


class RenderBinding:
    """Pushes the series and its rate into a sink once per model change."""

    def __init__(self, model: SeriesModel, sink: RenderSink) -> None:
        self.model = model
        self.sink = sink
        model.subscribe(self._on_series)

    def _on_series(self, series: SeriesView) -> None:
        self.sink.set_data([entry.to_point() for entry in series])
        self.sink.set_gauge(compute_rate(series))

    def refresh(self) -> None:
        """Redraw from the current snapshot; harmless when nothing changed."""
        self._on_series(self.model.snapshot())

    def detach(self) -> None:
        self.model.unsubscribe(self._on_series)


class ModelFeed:
    """Connection listener that hands every inbound payload to the model."""

    def __init__(self, model: SeriesModel) -> None:
        self.model = model

    def on_open(self) -> None:
        logger.info("Feed open; waiting for full log")

    def on_message(self, raw: Any) -> None:
        self.model.ingest(raw)

    def on_close(self) -> None:
        logger.info("Feed closed; keeping %d entries until next snapshot", len(self.model))


class CollectorSession:
    """Owns one model/connection/dispatcher trio, built once per host."""

    def __init__(
        self,
        settings: Optional[CollectorSettings] = None,
        connection: Optional[ConnectionManager] = None,
        http_session: Optional[requests.Session] = None,
        notify: Optional[Notifier] = None,
        feed_from_connection: bool = True,
    ) -> None:
        self.settings = settings or CollectorSettings()
        self.notify = notify or ignore_notification
        self.model = SeriesModel(notify=self.notify)
        self.connection = connection or ConnectionManager(
            url=self.settings.websocket_url,
            connector=default_connector(self.settings.open_timeout_s),
        )
        if feed_from_connection:
            self.connection.add_listener(ModelFeed(self.model))
        self.commands = CommandDispatcher(
            self.connection,
            self.model,
            settings=self.settings,
            session=http_session,
            notify=self.notify,
        )
        self._bindings: List[RenderBinding] = []

    def attach_sink(self, sink: RenderSink) -> RenderBinding:
        binding = RenderBinding(self.model, sink)
        self._bindings.append(binding)
        binding.refresh()
        return binding

    def refresh(self) -> None:
        for binding in self._bindings:
            binding.refresh()

    def dashboard_state(self) -> DashboardState:
        latest = self.model.latest()
        return DashboardState(
            points=self.model.to_points(),
            rate=self.model.rate(),
            entry_count=len(self.model),
            latest_value=latest.accumulated_value if latest else None,
            connection=self.connection.state,
        )

    def reconnect_policy(self) -> ReconnectPolicy:
        return ReconnectPolicy(
            enabled=self.settings.reconnect_enabled,
            interval_s=self.settings.reconnect_interval_s,
            max_interval_s=self.settings.reconnect_max_interval_s,
        )

    def runner(self) -> ReconnectingRunner:
        return ReconnectingRunner(self.connection, self.reconnect_policy())
