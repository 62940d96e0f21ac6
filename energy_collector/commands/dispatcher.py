"""Administrative commands: clear log, download log, device configuration."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Type

import requests

from energy_collector.connection import DELETE_LOG_REQUEST, ConnectionManager
from energy_collector.errors import (
    CollectorError,
    ConfigModeFailed,
    DownloadFailed,
    InitialValueFailed,
    Notification,
    NoticeKind,
    Notifier,
    ResetConfigFailed,
    ignore_notification,
)
from energy_collector.io import CollectorSettings
from energy_collector.telemetry import SeriesModel, format_value

logger = logging.getLogger(__name__)

CONFIG_MODE_WARNING = (
    "Configuration mode requested. The collector is switching networks and "
    "may be unreachable until it is configured."
)
RESET_CONFIG_WARNING = (
    "Network configuration reset. The collector restarts in configuration "
    "mode and is unreachable until it is set up again."
)
INITIAL_VALUE_KEY = "initialValue"


class CommandDispatcher:
    """Turns user intents into device requests.

    Each command is isolated: a failure is reported through ``notify`` and
    never touches the series or the connection state.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        model: SeriesModel,
        settings: Optional[CollectorSettings] = None,
        session: Optional[requests.Session] = None,
        notify: Optional[Notifier] = None,
    ) -> None:
        self.connection = connection
        self.model = model
        self.settings = settings or CollectorSettings()
        self.session = session or requests.Session()
        self.notify = notify or ignore_notification

    # ------------------------------------------------------------------
    def clear_log(self) -> bool:
        """Ask the device to delete its log and clear the local copy right away.

        The next full-log snapshot corrects the local series if the device
        did not act on the request.
        """
        self.model.clear()
        sent = self.connection.send(DELETE_LOG_REQUEST)
        if not sent:
            self.notify(Notification(
                NoticeKind.CONNECTION_UNAVAILABLE,
                "Not connected to the collector; the device log was not cleared.",
            ))
        return sent

    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self.settings.http_base_url}{path}"

    def _save_log(self, target: Path) -> int:
        url = self._url(self.settings.download_log_path)
        try:
            response = self.session.get(url, timeout=self.settings.http_timeout_s)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DownloadFailed(f"Could not download log from {url}: {exc}") from exc
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
        except OSError as exc:
            raise DownloadFailed(f"Could not save log to {target}: {exc}") from exc
        return len(response.content)

    def _default_destination(self) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.settings.download_dir / f"datalog_{stamp}.csv"

    async def download_log(self, destination: Optional[Path] = None) -> Optional[Path]:
        """Fetch the persisted log file and save it. Returns the path, or None on failure."""
        target = destination or self._default_destination()
        try:
            size = await asyncio.to_thread(self._save_log, target)
        except DownloadFailed as exc:
            logger.error("Log download failed: %s", exc)
            self.notify(Notification(NoticeKind.DOWNLOAD_FAILED, str(exc)))
            return None
        logger.info("Saved %d bytes of log data to %s", size, target)
        self.notify(Notification(NoticeKind.INFO, f"Log saved to {target}"))
        return target

    # ------------------------------------------------------------------
    def _post(self, path: str, error: Type[CollectorError], payload: Optional[Dict[str, Any]] = None) -> None:
        url = self._url(path)
        try:
            response = self.session.post(url, json=payload, timeout=self.settings.http_timeout_s)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise error(f"Request to {url} failed: {exc}") from exc

    async def _device_request(
        self,
        path: str,
        error: Type[CollectorError],
        kind: NoticeKind,
        success: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            await asyncio.to_thread(self._post, path, error, payload)
        except error as exc:
            logger.error("%s", exc)
            self.notify(Notification(kind, str(exc)))
            return False
        logger.info("Collector accepted request to %s", path)
        self.notify(Notification(NoticeKind.INFO, success))
        return True

    async def enter_config_mode(self) -> bool:
        """Ask the device to switch into its network configuration mode."""
        return await self._device_request(
            self.settings.config_mode_path,
            ConfigModeFailed,
            NoticeKind.CONFIG_MODE_FAILED,
            CONFIG_MODE_WARNING,
        )

    async def reset_config(self) -> bool:
        """Ask the device to forget its stored network credentials."""
        return await self._device_request(
            self.settings.reset_config_path,
            ResetConfigFailed,
            NoticeKind.RESET_CONFIG_FAILED,
            RESET_CONFIG_WARNING,
        )

    async def set_initial_value(self, value: float) -> bool:
        """Set the accumulated value the device counts on from.

        The local series is left alone; the device's next full log carries
        the new totals.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            message = f"Initial value must be a non-negative number, got {value!r}"
            logger.warning("%s", message)
            self.notify(Notification(NoticeKind.INITIAL_VALUE_FAILED, message))
            return False
        return await self._device_request(
            self.settings.initial_value_path,
            InitialValueFailed,
            NoticeKind.INITIAL_VALUE_FAILED,
            f"Initial value set to {format_value(value)}.",
            payload={INITIAL_VALUE_KEY: value},
        )
