"""Error kinds and user-facing notifications."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class NoticeKind(Enum):
    """Categories of non-fatal conditions surfaced to the user."""

    CONNECTION_UNAVAILABLE = "connection_unavailable"
    MALFORMED_MESSAGE = "malformed_message"
    DOWNLOAD_FAILED = "download_failed"
    CONFIG_MODE_FAILED = "config_mode_failed"
    INITIAL_VALUE_FAILED = "initial_value_failed"
    RESET_CONFIG_FAILED = "reset_config_failed"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    """One message for the host to show; never fatal."""

    kind: NoticeKind
    message: str

    @property
    def is_error(self) -> bool:
        return self.kind is not NoticeKind.INFO


Notifier = Callable[[Notification], None]


def ignore_notification(notification: Notification) -> None:
    """Default notifier for hosts that do not display anything."""


class CollectorError(RuntimeError):
    """Base class for energy collector client errors."""


class MalformedMessage(CollectorError):
    """Raised when an inbound payload has no recognised shape."""


class ConnectionUnavailable(CollectorError):
    """Raised when a send is attempted while the connection is not open."""


class DownloadFailed(CollectorError):
    """Raised when the log file could not be retrieved."""


class ConfigModeFailed(CollectorError):
    """Raised when the device rejects the configuration-mode request."""


class InitialValueFailed(CollectorError):
    """Raised when the device does not accept a new initial accumulated value."""


class ResetConfigFailed(CollectorError):
    """Raised when the device does not reset its network configuration."""


class SettingsError(CollectorError):
    """Raised when the settings file holds invalid values."""
