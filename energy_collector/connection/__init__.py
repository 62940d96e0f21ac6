"""Streaming connection to the energy collector."""

from __future__ import annotations

from .client import (
    DELETE_LOG_REQUEST,
    WHOLE_LOG_REQUEST,
    ConnectionListener,
    ConnectionManager,
    ConnectionState,
    default_connector,
)
from .reconnect import ReconnectingRunner, ReconnectPolicy

__all__ = [
    "DELETE_LOG_REQUEST",
    "WHOLE_LOG_REQUEST",
    "ConnectionListener",
    "ConnectionManager",
    "ConnectionState",
    "ReconnectingRunner",
    "ReconnectPolicy",
    "default_connector",
]
