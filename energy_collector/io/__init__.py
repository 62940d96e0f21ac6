"""I/O utilities (configuration, persistence)."""

from .settings import (
    DEFAULT_SETTINGS_PATH,
    CollectorSettings,
    find_project_root,
    load_collector_settings,
    load_settings,
    parse_settings,
    update_settings_value,
)

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "CollectorSettings",
    "find_project_root",
    "load_collector_settings",
    "load_settings",
    "parse_settings",
    "update_settings_value",
]
