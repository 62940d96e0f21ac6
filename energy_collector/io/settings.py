import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml

from energy_collector.errors import SettingsError

PROJECT_MARKERS: Iterable[str] = (".git", "pyproject.toml", "config")
DEFAULT_SETTINGS_PATH = Path("config/settings.yml")

PathLike = Union[str, os.PathLike]


@dataclass
class CollectorSettings:
    """Typed view of ``settings.yml``."""

    host: str = "energy-collector.local"
    websocket_path: str = "/ws"
    http_scheme: str = "http"
    download_log_path: str = "/download"
    config_mode_path: str = "/configMode"
    initial_value_path: str = "/initialValue"
    reset_config_path: str = "/resetConfig"
    open_timeout_s: float = 10.0
    http_timeout_s: float = 10.0
    refresh_interval_ms: int = 1000
    reconnect_enabled: bool = True
    reconnect_interval_s: float = 2.0
    reconnect_max_interval_s: float = 30.0
    download_dir: Path = Path("output/downloads")

    @property
    def websocket_url(self) -> str:
        scheme = "wss" if self.http_scheme == "https" else "ws"
        return f"{scheme}://{self.host}{self.websocket_path}"

    @property
    def http_base_url(self) -> str:
        return f"{self.http_scheme}://{self.host}"


def find_project_root(markers: Iterable[str] = PROJECT_MARKERS) -> Path:
    """Attempt to locate the repository root by walking up until a marker file/dir appears."""
    start = Path(__file__).resolve().parent
    for candidate in [start] + list(start.parents):
        for marker in markers:
            if (candidate / marker).exists():
                return candidate
    return start


def _resolve(path: PathLike, project_root: Path) -> Path:
    target = Path(path)
    if not target.is_absolute():
        target = project_root / target
    return target


def _load_yaml(target: Path) -> Dict[str, Any]:
    if not target.exists():
        raise FileNotFoundError(f"settings file not found: {target}")
    try:
        with open(target, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in settings file {target}: {exc}") from exc


def load_settings(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load the YAML settings file, defaulting to ``config/settings.yml`` under the project root."""
    project_root = find_project_root()
    target = _resolve(path or DEFAULT_SETTINGS_PATH, project_root)
    return _load_yaml(target)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise SettingsError(f"'{name}' must be a mapping")
    return section


def _number(section: Dict[str, Any], key: str, default: float, context: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise SettingsError(f"'{context}.{key}' must be a positive number, got {value!r}")
    return float(value)


def _path_segment(section: Dict[str, Any], key: str, default: str, context: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.startswith("/"):
        raise SettingsError(f"'{context}.{key}' must be a path starting with '/', got {value!r}")
    return value


def parse_settings(data: Dict[str, Any]) -> CollectorSettings:
    """Validate a raw settings mapping and fill in defaults."""
    defaults = CollectorSettings()
    device = _section(data, "device")
    endpoints = _section(data, "endpoints")
    timeouts = _section(data, "timeouts")
    gui = _section(data, "gui")
    reconnect = _section(data, "reconnect")
    downloads = _section(data, "downloads")

    host = device.get("host", defaults.host)
    if not isinstance(host, str) or not host:
        raise SettingsError("'device.host' must be a non-empty string")
    scheme = device.get("http_scheme", defaults.http_scheme)
    if scheme not in ("http", "https"):
        raise SettingsError(f"Unsupported 'device.http_scheme' {scheme!r}")

    return CollectorSettings(
        host=host,
        websocket_path=_path_segment(device, "websocket_path", defaults.websocket_path, "device"),
        http_scheme=scheme,
        download_log_path=_path_segment(endpoints, "download_log", defaults.download_log_path, "endpoints"),
        config_mode_path=_path_segment(endpoints, "config_mode", defaults.config_mode_path, "endpoints"),
        initial_value_path=_path_segment(endpoints, "initial_value", defaults.initial_value_path, "endpoints"),
        reset_config_path=_path_segment(endpoints, "reset_config", defaults.reset_config_path, "endpoints"),
        open_timeout_s=_number(timeouts, "open_s", defaults.open_timeout_s, "timeouts"),
        http_timeout_s=_number(timeouts, "http_s", defaults.http_timeout_s, "timeouts"),
        refresh_interval_ms=int(_number(gui, "refresh_interval_ms", defaults.refresh_interval_ms, "gui")),
        reconnect_enabled=bool(reconnect.get("enabled", defaults.reconnect_enabled)),
        reconnect_interval_s=_number(reconnect, "interval_s", defaults.reconnect_interval_s, "reconnect"),
        reconnect_max_interval_s=_number(reconnect, "max_interval_s", defaults.reconnect_max_interval_s, "reconnect"),
        download_dir=Path(downloads.get("directory", str(defaults.download_dir))),
    )


def load_collector_settings(path: Optional[PathLike] = None) -> CollectorSettings:
    """Load and validate ``settings.yml`` in one step."""
    settings = parse_settings(load_settings(path))
    if not settings.download_dir.is_absolute():
        settings.download_dir = find_project_root() / settings.download_dir
    return settings


def update_settings_value(identifier: str, value: Any, path: Optional[PathLike] = None) -> None:
    """Update a value inside ``settings.yml`` given a dotted identifier, e.g. ``device.host``."""

    project_root = find_project_root()
    target = _resolve(path or DEFAULT_SETTINGS_PATH, project_root)
    data = _load_yaml(target)

    parts = identifier.split(".") if identifier else []
    if not parts:
        raise ValueError("Identifier must not be empty")

    cursor = data
    for key in parts[:-1]:
        if key not in cursor:
            raise KeyError(f"Missing key '{key}' in settings for '{identifier}'")
        cursor = cursor[key]
        if not isinstance(cursor, dict):
            raise TypeError(f"Expected mapping at '{key}' but found {type(cursor).__name__}")
    cursor[parts[-1]] = value

    with open(target, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
