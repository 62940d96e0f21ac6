"""Decoding of inbound feed messages into explicit variants.

The collector sends three shapes over the socket::

    [{"time": 1700000000, "accumulatedValue": 12}, ...]   # full log
    {"log": [{"time": ..., "accumulatedValue": ...}, ...]} # full log
    {"time": 1700000010, "accumulatedValue": 13}           # one new entry

Everything else is rejected with :class:`MalformedMessage`.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from energy_collector.errors import MalformedMessage

TIME_KEY = "time"
VALUE_KEY = "accumulatedValue"
LOG_KEY = "log"


@dataclass(frozen=True, order=True)
class LogEntry:
    """One accumulated reading at a whole-second timestamp."""

    time: int
    accumulated_value: float

    @property
    def time_ms(self) -> int:
        return self.time * 1000

    def to_wire(self) -> Dict[str, Any]:
        return {TIME_KEY: self.time, VALUE_KEY: self.accumulated_value}

    def to_point(self) -> Dict[str, Any]:
        return {"x": self.time_ms, "y": self.accumulated_value}


@dataclass(frozen=True)
class Snapshot:
    """Full replacement of the series."""

    entries: Tuple[LogEntry, ...]


@dataclass(frozen=True)
class SingleEntry:
    """One incremental entry."""

    entry: LogEntry


Message = Union[Snapshot, SingleEntry]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_entry(obj: Any) -> LogEntry:
    """Normalise a ``{time, accumulatedValue}`` mapping into a :class:`LogEntry`."""
    if not isinstance(obj, dict):
        raise MalformedMessage(f"log entry must be an object, got {type(obj).__name__}")
    if TIME_KEY not in obj or VALUE_KEY not in obj:
        raise MalformedMessage(f"log entry needs '{TIME_KEY}' and '{VALUE_KEY}': {obj!r}")
    raw_time = obj[TIME_KEY]
    raw_value = obj[VALUE_KEY]
    if not _is_number(raw_time) or not _is_number(raw_value):
        raise MalformedMessage(f"log entry fields must be numeric: {obj!r}")
    if isinstance(raw_time, float):
        if not raw_time.is_integer():
            raise MalformedMessage(f"time must be whole seconds, got {raw_time!r}")
        raw_time = int(raw_time)
    value = float(raw_value)
    if not math.isfinite(value):
        raise MalformedMessage(f"accumulatedValue must be finite, got {raw_value!r}")
    return LogEntry(time=raw_time, accumulated_value=value)


def _parse_log(items: list) -> Snapshot:
    return Snapshot(entries=tuple(parse_entry(item) for item in items))


def decode_message(payload: Any) -> Message:
    """Classify a raw payload (text, bytes or decoded JSON) as snapshot or single entry."""
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessage(f"payload is not UTF-8: {exc}") from exc
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise MalformedMessage(f"payload is not JSON: {exc}") from exc

    if isinstance(payload, list):
        return _parse_log(payload)
    if isinstance(payload, dict):
        if LOG_KEY in payload:
            log = payload[LOG_KEY]
            if not isinstance(log, list):
                raise MalformedMessage(f"'{LOG_KEY}' must be an array, got {type(log).__name__}")
            return _parse_log(log)
        if TIME_KEY in payload:
            return SingleEntry(entry=parse_entry(payload))
    raise MalformedMessage(f"unrecognised message shape: {payload!r}")
