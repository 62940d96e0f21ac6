"""CSV export of the local series."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from energy_collector.telemetry.messages import TIME_KEY, VALUE_KEY, LogEntry


def format_value(value: float) -> str:
    """Write whole counts without a decimal part and everything else at full precision."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class LogEntryWriter:
    """Append-only CSV writer for log entries, in the collector's column layout."""

    def __init__(self, path: Path, write_header: bool = True) -> None:
        self.path = path
        self._file = None
        self._writer = None
        self._write_header = write_header

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        exists = self.path.exists() and self.path.stat().st_size > 0
        self._file = self.path.open("a", newline="")
        self._writer = csv.writer(self._file)
        if self._write_header and not exists:
            self._writer.writerow([TIME_KEY, VALUE_KEY])

    def close(self) -> None:
        if self._file:
            self._file.close()
        self._file = None
        self._writer = None

    def write(self, entry: LogEntry) -> None:
        if not self._writer:
            self.open()
        self._writer.writerow([entry.time, format_value(entry.accumulated_value)])
        self._file.flush()

    def write_many(self, entries: Iterable[LogEntry]) -> None:
        for entry in entries:
            self.write(entry)


def export_series(entries: Iterable[LogEntry], path: Path) -> Path:
    """Write ``entries`` to a fresh CSV file at ``path``."""
    if path.exists():
        path.unlink()
    with LogEntryWriter(path) as writer:
        writer.write_many(entries)
    return path
