"""Series model, message decoding and rate derivation."""

from .export import LogEntryWriter, export_series, format_value
from .messages import LogEntry, Message, SingleEntry, Snapshot, decode_message, parse_entry
from .rate import compute_rate, round_half_away
from .series import SeriesModel, SeriesView

__all__ = [
    "LogEntry",
    "LogEntryWriter",
    "Message",
    "SeriesModel",
    "SeriesView",
    "SingleEntry",
    "Snapshot",
    "compute_rate",
    "decode_message",
    "export_series",
    "format_value",
    "parse_entry",
    "round_half_away",
]
