"""Impulse rate derived from the accumulated series."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from energy_collector.telemetry.messages import LogEntry

SECONDS_PER_HOUR = 3600


def round_half_away(value: float, places: int = 2) -> float:
    """Round like a calculator does: halves move away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_rate(series: Sequence[LogEntry]) -> float:
    """Return impulses/hour for a time-sorted series, 0.0 when undefined."""
    if len(series) < 2:
        return 0.0
    span_hours = (series[-1].time - series[0].time) / SECONDS_PER_HOUR
    if span_hours == 0:
        return 0.0
    rate = (len(series) / span_hours) / SECONDS_PER_HOUR
    return round_half_away(rate)
