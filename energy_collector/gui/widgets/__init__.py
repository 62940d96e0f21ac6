"""Qt widgets for the collector dashboard."""

from .telemetry_plot import RateGauge, TelemetryPlot

__all__ = ["RateGauge", "TelemetryPlot"]
