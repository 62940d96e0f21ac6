"""Accumulated-value chart and rate gauge embedded in Qt."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import matplotlib.dates as mdates
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QGroupBox, QLabel, QSizePolicy, QVBoxLayout, QWidget
from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.figure import Figure


class TelemetryPlot(QWidget):
    """Line chart of accumulated impulses over time."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._points: Sequence[Dict[str, Any]] = ()

        self._figure = Figure(figsize=(8, 5))
        self._canvas = FigureCanvas(self._figure)
        self._canvas.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)

        layout = QVBoxLayout()
        layout.addWidget(self._canvas)
        self.setLayout(layout)

        self._ax = self._figure.add_subplot(111)
        self._ax.set_title("Energy Collector Data")
        self._ax.set_xlabel("Time")
        self._ax.set_ylabel("Accumulated Value")
        self._ax.grid(True, linestyle="--", linewidth=0.3)
        self._ax.xaxis.set_major_formatter(mdates.DateFormatter("%H:%M:%S"))

        self._line = self._ax.plot([], [], color="tab:blue", label="Impulse Data")[0]
        self._ax.legend(loc="upper left")
        self._figure.tight_layout()

    def set_data(self, points: Sequence[Dict[str, Any]]) -> None:
        self._points = points
        self.refresh()

    def set_gauge(self, value: float) -> None:
        # The chart has no gauge; RateGauge handles it.
        pass

    def refresh(self) -> None:
        times = [datetime.fromtimestamp(point["x"] / 1000.0) for point in self._points]
        values = [point["y"] for point in self._points]
        self._line.set_data(times, values)

        if times:
            x_min, x_max = mdates.date2num(times[0]), mdates.date2num(times[-1])
            if x_min == x_max:
                x_max = x_min + 1.0 / 1440
            self._ax.set_xlim(x_min, x_max)
            y_min, y_max = min(values), max(values)
            if y_min == y_max:
                delta = max(1.0, abs(y_min) * 0.1)
                y_min -= delta
                y_max += delta
            self._ax.set_ylim(y_min, y_max + (y_max - y_min) * 0.05)

        self._canvas.draw_idle()


class RateGauge(QGroupBox):
    """Numeric readout of impulses per hour."""

    def __init__(self, title: str = "Impulses / hour") -> None:
        super().__init__(title)
        self.value_label = QLabel("0.00")
        self.value_label.setAlignment(Qt.AlignCenter)
        font = self.value_label.font()
        font.setPointSize(28)
        font.setBold(True)
        self.value_label.setFont(font)
        layout = QVBoxLayout()
        layout.addWidget(self.value_label)
        self.setLayout(layout)

    def set_data(self, points: Sequence[Dict[str, Any]]) -> None:
        pass

    def set_gauge(self, value: float) -> None:
        self.value_label.setText(f"{value:.2f}")
