"""Qt-based dashboard for the energy collector feed."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Coroutine, Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from energy_collector.connection import ConnectionState
from energy_collector.errors import Notification, NoticeKind
from energy_collector.gui.widgets import RateGauge, TelemetryPlot
from energy_collector.session import CollectorSession, DashboardState
from energy_collector.telemetry import export_series, format_value

logger = logging.getLogger(__name__)

WINDOW_DEFAULT_SIZE = (1200, 760)

STATE_LABELS = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting…",
    ConnectionState.OPEN: "Connected",
    ConnectionState.CLOSED: "Connection closed",
}


class QtBridge(QObject):
    """Carries connection events from the network thread into the GUI thread."""

    message_received = Signal(object)
    state_changed = Signal(object)
    notified = Signal(object)

    # ConnectionListener
    def on_open(self) -> None:
        pass

    def on_message(self, raw: Any) -> None:
        self.message_received.emit(raw)

    def on_close(self) -> None:
        pass

    def on_state(self, state: ConnectionState) -> None:
        self.state_changed.emit(state)

    def notify(self, notification: Notification) -> None:
        self.notified.emit(notification)


class ConnectionWorker:
    """Runs the session's connection loop on a private asyncio loop in a daemon thread."""

    def __init__(self, session: CollectorSession) -> None:
        self.session = session
        self.loop = asyncio.new_event_loop()
        self._runner = session.runner()
        self._task: Optional[asyncio.Task] = None
        self._thread = threading.Thread(target=self._run, name="collector-connection", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self._task = self.loop.create_task(self._runner.run())
        try:
            # Keeps serving command coroutines after the runner gives up.
            self.loop.run_forever()
        finally:
            self.loop.close()

    def submit(self, coro: Coroutine):
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    async def _shutdown(self) -> None:
        await self._runner.stop()
        if self._task is not None:
            await self._task
        self.loop.call_soon(self.loop.stop)

    def stop(self) -> None:
        if not self._thread.is_alive():
            return
        try:
            self.submit(self._shutdown()).result(timeout=5.0)
        except Exception:
            logger.exception("Connection worker did not shut down cleanly")
            self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=2.0)


class CommandPane(QWidget):
    """Buttons for the device's administrative commands."""

    clear_requested = Signal()
    download_requested = Signal()
    config_requested = Signal()
    initial_value_requested = Signal()
    reset_config_requested = Signal()
    export_requested = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.clear_btn = QPushButton("Clear Log")
        self.download_btn = QPushButton("Download Log")
        self.config_btn = QPushButton("Configuration Mode")
        self.initial_value_btn = QPushButton("Set Initial Value")
        self.reset_config_btn = QPushButton("Reset Wi-Fi Config")
        self.export_btn = QPushButton("Export CSV")

        layout = QHBoxLayout()
        for button in (
            self.clear_btn,
            self.download_btn,
            self.initial_value_btn,
            self.config_btn,
            self.reset_config_btn,
            self.export_btn,
        ):
            layout.addWidget(button)
        layout.addStretch()
        self.setLayout(layout)

        self.clear_btn.clicked.connect(self.clear_requested.emit)
        self.download_btn.clicked.connect(self.download_requested.emit)
        self.config_btn.clicked.connect(self.config_requested.emit)
        self.initial_value_btn.clicked.connect(self.initial_value_requested.emit)
        self.reset_config_btn.clicked.connect(self.reset_config_requested.emit)
        self.export_btn.clicked.connect(self.export_requested.emit)


class CollectorWindow(QMainWindow):
    """Main window: chart, rate gauge, command buttons and connection status."""

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Energy Collector")
        self.resize(*WINDOW_DEFAULT_SIZE)

        self.telemetry_plot = TelemetryPlot()
        self.rate_gauge = RateGauge()
        self.command_pane = CommandPane()
        self.entries_label = QLabel("Entries: 0")

        side = QVBoxLayout()
        side.addWidget(self.rate_gauge)
        side.addWidget(self.entries_label)
        side.addStretch()

        body = QHBoxLayout()
        body.addWidget(self.telemetry_plot, 4)
        body.addLayout(side, 1)

        root = QVBoxLayout()
        root.addLayout(body)
        root.addWidget(self.command_pane)

        central = QWidget()
        central.setLayout(root)
        self.setCentralWidget(central)
        self.update_connection(ConnectionState.DISCONNECTED)

    def update_connection(self, state: ConnectionState) -> None:
        self.statusBar().showMessage(STATE_LABELS.get(state, state.name))

    def update_summary(self, state: DashboardState) -> None:
        if state.latest_value is None:
            self.entries_label.setText(f"Entries: {state.entry_count}")
        else:
            self.entries_label.setText(f"Entries: {state.entry_count}\nTotal: {format_value(state.latest_value)}")

    def show_notification(self, notification: Notification) -> None:
        if notification.kind is NoticeKind.MALFORMED_MESSAGE:
            self.statusBar().showMessage(f"Ignored message: {notification.message}", 5000)
        elif notification.kind is NoticeKind.INFO:
            QMessageBox.information(self, "Energy Collector", notification.message)
        else:
            QMessageBox.warning(self, "Energy Collector", notification.message)


def run_gui(session_factory, refresh_interval_ms: Optional[int] = None) -> None:
    """Launch the dashboard.

    ``session_factory`` receives the notifier and state callback and returns a
    :class:`CollectorSession` whose connection does not feed the model itself.
    """
    app = QApplication.instance() or QApplication([])
    bridge = QtBridge()
    session: CollectorSession = session_factory(bridge.notify, bridge.on_state)
    session.connection.add_listener(bridge)

    window = CollectorWindow()
    session.attach_sink(window.telemetry_plot)
    session.attach_sink(window.rate_gauge)
    session.model.subscribe(lambda series: window.update_summary(session.dashboard_state()))

    bridge.message_received.connect(session.model.ingest)
    bridge.state_changed.connect(window.update_connection)
    bridge.notified.connect(window.show_notification)

    worker = ConnectionWorker(session)

    def handle_download() -> None:
        default = session.settings.download_dir / f"datalog_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        filename, _ = QFileDialog.getSaveFileName(window, "Save Log", str(default), "CSV files (*.csv)")
        if filename:
            worker.submit(session.commands.download_log(Path(filename)))

    def handle_config() -> None:
        answer = QMessageBox.question(
            window,
            "Configuration Mode",
            "The collector will leave its current network and may become unreachable. Continue?",
        )
        if answer == QMessageBox.Yes:
            worker.submit(session.commands.enter_config_mode())

    def handle_reset_config() -> None:
        answer = QMessageBox.question(
            window,
            "Reset Wi-Fi Configuration",
            "The collector will forget its network and restart in configuration mode. Continue?",
        )
        if answer == QMessageBox.Yes:
            worker.submit(session.commands.reset_config())

    def handle_initial_value() -> None:
        latest = session.model.latest()
        current = latest.accumulated_value if latest else 0.0
        value, accepted = QInputDialog.getDouble(
            window, "Set Initial Value", "Accumulated value:", current, 0.0, 1e12, 2
        )
        if accepted:
            worker.submit(session.commands.set_initial_value(value))

    def handle_export() -> None:
        filename, _ = QFileDialog.getSaveFileName(window, "Export Series", "series.csv", "CSV files (*.csv)")
        if not filename:
            return
        try:
            export_series(session.model.snapshot(), Path(filename))
        except OSError as exc:
            QMessageBox.critical(window, "Export Failed", f"Could not write {filename}: {exc}")

    window.command_pane.clear_requested.connect(session.commands.clear_log)
    window.command_pane.download_requested.connect(handle_download)
    window.command_pane.config_requested.connect(handle_config)
    window.command_pane.reset_config_requested.connect(handle_reset_config)
    window.command_pane.initial_value_requested.connect(handle_initial_value)
    window.command_pane.export_requested.connect(handle_export)

    timer = QTimer()
    timer.timeout.connect(session.refresh)
    timer.start(refresh_interval_ms or session.settings.refresh_interval_ms)

    worker.start()
    window.show()
    try:
        app.exec()
    finally:
        worker.stop()
