"""
Main console window.

Check Health / Repair / Cancel triggers, overall status, the issue and
warning lists of the last health check, and a timestamped activity log.
Trigger enablement follows ``AdminEngine.can_start()`` through the guard's
``busy_changed`` signal; the window keeps no busy flag of its own.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout, QLabel, QListWidget, QListWidgetItem, QMainWindow,
    QPlainTextEdit, QPushButton, QVBoxLayout, QWidget,
)

from core.logging.logger import get_logger
from engine.admin_engine import AdminEngine
from health.models import HealthCheckResult, HealthStatus, RepairOutcome
from versioning import APP_DISPLAY_NAME, APP_VERSION

logger = get_logger(__name__)

_STATUS_COLORS = {
    HealthStatus.HEALTHY: "#4caf50",
    HealthStatus.DEGRADED: "#ffb300",
    HealthStatus.UNHEALTHY: "#e53935",
}

_STYLE = """
    QMainWindow, QWidget#consoleRoot {
        background-color: rgb(30, 30, 36);
        color: rgb(225, 225, 230);
    }
    QPushButton {
        background-color: rgba(60, 60, 70, 220);
        border: 1px solid rgba(90, 90, 100, 200);
        border-radius: 4px;
        padding: 6px 14px;
        color: white;
    }
    QPushButton:disabled { color: rgba(255, 255, 255, 90); }
    QListWidget, QPlainTextEdit {
        background-color: rgb(22, 22, 26);
        border: 1px solid rgba(80, 80, 90, 180);
        color: rgb(210, 210, 215);
    }
"""


class ConsoleWindow(QMainWindow):
    """Dashboard for health checks and repair."""

    def __init__(self, engine: AdminEngine, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._engine = engine
        self._log_max_lines = max(1, engine.settings.get_int('ui.log_max_lines', 100))

        self.setWindowTitle(f"{APP_DISPLAY_NAME} {APP_VERSION}")
        self.resize(760, 560)
        self.setStyleSheet(_STYLE)
        self._setup_ui()

        engine.guard.busy_changed.connect(self._on_busy_changed)
        engine.health_checked.connect(self._show_health)
        engine.operation_failed.connect(self._on_operation_failed)
        engine.runner.operation_rejected.connect(
            lambda name: self.append_log(f"{name} rejected: another operation is running"))
        self._refresh_triggers()

    def _setup_ui(self) -> None:
        root = QWidget(self)
        root.setObjectName("consoleRoot")
        layout = QVBoxLayout(root)

        self.status_label = QLabel("Status: Unknown", root)
        self.status_label.setObjectName("statusLabel")
        self.status_label.setStyleSheet("font-size: 16px; font-weight: bold;")
        self.last_check_label = QLabel("Last check: Never", root)
        layout.addWidget(self.status_label)
        layout.addWidget(self.last_check_label)

        buttons = QHBoxLayout()
        self.check_button = QPushButton("Check Health", root)
        self.repair_button = QPushButton("Repair", root)
        self.cancel_button = QPushButton("Cancel", root)
        self.check_button.clicked.connect(self.on_check_health)
        self.repair_button.clicked.connect(self.on_repair)
        self.cancel_button.clicked.connect(self.on_cancel)
        for button in (self.check_button, self.repair_button, self.cancel_button):
            buttons.addWidget(button)
        buttons.addStretch(1)
        layout.addLayout(buttons)

        layout.addWidget(QLabel("Issues and warnings", root))
        self.findings_list = QListWidget(root)
        layout.addWidget(self.findings_list, 1)

        layout.addWidget(QLabel("Activity", root))
        self.log_view = QPlainTextEdit(root)
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumBlockCount(self._log_max_lines)
        layout.addWidget(self.log_view, 1)

        self.setCentralWidget(root)

    # Triggers ------------------------------------------------------------
    def on_check_health(self) -> None:
        if self._engine.run_health_check():
            self.append_log("Running health check...")

    def on_repair(self) -> None:
        if self._engine.run_repair(on_success=self._on_repair_done):
            self.append_log("Starting repair...")

    def on_cancel(self) -> None:
        if self._engine.cancel():
            self.append_log("Cancel requested")

    def _on_busy_changed(self, _busy: bool) -> None:
        self._refresh_triggers()

    def _refresh_triggers(self) -> None:
        idle = self._engine.can_start()
        self.check_button.setEnabled(idle)
        self.repair_button.setEnabled(idle)
        self.cancel_button.setEnabled(not idle)

    # Results -------------------------------------------------------------
    def _show_health(self, result: HealthCheckResult) -> None:
        color = _STATUS_COLORS.get(result.overall, "#ffffff")
        self.status_label.setText(f"Status: {result.overall.value}")
        self.status_label.setStyleSheet(f"font-size: 16px; font-weight: bold; color: {color};")
        self.last_check_label.setText(f"Last check: {result.timestamp:%Y-%m-%d %H:%M:%S}")

        self.findings_list.clear()
        for issue in result.issues:
            item = QListWidgetItem(f"[ISSUE] {issue}")
            item.setForeground(Qt.GlobalColor.red)
            self.findings_list.addItem(item)
        for warning in result.warnings:
            item = QListWidgetItem(f"[WARN] {warning}")
            item.setForeground(Qt.GlobalColor.yellow)
            self.findings_list.addItem(item)
        self.append_log(f"Health check complete: {result.summary()}")

    def _on_repair_done(self, outcome: RepairOutcome) -> None:
        recovery = outcome.recovery
        for name in recovery.already_running:
            self.append_log(f"[OK] {name} already running")
        for name in recovery.recovered:
            self.append_log(f"[OK] {name} started")
        for name in recovery.failed:
            self.append_log(f"[FAIL] Failed to start {name}")
        self.append_log("Repair completed successfully" if recovery.success
                        else "Repair completed with errors")

    def _on_operation_failed(self, name: str, message: str) -> None:
        self.append_log(f"{name} failed: {message}")

    def append_log(self, message: str) -> None:
        self.log_view.appendPlainText(f"[{datetime.now():%H:%M:%S}] {message}")

    def log_line_count(self) -> int:
        return self.log_view.document().blockCount()

    def closeEvent(self, event: QCloseEvent) -> None:
        self._engine.stop_auto_refresh()
        super().closeEvent(event)

