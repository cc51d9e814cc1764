"""
Tests for the console window: trigger enablement, results display and log cap.
"""
import threading
from datetime import datetime

import pytest

from engine import AdminEngine, Collaborators
from health import HealthCheckResult, HealthStatus
from tests._admin_fakes import FakeServiceControl
from ui.console_window import ConsoleWindow


@pytest.fixture
def engine(settings_manager, worker_pool, ui_bridge):
    settings_manager.set('poller.interval_ms', 10)
    settings_manager.set('ui.log_max_lines', 5)
    eng = AdminEngine(
        settings_manager,
        Collaborators(FakeServiceControl(running=["MSSQL$SQLEXPRESS", "W3SVC"])),
        pool=worker_pool,
        bridge=ui_bridge,
        sleep=lambda _s: None,
    )
    yield eng
    eng.shutdown()


@pytest.fixture
def window(qtbot, engine):
    win = ConsoleWindow(engine)
    qtbot.addWidget(win)
    return win


@pytest.mark.qt
def test_triggers_follow_guard(qtbot, engine, window):
    assert window.check_button.isEnabled()
    assert window.repair_button.isEnabled()
    assert not window.cancel_button.isEnabled()

    release = threading.Event()
    done = []
    engine.run("Export", lambda: release.wait(5.0), done.append)
    assert not window.check_button.isEnabled()
    assert not window.repair_button.isEnabled()
    assert window.cancel_button.isEnabled()

    release.set()
    qtbot.waitUntil(lambda: bool(done), timeout=5000)
    assert window.check_button.isEnabled()
    assert not window.cancel_button.isEnabled()


@pytest.mark.qt
def test_check_health_shows_findings(qtbot, engine, window):
    window.on_check_health()
    qtbot.waitUntil(lambda: engine.last_health is not None, timeout=5000)
    assert window.status_label.text() == "Status: Unhealthy"
    items = [window.findings_list.item(i).text() for i in range(window.findings_list.count())]
    assert items == ["[ISSUE] WSUS Service is not running"]


@pytest.mark.qt
def test_show_health_lists_warnings_after_issues(window):
    result = HealthCheckResult(
        overall=HealthStatus.UNHEALTHY,
        probes={},
        issues=("Database connection failed",),
        warnings=("Missing firewall rules: a",),
        timestamp=datetime(2026, 3, 1, 9, 30, 0),
    )
    window._show_health(result)
    assert window.findings_list.count() == 2
    assert window.findings_list.item(1).text() == "[WARN] Missing firewall rules: a"
    assert window.last_check_label.text() == "Last check: 2026-03-01 09:30:00"


@pytest.mark.qt
def test_log_is_capped(window):
    for i in range(20):
        window.append_log(f"line {i}")
    assert window.log_line_count() == 5
    assert window.log_view.toPlainText().splitlines()[-1].endswith("line 19")


@pytest.mark.qt
def test_repair_logs_outcome(qtbot, engine, window):
    window.on_repair()
    qtbot.waitUntil(lambda: "Repair completed" in window.log_view.toPlainText(), timeout=5000)
    text = window.log_view.toPlainText()
    assert "[OK] WsusService started" in text
    assert "Repair completed successfully" in text
    assert window.status_label.text() == "Status: Healthy"
