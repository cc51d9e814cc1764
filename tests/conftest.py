"""
Shared pytest fixtures for admin console tests.
"""
import pytest
import sys
from PySide6.QtWidgets import QApplication


@pytest.fixture(scope='session')
def qt_app():
    """Create QApplication instance for tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app
    # Don't quit - causes issues with pytest


@pytest.fixture
def settings_manager(qt_app):
    """Create SettingsManager instance with fresh defaults for testing."""
    from core.settings import SettingsManager
    manager = SettingsManager(organization="Test", application="WsusConsoleTest")
    manager.reset_to_defaults()
    yield manager
    # Clear test settings
    manager.clear()


@pytest.fixture
def worker_pool():
    """Create WorkerPool instance for testing."""
    from core.threading import WorkerPool
    pool = WorkerPool(max_workers=2, name="test")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def ui_bridge(qt_app):
    """Create UiDispatchBridge bound to the test QApplication."""
    from core.threading import UiDispatchBridge
    return UiDispatchBridge()
