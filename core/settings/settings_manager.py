"""
Settings manager implementation for the WSUS admin console.

Uses QSettings for persistent storage. Keys are dotted ('recovery.max_retries');
missing keys are seeded from DEFAULT_SETTINGS on construction.
"""
from typing import Any, Callable, Dict, List, Mapping
import copy
import threading
from PySide6.QtCore import QSettings, QObject, Signal
from core.logging.logger import get_logger, is_verbose_logging
from versioning import APP_NAME, APP_ORGANIZATION

logger = get_logger('SettingsManager')


DEFAULT_SETTINGS: Dict[str, Any] = {
    # Worker pool / poller
    'workers.max_workers': 4,
    'poller.interval_ms': 100,

    # Auto-recovery. Defaults are the constants the PowerShell repair used.
    'recovery.max_retries': 3,
    'recovery.retry_delay_s': 5.0,
    'recovery.backoff': 1.0,

    # Health probes
    'health.sql_instance': '.\\SQLEXPRESS',
    'health.database_name': 'SUSDB',
    'health.content_path': 'C:\\WSUS',
    'health.firewall_rules': [
        'WSUS HTTP Traffic (Port 8530)',
        'WSUS HTTPS Traffic (Port 8531)',
    ],
    'health.required_principals': [
        'NT AUTHORITY\\NETWORK SERVICE',
        'BUILTIN\\IIS_IUSRS',
        'NT AUTHORITY\\SYSTEM',
    ],
    'health.disk_warning_percent': 75.0,
    'health.disk_critical_percent': 90.0,
    'health.certificate_thumbprint': '',
    'health.certificate_warning_days': 30,
    'health.scheduled_task': 'WSUS Monthly Maintenance',

    # Dependent services in recovery order: database engine, web layer,
    # then the application service that needs both.
    'services.descriptors': [
        {
            'name': 'MSSQL$SQLEXPRESS',
            'display_name': 'SQL Server Express',
            'critical': True,
            'rank': 1,
            'start_timeout': 10.0,
        },
        {
            'name': 'W3SVC',
            'display_name': 'IIS',
            'critical': True,
            'rank': 2,
            'start_timeout': 5.0,
        },
        {
            'name': 'WsusService',
            'display_name': 'WSUS Service',
            'critical': True,
            'rank': 3,
            'start_timeout': 10.0,
        },
    ],

    # UI
    'ui.auto_refresh_ms': 30000,
    'ui.log_max_lines': 100,
}


class SettingsManager(QObject):
    """
    Centralized settings management for the console.

    Uses QSettings for persistent storage with organization/application name.
    Thread-safe with change notifications.
    """

    # Signal emitted when settings change
    settings_changed = Signal(str, object)  # key, new_value

    def __init__(self, organization: str = APP_ORGANIZATION,
                 application: str = APP_NAME):
        """
        Initialize the settings manager.

        Args:
            organization: Organization name for QSettings
            application: Application name for QSettings
        """
        super().__init__()

        self._settings = QSettings(organization, application)
        self._organization = organization
        self._application = application
        self._lock = threading.RLock()
        self._change_handlers: Dict[str, List[Callable[[Any, Any], None]]] = {}

        self._set_defaults()

        logger.info("SettingsManager initialized (%s/%s)", organization, application)

    def _set_defaults(self) -> None:
        """Set default values if not already present."""
        with self._lock:
            for key, value in DEFAULT_SETTINGS.items():
                if not self._settings.contains(key):
                    self._settings.setValue(key, copy.deepcopy(value))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting key in dot notation (e.g., 'recovery.max_retries')
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        with self._lock:
            return self._settings.value(key, default)

    @staticmethod
    def to_bool(value: Any, default: bool = False) -> bool:
        """Normalize a stored setting value to bool.

        Accepts common string forms ("true", "1", "yes", "on") as True and
        ("false", "0", "no", "off") as False. Falls back to the provided
        default when the value cannot be interpreted.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            v = value.strip().lower()
            if v in ("true", "1", "yes", "on"):
                return True
            if v in ("false", "0", "no", "off"):
                return False
            return default
        if value is None:
            return default
        return bool(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Convenience wrapper around get() that normalizes to bool."""
        return self.to_bool(self.get(key, default), default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Return an int setting; QSettings hands back strings for INI-backed values."""
        raw = self.get(key, default)
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not an int, using %r", key, raw, default)
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Return a float setting with the same coercion rules as get_int()."""
        raw = self.get(key, default)
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not a number, using %r", key, raw, default)
            return default

    def get_list(self, key: str, default: List[Any] | None = None) -> List[Any]:
        """Return a list setting.

        A single stored entry comes back from QSettings as a bare value and
        an empty list may come back as None; both are normalised.
        """
        fallback = list(default) if default is not None else []
        raw = self.get(key, None)
        if raw is None:
            return fallback
        if isinstance(raw, (list, tuple)):
            return list(raw)
        if isinstance(raw, str) and raw == "":
            return []
        return [raw]

    def get_application_name(self) -> str:
        """Return the QSettings application name for this manager."""
        return self._application

    def get_organization_name(self) -> str:
        """Return the QSettings organization name for this manager."""
        return self._organization

    def set(self, key: str, value: Any) -> None:
        """
        Set a setting value.

        Args:
            key: Setting key in dot notation
            value: Value to set
        """
        with self._lock:
            old_value = self._settings.value(key)
            self._settings.setValue(key, value)
            handlers = list(self._change_handlers.get(key, ()))

        self.settings_changed.emit(key, value)

        for handler in handlers:
            try:
                handler(value, old_value)
            except Exception as e:
                logger.error("Error in change handler for %s: %s", key, e)

        if is_verbose_logging():
            logger.debug("Setting changed: %s: %r -> %r", key, old_value, value)
        else:
            logger.debug("Setting changed: %s", key)

    def on_changed(self, key: str, handler: Callable[[Any, Any], None]) -> None:
        """
        Register a handler for when a specific setting changes.

        Args:
            key: Setting key to watch
            handler: Callback function(new_value, old_value)
        """
        with self._lock:
            self._change_handlers.setdefault(key, []).append(handler)
        logger.debug("Registered change handler for %s", key)

    def reset_to_defaults(self) -> None:
        """Reset every key to its default value."""
        with self._lock:
            self._settings.clear()
            for key, value in DEFAULT_SETTINGS.items():
                self._settings.setValue(key, copy.deepcopy(value))
            self._settings.sync()

        logger.info("Settings reset to defaults")
        self.settings_changed.emit('*', None)

    def contains(self, key: str) -> bool:
        """Check if a setting key exists."""
        with self._lock:
            return self._settings.contains(key)

    def clear(self) -> None:
        """Clear all settings (use with caution)."""
        with self._lock:
            self._settings.clear()
        logger.warning("All settings cleared")

    def get_mapping_list(self, key: str) -> List[Dict[str, Any]]:
        """Return a list of plain dicts stored under ``key`` (e.g. service descriptors)."""
        return [dict(item) for item in self.get_list(key) if isinstance(item, Mapping)]
