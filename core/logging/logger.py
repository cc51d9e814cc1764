"""
Centralized logging configuration for the WSUS admin console.

Uses a rotating file handler with logs stored in the logs/ directory.
Console output is only attached in debug mode and collapses repeated
DEBUG/INFO lines from the same source.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.logging.tags import TAG_FALLBACK, TAG_GUARD, TAG_RECOVERY


_VERBOSE: bool = False
# Base directory for logs. Updated by setup_logging() for frozen builds so
# get_log_dir() always points at the effective runtime location.
_BASE_DIR: Path = Path(__file__).parent.parent.parent

_env_log_dir = os.getenv("WSUS_CONSOLE_LOG_DIR")

LOG_FORMAT = '%(asctime)s - %(name)-30s - %(levelname)-8s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to console output."""

    COLORS = {
        'DEBUG': '\033[36m',       # Cyan
        'INFO': '\033[32m',        # Green
        'WARNING': '\033[33m',     # Yellow
        'ERROR': '\033[31m',       # Red
        'CRITICAL': '\033[35m',    # Magenta
    }
    FALLBACK_COLOR = '\033[38;5;208m'
    RECOVERY_COLOR = '\033[38;5;135m'
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        original_levelname = record.levelname

        msg_text = record.getMessage()
        if TAG_FALLBACK in msg_text:
            color = self.FALLBACK_COLOR
        elif TAG_RECOVERY in msg_text:
            color = self.RECOVERY_COLOR
        else:
            color = self.COLORS.get(record.levelname)

        if color is None:
            return super().format(record)

        record.levelname = f"{self.BOLD}{color}{record.levelname}{self.RESET}"
        try:
            message = super().format(record)
        finally:
            record.levelname = original_levelname
        return f"{color}{message}{self.RESET}"


class SuppressingStreamHandler(logging.StreamHandler):
    """Stream handler that suppresses consecutive duplicate sources.

    Repeated DEBUG/INFO lines from the same logger/level are collapsed into
    a single "[N Suppressed: CHECK LOG]" line while the file log keeps every
    record. Guard and recovery lines are never collapsed because operators
    follow them live.
    """

    ALWAYS_SHOW = (TAG_GUARD, TAG_RECOVERY)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._last_name: str | None = None
        self._last_level: int | None = None
        self._suppress_count: int = 0
        self._last_record: logging.LogRecord | None = None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._emit_with_suppression(record)
        except Exception:
            self.handleError(record)

    def _remember(self, record: logging.LogRecord | None) -> None:
        self._last_name = record.name if record is not None else None
        self._last_level = record.levelno if record is not None else None
        self._suppress_count = 0
        self._last_record = record

    def _emit_with_suppression(self, record: logging.LogRecord) -> None:
        if record.levelno >= logging.WARNING:
            self._flush_summary()
            self._emit_record(record)
            self._remember(None)
            return

        msg_text = record.getMessage()
        if any(tag in msg_text for tag in self.ALWAYS_SHOW) or self._last_name is None:
            self._flush_summary()
            self._emit_record(record)
            self._remember(record)
            return

        if record.name == self._last_name and record.levelno == self._last_level:
            self._suppress_count += 1
            return

        self._flush_summary()
        self._emit_record(record)
        self._remember(record)

    def _emit_record(self, record: logging.LogRecord) -> None:
        """Write one record, degrading characters the console cannot encode.

        PowerShell error text regularly contains characters a cp1252
        console cannot represent; the file handler always receives the
        original record.
        """
        msg = self.format(record)
        stream = self.stream
        if stream is None:
            return
        text = msg + self.terminator
        try:
            stream.write(text)
        except UnicodeEncodeError:
            encoding = getattr(stream, "encoding", None) or "ascii"
            stream.write(text.encode(encoding, errors="replace").decode(encoding, errors="replace"))
        self.flush()

    def _flush_summary(self) -> None:
        if self._suppress_count <= 0 or self._last_record is None:
            self._suppress_count = 0
            return

        last = self._last_record
        summary = logging.LogRecord(
            last.name,
            last.levelno,
            last.pathname,
            last.lineno,
            f"[{self._suppress_count} Suppressed: CHECK LOG]",
            args=None,
            exc_info=None,
        )
        summary.created = last.created
        summary.msecs = last.msecs
        summary.thread = last.thread
        summary.threadName = last.threadName
        self._emit_record(summary)
        self._suppress_count = 0

    def close(self) -> None:
        try:
            self._flush_summary()
        finally:
            super().close()


def get_log_dir() -> Path:
    """Return the directory used for log files.

    WSUS_CONSOLE_LOG_DIR overrides the location; otherwise logs live next to
    the project (or next to the executable in frozen builds).
    """
    if _env_log_dir:
        return Path(_env_log_dir)
    return _BASE_DIR / "logs"


def _resolve_base_dir() -> Path:
    if bool(getattr(sys, "frozen", False)):
        exe_path = Path(getattr(sys, "executable", "") or "")
        if exe_path.exists():
            return exe_path.parent
    return _BASE_DIR


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """
    Configure application logging with file rotation.

    Args:
        debug: If True, set log level to DEBUG and enable console output.
        verbose: Enables high-volume debug lines (every poller tick, raw
            PowerShell output). Verbose mode implies debug-level logging.
    """
    global _VERBOSE, _BASE_DIR

    debug_enabled = debug or verbose
    _BASE_DIR = _resolve_base_dir()

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "wsus_console.log"

    level = logging.DEBUG if debug_enabled else logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    # 1MB max, keep 5 backups
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    if debug_enabled:
        console_handler = SuppressingStreamHandler(sys.stdout)
        if sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    _VERBOSE = bool(verbose)

    root_logger.info("=" * 60)
    root_logger.info(
        "WSUS console logging initialized (debug=%s, verbose=%s)",
        debug_enabled,
        _VERBOSE,
    )
    root_logger.info("=" * 60)


_SHORT_NAME_OVERRIDES = {
    "core.threading.worker_pool": "threading.pool",
    "core.threading.ui_dispatch": "threading.dispatch",
    "core.threading.completion_poller": "threading.poller",
    "core.operations.guard": "operations.guard",
    "core.operations.runner": "operations.runner",
    "engine.admin_engine": "engine",
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with short-name overrides for long module paths."""
    return logging.getLogger(_SHORT_NAME_OVERRIDES.get(name, name))


def is_verbose_logging() -> bool:
    """Return True when verbose debug logging is enabled globally."""
    return _VERBOSE
