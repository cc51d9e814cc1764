"""
WSUS Admin Console - Main Entry Point

    main.py              open the console window
    main.py --check      run a health check and exit
    main.py --repair     recover stopped services, re-check health and exit

CLI exit codes: 0 healthy/success, 1 degraded, 2 unhealthy or failed.
"""
import argparse
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication
from PySide6.QtWidgets import QApplication, QMessageBox

from core.logging.logger import get_logger, setup_logging
from core.settings.settings_manager import SettingsManager
from engine.admin_engine import AdminEngine
from health.models import HealthCheckResult, HealthStatus, RepairOutcome
from versioning import APP_DESCRIPTION, APP_DISPLAY_NAME, APP_NAME, APP_ORGANIZATION, APP_VERSION

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DEGRADED = 1
EXIT_FAILED = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=APP_NAME, description=APP_DESCRIPTION)
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--check', action='store_true', help='run a health check and exit')
    mode.add_argument('--repair', action='store_true', help='recover stopped services and exit')
    parser.add_argument('--debug', '-d', action='store_true', help='enable debug logging')
    parser.add_argument('--verbose', '-v', action='store_true', help='enable verbose debug logging')
    parser.add_argument('--version', action='version', version=f"{APP_DISPLAY_NAME} {APP_VERSION}")
    return parser.parse_args(argv)


def exit_code_for(status: HealthStatus) -> int:
    if status is HealthStatus.HEALTHY:
        return EXIT_OK
    if status is HealthStatus.DEGRADED:
        return EXIT_DEGRADED
    return EXIT_FAILED


def format_health_report(result: HealthCheckResult) -> str:
    lines = [f"Overall Status: {result.overall.value.upper()}"]
    if result.issues:
        lines.append("Issues Found:")
        lines.extend(f"  - {issue}" for issue in result.issues)
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in result.warnings)
    if not result.issues and not result.warnings:
        lines.append("All systems operational")
    return "\n".join(lines)


def format_repair_report(outcome: RepairOutcome) -> str:
    recovery = outcome.recovery
    lines = []
    lines.extend(f"[OK] {name} already running" for name in recovery.already_running)
    lines.extend(f"[OK] {name} started" for name in recovery.recovered)
    lines.extend(f"[FAIL] Failed to start {name}" for name in recovery.failed)
    lines.append(f"Services Started: {len(recovery.recovered)}")
    lines.append("Repair completed successfully" if recovery.success else "Repair completed with errors")
    if outcome.health is not None:
        lines.append(format_health_report(outcome.health))
    return "\n".join(lines)


def run_cli(app: QCoreApplication, engine: AdminEngine, repair: bool) -> int:
    """Run one operation through the engine and spin the event loop until it is delivered."""
    state = {'code': EXIT_FAILED, 'done': False}

    def _finish(code: int, report: str) -> None:
        print(report)
        state['code'] = code
        state['done'] = True
        app.quit()

    def _on_health(result: HealthCheckResult) -> None:
        _finish(exit_code_for(result.overall), format_health_report(result))

    def _on_repair(outcome: RepairOutcome) -> None:
        if not outcome.success:
            code = EXIT_FAILED
        elif outcome.health is not None:
            code = exit_code_for(outcome.health.overall)
        else:
            code = EXIT_OK
        _finish(code, format_repair_report(outcome))

    def _on_error(exc: BaseException) -> None:
        _finish(EXIT_FAILED, f"Operation failed: {exc}")

    if repair:
        started = engine.run_repair(_on_repair, _on_error)
    else:
        started = engine.run_health_check(_on_health, _on_error)
    if not started:
        return EXIT_FAILED
    if not state['done']:
        app.exec()
    return state['code']


def run_gui(app: QApplication, engine: AdminEngine) -> int:
    from ui.console_window import ConsoleWindow

    try:
        window = ConsoleWindow(engine)
    except Exception as e:
        logger.exception("Failed to open console window: %s", e)
        QMessageBox.critical(None, APP_DISPLAY_NAME, f"Failed to open the console:\n{e}")
        return EXIT_FAILED

    window.show()
    engine.run_health_check()
    engine.start_auto_refresh()
    logger.info("Console window opened - entering event loop")
    return app.exec()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the admin console."""
    args = parse_args(argv)
    setup_logging(debug=args.debug, verbose=args.verbose)

    logger.info("=" * 60)
    logger.info("%s %s Starting", APP_DISPLAY_NAME, APP_VERSION)
    logger.info("=" * 60)

    cli_mode = args.check or args.repair
    if cli_mode:
        app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    else:
        app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setApplicationVersion(APP_VERSION)

    engine = AdminEngine(SettingsManager())
    try:
        if cli_mode:
            return run_cli(app, engine, repair=args.repair)
        return run_gui(app, engine)
    finally:
        engine.shutdown(wait=False)
        logger.info("%s exiting", APP_DISPLAY_NAME)


if __name__ == "__main__":
    sys.exit(main())
