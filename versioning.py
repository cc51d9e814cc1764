"""Name and version strings for the WSUS admin console.

Imported by the logger, the settings layer (QSettings organisation and
application names), the window title and the CLI ``--version`` flag.
"""
from __future__ import annotations


APP_NAME: str = "WsusAdminConsole"
APP_DISPLAY_NAME: str = "WSUS Admin Console"
APP_ORGANIZATION: str = "WsusAdminConsole"
APP_VERSION: str = "2.1.0"
APP_DESCRIPTION: str = "WSUS Admin Console - service, database and health management for a WSUS server."


__all__ = [
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "APP_ORGANIZATION",
    "APP_VERSION",
    "APP_DESCRIPTION",
]
