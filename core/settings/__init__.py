"""Persistent settings for the WSUS admin console."""

from .settings_manager import SettingsManager, DEFAULT_SETTINGS

__all__ = ['SettingsManager', 'DEFAULT_SETTINGS']
