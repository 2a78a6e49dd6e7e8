# confsync/repositories/__init__.py
"""Data access for the settings store."""

from .setting_repository import SettingRepository

__all__ = ["SettingRepository"]
