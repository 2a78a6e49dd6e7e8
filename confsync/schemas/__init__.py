# confsync/schemas/__init__.py
"""Pydantic schemas for the resolved configuration."""

from .config import ConfigSnapshot, DatabaseConfig, FeatureFlags, StaticData

__all__ = ["ConfigSnapshot", "DatabaseConfig", "FeatureFlags", "StaticData"]
