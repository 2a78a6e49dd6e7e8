"""Cluster notification primitives for configuration changes."""

from .config_events import ConfigEventBus, ConfigEventPublisher, ConfigPropagationService

__all__ = ["ConfigEventBus", "ConfigEventPublisher", "ConfigPropagationService"]
