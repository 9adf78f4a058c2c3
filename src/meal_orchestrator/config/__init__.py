"""Settings and logging configuration."""

from meal_orchestrator.config.logging import configure_logging
from meal_orchestrator.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
