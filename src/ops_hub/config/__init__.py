"""Configuration module for the Ops Hub automation core."""

from ops_hub.config.logging import configure_logging
from ops_hub.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging"]
