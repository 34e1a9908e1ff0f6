"""Configuration module for the KiotViet work board."""

from kiot_board.config.logging import configure_logging, get_logger
from kiot_board.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "get_logger"]
