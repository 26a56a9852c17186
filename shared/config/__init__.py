"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, Settings, DATABASE_URL
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import Limits, MediaTypes, CONTENT_DISPOSITION

__all__ = [
    # settings
    "settings",
    "get_settings",
    "Settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "Limits",
    "MediaTypes",
    "CONTENT_DISPOSITION",
]
