"""Utility modules."""

from .config import ConfigManager, Settings
from .logging import setup_logging

__all__ = ["ConfigManager", "Settings", "setup_logging"]
