"""Web dashboard."""

from .app import create_app
from .broadcast import ConnectionManager

__all__ = ["create_app", "ConnectionManager"]
