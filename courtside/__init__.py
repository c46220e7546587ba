"""Live basketball totals monitor."""

__version__ = "1.0.0"
