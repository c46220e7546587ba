"""Live game monitoring."""

from .game_monitor import GameMonitor, OPPORTUNITIES_EVENT, dedup_key

__all__ = ["GameMonitor", "OPPORTUNITIES_EVENT", "dedup_key"]
