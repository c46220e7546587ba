"""Game state caching."""

from .game_cache import CachedGameState, Clock, GameCache, utc_now

__all__ = ["CachedGameState", "Clock", "GameCache", "utc_now"]
