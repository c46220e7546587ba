"""In-memory game cache and polling cadence decisions.

The cache holds two independent pieces of state:

- today's schedule, refreshed wholesale and stamped with a single fetch time
- per-game snapshots keyed by game id, each carrying the instant of its
  last refresh and the earliest instant at which it should be polled again

Nothing here performs I/O. Time is read through an injected clock so every
staleness decision can be pinned in tests.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ..api.models import Game, ScheduledGame

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


# Phase -> polling interval
NO_SCORE_INTERVAL = timedelta(minutes=5)
THIRD_QUARTER_INTERVAL = timedelta(seconds=30)
MID_GAME_INTERVAL = timedelta(minutes=2)
DEFAULT_INTERVAL = timedelta(minutes=1)


@dataclass
class CachedGameState:
    """Last known state of one game."""
    game: Game
    last_updated: datetime
    is_monitoring: bool
    next_check: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "game_id": self.game.id,
            "game": self.game.model_dump(mode="json"),
            "last_updated": self.last_updated.isoformat(),
            "is_monitoring": self.is_monitoring,
            "next_check": self.next_check.isoformat() if self.next_check else None,
        }


def should_monitor_game(game: Game) -> bool:
    """A game is live once it carries scores and a non-zero period."""
    return game.scores is not None and game.scores.period != 0


def polling_interval(game: Game) -> timedelta:
    """How long to wait before polling a game again, given its phase."""
    if game.scores is None:
        return NO_SCORE_INTERVAL

    period = game.scores.period
    if period == 3:
        return THIRD_QUARTER_INTERVAL
    if period in (2, 4):
        return MID_GAME_INTERVAL
    # 1st quarter, overtime or anything unexpected
    return DEFAULT_INTERVAL


class GameCache:
    """Caches today's schedule and per-game live snapshots."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        schedule_ttl: timedelta = timedelta(hours=6),
        live_ttl: timedelta = timedelta(seconds=30),
        retention: timedelta = timedelta(hours=24),
    ):
        """
        Initialize the cache.

        Args:
            clock: Returns the current instant; defaults to the wall clock
            schedule_ttl: Age after which the schedule is refetched. Also
                used as the refresh age for games that are not live.
            live_ttl: Age after which a live game is refetched
            retention: Age after which a game entry is purged
        """
        self.clock = clock or utc_now
        self.schedule_ttl = schedule_ttl
        self.live_ttl = live_ttl
        self.retention = retention

        self._games: Dict[str, CachedGameState] = {}
        self._schedule: List[ScheduledGame] = []
        self._last_schedule_fetch: Optional[datetime] = None

    @property
    def last_schedule_fetch(self) -> Optional[datetime]:
        return self._last_schedule_fetch

    def set_todays_schedule(self, games: List[ScheduledGame]) -> None:
        """Replace the schedule wholesale."""
        self._schedule = list(games)
        self._last_schedule_fetch = self.clock()
        logger.info(f"Cached {len(games)} games for today")

    def get_todays_schedule(self) -> List[ScheduledGame]:
        return list(self._schedule)

    def should_refresh_schedule(self) -> bool:
        """Check whether the schedule is missing or older than the TTL."""
        if self._last_schedule_fetch is None:
            return True
        return self.clock() - self._last_schedule_fetch > self.schedule_ttl

    def update_game(self, game_id: str, game: Game) -> CachedGameState:
        """Insert or replace the cached snapshot of a game."""
        now = self.clock()
        state = CachedGameState(
            game=game,
            last_updated=now,
            is_monitoring=should_monitor_game(game),
            next_check=now + polling_interval(game),
        )
        self._games[game_id] = state
        return state

    def get_game(self, game_id: str) -> Optional[CachedGameState]:
        return self._games.get(game_id)

    def should_update_game(self, game_id: str) -> bool:
        """Check whether a game's snapshot is stale enough to refetch."""
        cached = self._games.get(game_id)
        if cached is None:
            return True

        age = self.clock() - cached.last_updated
        if cached.is_monitoring:
            return age > self.live_ttl

        # Not started or finished: poll rarely to save quota
        return age > self.schedule_ttl

    def get_games_to_monitor(self) -> List[CachedGameState]:
        """Live games whose next check time has arrived."""
        now = self.clock()
        return [
            cached for cached in self._games.values()
            if cached.is_monitoring
            and (cached.next_check is None or now >= cached.next_check)
        ]

    def get_active_games_count(self) -> int:
        return sum(1 for cached in self._games.values() if cached.is_monitoring)

    def cleanup_old_games(self) -> int:
        """Purge entries not refreshed within the retention period.

        Returns:
            Number of entries removed
        """
        cutoff = self.clock() - self.retention
        stale = [
            game_id for game_id, cached in self._games.items()
            if cached.last_updated < cutoff
        ]
        for game_id in stale:
            del self._games[game_id]

        if stale:
            logger.info(f"Removed {len(stale)} stale games from cache")
        return len(stale)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "total_games": len(self._games),
            "active_games": self.get_active_games_count(),
            "scheduled_games": len(self._schedule),
            "last_schedule_fetch": self._last_schedule_fetch,
        }
