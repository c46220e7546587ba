"""Shared fixtures and builders for the test suite."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from courtside.api.models import Bookmaker, Game, Market, Outcome, Scores


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_totals_bookmaker(
    total: float,
    over_price: float = -110,
    under_price: float = -110,
    key: str = "fanduel",
) -> Bookmaker:
    return Bookmaker(
        key=key,
        title="FanDuel" if key == "fanduel" else key,
        markets=[
            Market(
                key="totals",
                outcomes=[
                    Outcome(name="Over", price=over_price, point=total),
                    Outcome(name="Under", price=under_price, point=total),
                ],
            )
        ],
    )


def make_game(
    game_id: str = "g1",
    home_score: Optional[int] = 40,
    away_score: int = 38,
    period: int = 3,
    time_remaining: Optional[str] = "7:00",
    sport_key: str = "basketball_nba",
    commence_time: Optional[datetime] = None,
    completed: bool = False,
    total_line: Optional[float] = None,
) -> Game:
    """Build a game snapshot. Pass home_score=None for a game without scores."""
    scores = None
    if home_score is not None:
        scores = Scores(
            home_score=home_score,
            away_score=away_score,
            period=period,
            time_remaining=time_remaining,
        )
    return Game(
        id=game_id,
        sport_key=sport_key,
        sport_title=sport_key.replace("basketball_", "").upper(),
        commence_time=commence_time,
        home_team="Boston Celtics",
        away_team="Miami Heat",
        completed=completed,
        scores=scores,
        bookmakers=[make_totals_bookmaker(total_line)] if total_line is not None else [],
    )


@pytest.fixture
def start_time():
    """A fixed instant: 20:00 UTC, 15:00 in New York."""
    return datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    return FakeClock(start_time)
