"""Pydantic models for The Odds API responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Sport(BaseModel):
    """A sport/league as listed by the /sports endpoint."""
    key: str
    group: str = ""
    title: str = ""
    active: bool = True


class Outcome(BaseModel):
    """One side of a market, e.g. Over 221.5 at -110."""
    name: str
    price: float
    point: Optional[float] = None


class Market(BaseModel):
    """A bookmaker market such as totals."""
    key: str
    outcomes: List[Outcome] = Field(default_factory=list)

    def outcome(self, name: str) -> Optional[Outcome]:
        """Find an outcome by name."""
        return next((o for o in self.outcomes if o.name == name), None)


class Bookmaker(BaseModel):
    """A sportsbook and the markets it has posted."""
    key: str
    title: str = ""
    markets: List[Market] = Field(default_factory=list)

    def market(self, key: str) -> Optional[Market]:
        """Find a market by key."""
        return next((m for m in self.markets if m.key == key), None)


class Scores(BaseModel):
    """Live score data attached to an in-progress game."""
    home_score: int = 0
    away_score: int = 0
    period: int = 0
    time_remaining: Optional[str] = None

    @property
    def total(self) -> int:
        """Combined score."""
        return self.home_score + self.away_score


class Game(BaseModel):
    """A game snapshot as returned by the odds or scores endpoints."""
    id: str
    sport_key: str = ""
    sport_title: str = ""
    commence_time: Optional[datetime] = None
    home_team: str = ""
    away_team: str = ""
    completed: bool = False
    scores: Optional[Scores] = None
    bookmakers: List[Bookmaker] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @property
    def display_name(self) -> str:
        """Get display name for the game."""
        return f"{self.away_team} @ {self.home_team}"

    @property
    def has_scores(self) -> bool:
        """Check if the snapshot carries live score data."""
        return self.scores is not None

    def bookmaker(self, key: str) -> Optional[Bookmaker]:
        """Find a bookmaker by key."""
        return next((b for b in self.bookmakers if b.key == key), None)

    def has_bookmaker(self, key: str) -> bool:
        """Check if the given bookmaker has posted anything for this game."""
        return self.bookmaker(key) is not None


class BettingLine(BaseModel):
    """A posted total line with prices for both sides."""
    bookmaker: str
    total: float
    over_price: float
    under_price: float


class ScheduledGame(BaseModel):
    """A game on today's schedule."""
    game_id: str
    start_time: datetime
    teams: str
    sport_key: str
    league: str = ""

    class Config:
        frozen = True
