"""API clients and models."""

from .oddsapi import OddsApiClient, OddsApiError, UnsupportedEndpointError
from .models import (
    BettingLine,
    Bookmaker,
    Game,
    Market,
    Outcome,
    ScheduledGame,
    Scores,
    Sport,
)

__all__ = [
    "OddsApiClient",
    "OddsApiError",
    "UnsupportedEndpointError",
    "BettingLine",
    "Bookmaker",
    "Game",
    "Market",
    "Outcome",
    "ScheduledGame",
    "Scores",
    "Sport",
]
