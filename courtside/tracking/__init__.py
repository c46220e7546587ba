"""Manual bet ledger."""

from .bet_tracker import BetCreate, BetStatus, BetTracker, BetType, BetUpdate, FinalScore, PlacedBet

__all__ = ["BetCreate", "BetStatus", "BetTracker", "BetType", "BetUpdate", "FinalScore", "PlacedBet"]
