"""Totals projection engine."""

from .analyzer import BetAnalyzer, BetOpportunity, BetRecommendation, projected_total
from .window import is_target_window, parse_time_remaining

__all__ = [
    "BetAnalyzer",
    "BetOpportunity",
    "BetRecommendation",
    "projected_total",
    "is_target_window",
    "parse_time_remaining",
]
