"""Live totals projection and bet recommendation logic."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..api.models import BettingLine, Game
from .window import parse_time_remaining

logger = logging.getLogger(__name__)

OVER = "OVER"
UNDER = "UNDER"

HIGH_PACE = "high"
AVERAGE_PACE = "average"
LOW_PACE = "low"


@dataclass
class BetRecommendation:
    """A single side to bet on one posted line."""
    action: str  # OVER or UNDER
    line: float
    edge: float  # Absolute distance between projection and line
    price: float  # American odds for the recommended side
    confidence: float
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "action": self.action,
            "line": self.line,
            "edge": round(self.edge, 2),
            "price": self.price,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


@dataclass
class BetOpportunity:
    """A live game where the projected total disagrees with the book."""
    game_id: str
    home_team: str
    away_team: str
    home_score: int
    away_score: int
    calculated_total: float
    time_remaining: str
    period: int
    lines: List[BettingLine]
    recommendations: List[BetRecommendation]
    confidence: float
    scoring_pace: str
    edge: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def current_total(self) -> int:
        return self.home_score + self.away_score

    @property
    def matchup(self) -> str:
        return f"{self.away_team} @ {self.home_team}"

    @property
    def best_recommendation(self) -> BetRecommendation:
        """Highest-confidence recommendation (first one wins ties)."""
        best = self.recommendations[0]
        for rec in self.recommendations[1:]:
            if rec.confidence > best.confidence:
                best = rec
        return best

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "game_id": self.game_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "current_score": {
                "home": self.home_score,
                "away": self.away_score,
                "total": self.current_total,
            },
            "calculated_total": round(self.calculated_total, 2),
            "time_remaining": self.time_remaining,
            "period": self.period,
            "lines": [line.model_dump() for line in self.lines],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "confidence": round(self.confidence, 2),
            "metadata": {
                "scoring_pace": self.scoring_pace,
                "edge": round(self.edge, 2),
                "timestamp": self.timestamp.isoformat(),
            },
        }


def projected_total(home_score: float, away_score: float, divisor: float = 0.75) -> float:
    """Project the final combined score from the current one."""
    return (home_score + away_score) / divisor


class BetAnalyzer:
    """Compares a naive final-total projection against posted lines."""

    def __init__(
        self,
        projection_divisor: float = 0.75,
        min_edge: float = 10.0,
        base_confidence: float = 60.0,
        max_confidence: float = 95.0,
        high_pace: float = 2.4,
        low_pace: float = 2.0,
        quarter_seconds: int = 12 * 60,
        time_bonus_seconds: int = 390,
    ):
        """
        Initialize the analyzer.

        Args:
            projection_divisor: Current total is divided by this to project the final
            min_edge: Minimum points between projection and line to recommend
            base_confidence: Starting confidence for any recommendation
            max_confidence: Confidence cap
            high_pace: Points per minute above which pace is high
            low_pace: Points per minute below which pace is low
            quarter_seconds: Length of one period
            time_bonus_seconds: Remaining period time above which confidence is boosted
        """
        self.projection_divisor = projection_divisor
        self.min_edge = min_edge
        self.base_confidence = base_confidence
        self.max_confidence = max_confidence
        self.high_pace = high_pace
        self.low_pace = low_pace
        self.quarter_seconds = quarter_seconds
        self.time_bonus_seconds = time_bonus_seconds

    def calculate_projected_total(self, home_score: float, away_score: float) -> float:
        return projected_total(home_score, away_score, self.projection_divisor)

    def analyze_game(self, game: Game, lines: List[BettingLine]) -> Optional[BetOpportunity]:
        """
        Look for lines the projection beats by at least the minimum edge.

        Args:
            game: Live game snapshot
            lines: Posted total lines for the game

        Returns:
            The opportunity, or None when no line qualifies
        """
        if game.scores is None or not lines:
            return None

        scores = game.scores
        calculated = self.calculate_projected_total(scores.home_score, scores.away_score)
        pace = self.calculate_scoring_pace(scores.total, scores.period, scores.time_remaining)
        remaining = parse_time_remaining(scores.time_remaining)

        recommendations = []
        for line in lines:
            edge = calculated - line.total
            if abs(edge) < self.min_edge:
                continue

            if edge > 0:
                action, price = OVER, line.over_price
                reasoning = f"Calculated total: {calculated:.1f} vs Line: {line.total} (+{edge:.1f} edge)"
            else:
                action, price = UNDER, line.under_price
                reasoning = f"Calculated total: {calculated:.1f} vs Line: {line.total} ({edge:.1f} edge)"

            recommendations.append(BetRecommendation(
                action=action,
                line=line.total,
                edge=abs(edge),
                price=price,
                confidence=self.calculate_confidence(abs(edge), action, pace, remaining),
                reasoning=reasoning,
            ))

        if not recommendations:
            return None

        confidence = sum(r.confidence for r in recommendations) / len(recommendations)

        return BetOpportunity(
            game_id=game.id,
            home_team=game.home_team,
            away_team=game.away_team,
            home_score=scores.home_score,
            away_score=scores.away_score,
            calculated_total=calculated,
            time_remaining=scores.time_remaining or "",
            period=scores.period,
            lines=list(lines),
            recommendations=recommendations,
            confidence=confidence,
            scoring_pace=pace,
            edge=max(r.edge for r in recommendations),
        )

    def calculate_confidence(
        self,
        edge: float,
        action: str,
        pace: str,
        remaining_seconds: int,
    ) -> float:
        """Score a recommendation between the base and the cap."""
        confidence = self.base_confidence

        if edge >= 15:
            confidence += 15
        elif edge >= 12:
            confidence += 10
        elif edge >= 10:
            confidence += 5

        if action == OVER and pace == HIGH_PACE:
            confidence += 10
        elif action == UNDER and pace == LOW_PACE:
            confidence += 10
        elif pace == AVERAGE_PACE:
            confidence += 5

        # More time left in the period gives the projection room to play out
        if remaining_seconds > self.time_bonus_seconds:
            confidence += 5

        return min(confidence, self.max_confidence)

    def calculate_scoring_pace(
        self,
        current_total: int,
        period: int,
        time_remaining: Optional[str],
    ) -> str:
        """Classify points per minute as high, average or low."""
        if not time_remaining:
            return AVERAGE_PACE

        remaining = parse_time_remaining(time_remaining)
        elapsed = (period - 1) * self.quarter_seconds + (self.quarter_seconds - remaining)
        if elapsed <= 0:
            return AVERAGE_PACE

        points_per_minute = current_total / (elapsed / 60)
        if points_per_minute > self.high_pace:
            return HIGH_PACE
        if points_per_minute < self.low_pace:
            return LOW_PACE
        return AVERAGE_PACE
