"""Per-tick monitoring pipeline.

Each tick pulls live games from the OddsService, keeps those in the alert
window, analyzes them, and alerts once per (game, period, clock) state. The
full opportunities snapshot is broadcast to dashboard subscribers after every
tick.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from telegram.error import TelegramError

from ..api.models import Game
from ..api.odds_service import OddsService
from ..engine.analyzer import BetAnalyzer, BetOpportunity
from ..telegram.bot import TelegramNotifier

logger = logging.getLogger(__name__)

OPPORTUNITIES_EVENT = "opportunities-update"


class Broadcaster(Protocol):
    async def broadcast(self, event: str, data: Any) -> None:
        ...


def dedup_key(game: Game) -> str:
    """Identify one observed game state."""
    period = game.scores.period if game.scores else None
    clock = game.scores.time_remaining if game.scores else None
    return f"{game.id}-{period}-{clock}"


class GameMonitor:
    """Runs the check-games pipeline and holds its results."""

    def __init__(
        self,
        odds_service: OddsService,
        analyzer: BetAnalyzer,
        notifier: Optional[TelegramNotifier] = None,
        broadcaster: Optional[Broadcaster] = None,
        dedup_max: int = 100,
        dedup_keep: int = 50,
    ):
        """
        Initialize the monitor.

        Args:
            odds_service: Source of live games and lines
            analyzer: Opportunity analyzer
            notifier: Telegram notifier, optional
            broadcaster: Dashboard push channel, optional
            dedup_max: Size above which the processed set is trimmed
            dedup_keep: Number of most recent keys kept after trimming
        """
        self.odds_service = odds_service
        self.analyzer = analyzer
        self.notifier = notifier
        self.broadcaster = broadcaster
        self.dedup_max = dedup_max
        self.dedup_keep = dedup_keep

        # Insertion-ordered set of dedup keys
        self.processed_games: Dict[str, None] = {}
        self.current_opportunities: List[BetOpportunity] = []
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def check_games(self) -> List[BetOpportunity]:
        """Run one monitoring tick.

        A tick that starts while another is still running is skipped.
        """
        if self._lock.locked():
            logger.warning("Previous check still running, skipping this tick")
            return self.current_opportunities

        async with self._lock:
            try:
                logger.info("Checking for basketball games...")
                live_games = await self.odds_service.get_active_games()
                target_games = [g for g in live_games if self.odds_service.is_target_window(g)]
                logger.info(f"Found {len(live_games)} live games, {len(target_games)} in 3rd Q ~7min")

                self.current_opportunities = []
                for game in target_games:
                    await self.analyze_game(game)
            except Exception as e:
                logger.error(f"Error checking games: {e}")

            await self.broadcast_opportunities()
            return self.current_opportunities

    async def analyze_game(self, game: Game) -> Optional[BetOpportunity]:
        """Analyze one in-window game and alert if it qualifies."""
        key = dedup_key(game)
        if key in self.processed_games:
            return None

        try:
            scores = game.scores
            logger.info(f"Analyzing: {game.display_name}")
            logger.info(f"Q{scores.period} {scores.time_remaining} - Score: {scores.away_score}-{scores.home_score}")

            lines = await self.odds_service.get_bookmaker_lines(game.id, game.sport_key or None)
            if not lines:
                logger.info("No lines available")
                return None

            opportunity = self.analyzer.analyze_game(game, lines)
            if opportunity is None:
                logger.info(f"No betting opportunity (edge < {self.analyzer.min_edge:g} points)")
                return None

            logger.info(f"OPPORTUNITY FOUND! Calculated total: {opportunity.calculated_total:.1f}")
            for rec in opportunity.recommendations:
                logger.info(f"{rec.action} {rec.line} | Edge: +{rec.edge:.1f} | Confidence: {rec.confidence:.0f}%")

            self.current_opportunities.append(opportunity)
            await self.send_notification(opportunity)

            self.processed_games[key] = None
            self.cleanup_processed_games()
            return opportunity
        except Exception as e:
            logger.error(f"Error analyzing game {game.id}: {e}")
            return None

    async def send_notification(self, opportunity: BetOpportunity) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send_opportunity_alert(opportunity)
            logger.info("Telegram notification sent")
        except TelegramError as e:
            logger.error(f"Error sending Telegram notification: {e}")

    def cleanup_processed_games(self) -> None:
        """Keep only the most recent keys once the set grows past the cap."""
        if len(self.processed_games) > self.dedup_max:
            recent = list(self.processed_games)[-self.dedup_keep:]
            self.processed_games = dict.fromkeys(recent)

    async def broadcast_opportunities(self) -> None:
        if self.broadcaster is None:
            return
        try:
            await self.broadcaster.broadcast(OPPORTUNITIES_EVENT, self.get_opportunities_payload())
        except Exception as e:
            logger.error(f"Error broadcasting opportunities: {e}")

    def get_current_opportunities(self) -> List[BetOpportunity]:
        return self.current_opportunities

    def get_opportunities_payload(self) -> List[Dict[str, Any]]:
        return [opp.to_dict() for opp in self.current_opportunities]
