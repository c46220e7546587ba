"""Ledger for bets placed by hand on a sportsbook."""

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class BetStatus(str, Enum):
    """Status of a placed bet."""
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    PUSH = "push"            # Final total landed exactly on the line
    CANCELLED = "cancelled"


class BetType(str, Enum):
    OVER = "over"
    UNDER = "under"


SETTLED_STATUSES = (BetStatus.WON, BetStatus.LOST, BetStatus.PUSH)


class FinalScore(BaseModel):
    home: int
    away: int

    @property
    def total(self) -> int:
        return self.home + self.away


def american_profit(amount: float, odds: float) -> float:
    """Profit on a winning stake at American odds."""
    if odds > 0:
        return amount * (odds / 100)
    return amount / (abs(odds) / 100)


class BetCreate(BaseModel):
    """Fields supplied when a bet is logged."""
    game_id: str
    game_title: str = ""
    home_team: str = ""
    away_team: str = ""
    bet_type: BetType
    line: float
    odds: float = -110
    amount: float
    notes: Optional[str] = None


class BetUpdate(BaseModel):
    """Fields that may be changed after a bet is logged."""
    game_title: Optional[str] = None
    bet_type: Optional[BetType] = None
    line: Optional[float] = None
    odds: Optional[float] = None
    amount: Optional[float] = None
    status: Optional[BetStatus] = None
    payout: Optional[float] = None
    profit: Optional[float] = None
    notes: Optional[str] = None


class PlacedBet(BetCreate):
    """A bet in the ledger."""
    id: str
    status: BetStatus = BetStatus.PENDING
    placed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    settled_at: Optional[datetime] = None
    final_score: Optional[FinalScore] = None
    payout: Optional[float] = None
    profit: Optional[float] = None

    def settle(self, final_score: FinalScore, settled_at: datetime) -> None:
        """Grade the bet against the final combined score."""
        total = final_score.total
        self.final_score = final_score
        self.settled_at = settled_at

        if total == self.line:
            self.status = BetStatus.PUSH
            self.payout = self.amount
            self.profit = 0.0
            return

        won = total > self.line if self.bet_type == BetType.OVER else total < self.line
        if won:
            profit = american_profit(self.amount, self.odds)
            self.status = BetStatus.WON
            self.payout = self.amount + profit
            self.profit = profit
        else:
            self.status = BetStatus.LOST
            self.payout = 0.0
            self.profit = -self.amount


class BetTracker:
    """Stores placed bets in a JSON file and computes performance stats."""

    def __init__(
        self,
        data_dir: Optional[str] = None,
        read_only: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the tracker.

        Args:
            data_dir: Directory holding bets.json
            read_only: Keep bets in memory only; nothing is loaded or written
            clock: Returns the current instant
        """
        self.data_dir = Path(data_dir) if data_dir else Path("data")
        self.bets_file = self.data_dir / "bets.json"
        self.read_only = read_only
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.bets: Dict[str, PlacedBet] = {}

        if self.read_only:
            logger.info("BetTracker running in read-only mode")
        else:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self._load_bets()

    def _load_bets(self) -> None:
        """Load bets from file."""
        if not self.bets_file.exists():
            return
        try:
            with open(self.bets_file, "r") as f:
                data = json.load(f)
            for bet_data in data:
                bet = PlacedBet.model_validate(bet_data)
                self.bets[bet.id] = bet
            logger.info(f"Loaded {len(self.bets)} bets")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading bets: {e}")

    def _save_bets(self) -> None:
        """Save bets to file."""
        if self.read_only:
            logger.warning("Cannot save bets in read-only mode")
            return
        try:
            data = [bet.model_dump(mode="json") for bet in self.bets.values()]
            with open(self.bets_file, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving bets: {e}")

    def add_bet(self, bet_data: BetCreate) -> PlacedBet:
        """Log a new pending bet."""
        bet = PlacedBet(
            **bet_data.model_dump(),
            id=uuid.uuid4().hex,
            placed_at=self.clock(),
        )
        self.bets[bet.id] = bet
        self._save_bets()

        logger.info(
            f"Bet placed: {bet.away_team} @ {bet.home_team} - "
            f"{bet.bet_type.value} {bet.line} for ${bet.amount:.2f}"
        )
        return bet

    def update_bet(self, bet_id: str, updates: BetUpdate) -> Optional[PlacedBet]:
        """Apply a partial update. Returns None for an unknown id."""
        bet = self.bets.get(bet_id)
        if bet is None:
            return None

        changes = updates.model_dump(exclude_unset=True)
        updated = bet.model_copy(update=changes)
        if "status" in changes and updated.status in SETTLED_STATUSES and updated.settled_at is None:
            updated.settled_at = self.clock()

        self.bets[bet_id] = updated
        self._save_bets()

        logger.info(f"Bet updated: {updated.game_title or updated.game_id} - Status: {updated.status.value}")
        return updated

    def settle_bet(self, bet_id: str, home_score: int, away_score: int) -> Optional[PlacedBet]:
        """Grade a bet against a final score."""
        bet = self.bets.get(bet_id)
        if bet is None:
            return None

        bet.settle(FinalScore(home=home_score, away=away_score), self.clock())
        self._save_bets()

        logger.info(
            f"Settled bet {bet.id}: {bet.bet_type.value} {bet.line} - "
            f"Total: {home_score + away_score}, Status: {bet.status.value}, P&L: {bet.profit:.2f}"
        )
        return bet

    def auto_settle_bets(self, final_scores: Dict[str, FinalScore]) -> int:
        """Settle every pending bet whose game has a final score.

        Returns:
            Number of bets settled
        """
        settled = 0
        for bet in self.get_pending_bets():
            score = final_scores.get(bet.game_id)
            if score is None:
                continue
            bet.settle(score, self.clock())
            settled += 1

        if settled:
            self._save_bets()
            logger.info(f"Auto-settled {settled} bets")
        return settled

    def get_bets(self) -> List[PlacedBet]:
        return list(self.bets.values())

    def get_bet(self, bet_id: str) -> Optional[PlacedBet]:
        return self.bets.get(bet_id)

    def get_bets_by_game_id(self, game_id: str) -> List[PlacedBet]:
        return [b for b in self.bets.values() if b.game_id == game_id]

    def get_pending_bets(self) -> List[PlacedBet]:
        return [b for b in self.bets.values() if b.status == BetStatus.PENDING]

    def calculate_stats(self) -> Dict[str, Any]:
        """Get ledger statistics."""
        all_bets = list(self.bets.values())
        settled = [b for b in all_bets if b.status in SETTLED_STATUSES]
        win_count = sum(1 for b in settled if b.status == BetStatus.WON)
        loss_count = sum(1 for b in settled if b.status == BetStatus.LOST)

        total_wagers = sum(b.amount for b in all_bets)
        net_profit = sum(b.profit or 0 for b in settled)
        profits = [b.profit or 0 for b in settled]
        decided = win_count + loss_count

        return {
            "total_bets": len(all_bets),
            "total_wagers": total_wagers,
            "total_payout": sum(b.payout or 0 for b in all_bets),
            "net_profit": net_profit,
            "win_count": win_count,
            "loss_count": loss_count,
            "push_count": sum(1 for b in settled if b.status == BetStatus.PUSH),
            "pending_count": sum(1 for b in all_bets if b.status == BetStatus.PENDING),
            "win_percentage": win_count / decided * 100 if decided else 0,
            "average_bet_size": total_wagers / len(all_bets) if all_bets else 0,
            "biggest_win": max(profits) if profits else 0,
            "biggest_loss": min(profits) if profits else 0,
            "roi": net_profit / total_wagers * 100 if total_wagers > 0 else 0,
        }
