"""Telegram bot for sending totals alerts."""

import logging
from datetime import datetime, timezone
from html import escape
from typing import Optional

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..engine.analyzer import BetOpportunity
from ..utils.config import Settings

logger = logging.getLogger(__name__)


def format_american(price: float) -> str:
    """Render American odds with an explicit sign for positive prices."""
    value = int(price) if float(price).is_integer() else price
    return f"+{value}" if price > 0 else f"{value}"


class TelegramNotifier:
    """Handles Telegram notifications for betting opportunities."""

    def __init__(self, bot_token: str, chat_id: str, bookmaker_title: str = "FanDuel"):
        """
        Initialize the Telegram notifier.

        Args:
            bot_token: Telegram bot API token
            chat_id: Chat ID to send messages to
            bookmaker_title: Sportsbook named in the call to action
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.bookmaker_title = bookmaker_title
        self._bot: Optional[Bot] = None

    @property
    def bot(self) -> Bot:
        """Get or create the bot instance."""
        if self._bot is None:
            self._bot = Bot(token=self.bot_token)
        return self._bot

    @property
    def is_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.bot_token and self.chat_id)

    async def send_message(self, text: str, parse_mode: str = ParseMode.HTML) -> bool:
        """
        Send a message to the configured chat.

        Args:
            text: Message text
            parse_mode: Telegram parse mode (HTML or Markdown)

        Returns:
            True if sent, False if Telegram is not configured

        Raises:
            TelegramError: Delivery failed
        """
        if not self.is_configured:
            logger.warning("Telegram not configured, skipping message")
            return False

        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=parse_mode,
            )
        except TelegramError as e:
            logger.error(f"Failed to send Telegram message: {e}")
            raise
        return True

    async def send_opportunity_alert(self, opportunity: BetOpportunity) -> bool:
        """Send the best recommendation of an opportunity."""
        return await self.send_message(self.format_opportunity_alert(opportunity))

    def format_opportunity_alert(self, opp: BetOpportunity) -> str:
        """Format an opportunity as a Telegram message."""
        best = opp.best_recommendation

        return f"""<b>🏀 BASKETBALL BETTING ALERT 🎯</b>

📌 {escape(opp.away_team)} @ {escape(opp.home_team)}
⏰ Q{opp.period} {escape(opp.time_remaining)} remaining

📊 Current Score: {opp.away_score}-{opp.home_score} ({opp.current_total} total)
🔢 Calculated Total: <code>{opp.calculated_total:.1f}</code>

<b>💰 RECOMMENDATION:</b>
<b>{best.action} {best.line}</b>
Edge: <code>+{best.edge:.1f}</code> points
Confidence: <code>{best.confidence:.0f}%</code>
Price: <code>{format_american(best.price)}</code>

<i>Analysis:</i>
{escape(best.reasoning)}
Scoring Pace: {opp.scoring_pace.upper()}

🎲 Place this bet on {escape(self.bookmaker_title)}!"""

    async def send_startup_message(self) -> bool:
        """Send a startup notification."""
        message = (
            "<b>🚀 Basketball Totals Monitor Started</b>\n\n"
            f"Time: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}\n"
            "Watching for 3rd quarter totals opportunities..."
        )
        return await self.send_message(message)


def create_notifier_from_settings(settings: Settings) -> Optional[TelegramNotifier]:
    """
    Create a TelegramNotifier from settings.

    Args:
        settings: Application settings

    Returns:
        TelegramNotifier or None if not configured
    """
    if settings.telegram.bot_token and settings.telegram.chat_id:
        return TelegramNotifier(
            bot_token=settings.telegram.bot_token,
            chat_id=settings.telegram.chat_id,
            bookmaker_title=settings.odds_api.bookmaker_title,
        )
    return None
