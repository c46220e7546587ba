"""Telegram bot commands: /start, /status and /help."""

import logging

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

logger = logging.getLogger(__name__)

START_MESSAGE = (
    "🏀 Basketball Bet Tracker is now active!\n"
    "You will receive notifications when betting opportunities are found."
)

STATUS_MESSAGE = "✅ Bot is running and monitoring basketball games for betting opportunities."

HELP_MESSAGE = """🏀 Basketball Bet Tracker Commands:

/start - Activate notifications
/status - Check bot status
/help - Show this help message

The bot automatically monitors basketball games and alerts you when:
• Game is in 3rd quarter with ~7 minutes remaining
• Calculated total vs the posted line has 10+ point edge
• High confidence betting opportunities arise

Formula: (Current Score Total) ÷ 0.75 = Projected Final Total"""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(START_MESSAGE)


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(STATUS_MESSAGE)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(HELP_MESSAGE)


def build_command_application(bot_token: str) -> Application:
    """Build the command-handling bot application (not started)."""
    app = Application.builder().token(bot_token).build()
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("status", status_command))
    app.add_handler(CommandHandler("help", help_command))
    return app


async def start_command_bot(app: Application) -> None:
    """Start polling inside an already running event loop."""
    await app.initialize()
    await app.start()
    await app.updater.start_polling(allowed_updates=Update.ALL_TYPES)
    logger.info("Telegram command bot launched")


async def stop_command_bot(app: Application) -> None:
    await app.updater.stop()
    await app.stop()
    await app.shutdown()
    logger.info("Telegram command bot stopped")
