"""Telegram notifications and bot commands."""

from .bot import TelegramNotifier, create_notifier_from_settings

__all__ = ["TelegramNotifier", "create_notifier_from_settings"]
