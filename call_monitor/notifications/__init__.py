"""Telegram notifications and bot commands."""

from .commands import StatusCommands, build_application
from .telegram_bot import TelegramNotifier

__all__ = ["StatusCommands", "TelegramNotifier", "build_application"]
