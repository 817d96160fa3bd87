"""Inbound bot commands answering with monitor status."""

from typing import Callable

import structlog
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes

from .formatting import start_command_text, status_text

logger = structlog.get_logger(__name__)


class StatusCommands:
    """Handlers for ``/start`` and ``/status``."""

    def __init__(self, accounts: int, processed_count: Callable[[], int], transcoding: bool):
        self.accounts = accounts
        self.processed_count = processed_count
        self.transcoding = transcoding

    def render_status(self) -> str:
        return status_text(self.accounts, self.processed_count(), self.transcoding)

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message is None:
            return
        await update.effective_message.reply_text(start_command_text())

    async def status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message is None:
            return
        logger.info("Status requested", chat_id=update.effective_chat.id if update.effective_chat else None)
        await update.effective_message.reply_text(self.render_status(), parse_mode=ParseMode.HTML)

    def register(self, application: Application) -> None:
        application.add_handler(CommandHandler("start", self.start))
        application.add_handler(CommandHandler("status", self.status))


def build_application(bot_token: str) -> Application:
    """Create the bot application used for both sending and command polling."""
    return Application.builder().token(bot_token).build()
