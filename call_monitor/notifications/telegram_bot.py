"""Telegram delivery of call notifications and operational alerts."""

from pathlib import Path
from typing import Optional

import structlog
from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..errors import DeliveryError
from ..models import MediaKind

logger = structlog.get_logger(__name__)

VIDEO_DIMENSION = 360


class TelegramNotifier:
    """Posts, replaces and deletes messages in Telegram chats."""

    def __init__(self, bot: Bot, chat_id: str, log_chat_id: str, bot_token: Optional[str] = None):
        """Initialize Telegram notifier.

        Args:
            bot: Initialized python-telegram-bot ``Bot``
            chat_id: Channel receiving call notifications
            log_chat_id: Administrative channel for operational alerts
            bot_token: Token to redact from logged errors
        """
        self.bot = bot
        self.chat_id = chat_id
        self.log_chat_id = log_chat_id
        self.bot_token = bot_token

    def _redact(self, text: str) -> str:
        if self.bot_token:
            return text.replace(self.bot_token, "<redacted>")
        return text

    def _delivery_error(self, action: str, e: TelegramError) -> DeliveryError:
        msg = self._redact(f"{type(e).__name__}: {e}")
        logger.error("Telegram delivery failed", action=action, error=msg)
        return DeliveryError(f"{action} failed: {msg}")

    async def post(self, channel: str, text: str, parse_mode: Optional[str] = ParseMode.HTML) -> int:
        """Send a text message.

        Returns:
            The Telegram message id, usable with ``delete``.

        Raises:
            DeliveryError: Telegram rejected the message.
        """
        try:
            message = await self.bot.send_message(
                chat_id=channel,
                text=text,
                parse_mode=parse_mode,
                disable_web_page_preview=True,
            )
        except TelegramError as e:
            raise self._delivery_error("send_message", e) from e
        return message.message_id

    async def delete(self, channel: str, message_id: int) -> None:
        """Delete a previously sent message."""
        try:
            await self.bot.delete_message(chat_id=channel, message_id=message_id)
        except TelegramError as e:
            raise self._delivery_error("delete_message", e) from e

    async def post_media(self, channel: str, text: str, media_path: Path, kind: MediaKind) -> int:
        """Send an audio or video file with an HTML caption."""
        try:
            with open(media_path, "rb") as media:
                if kind == MediaKind.VIDEO:
                    message = await self.bot.send_video(
                        chat_id=channel,
                        video=media,
                        caption=text,
                        parse_mode=ParseMode.HTML,
                        width=VIDEO_DIMENSION,
                        height=VIDEO_DIMENSION,
                        supports_streaming=True,
                    )
                else:
                    message = await self.bot.send_audio(
                        chat_id=channel,
                        audio=media,
                        caption=text,
                        parse_mode=ParseMode.HTML,
                    )
        except OSError as e:
            raise DeliveryError(f"Could not read {media_path}: {e}") from e
        except TelegramError as e:
            raise self._delivery_error(f"send_{kind.value}", e) from e

        logger.info("Telegram media sent", kind=kind.value, chat_id=channel)
        return message.message_id

    async def alert(self, text: str) -> bool:
        """Send an operational alert to the administrative channel.

        Returns:
            True if sent successfully
        """
        try:
            await self.post(self.log_chat_id, text)
        except DeliveryError:
            return False
        return True
