from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from telegram.error import NetworkError, TelegramError

from call_monitor.errors import DeliveryError
from call_monitor.models import MediaKind
from call_monitor.notifications.telegram_bot import TelegramNotifier

TOKEN = "123456:SECRET-TOKEN"


class _FakeBot:
    def __init__(self, error: TelegramError | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    async def _record(self, name: str, **kwargs):
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(message_id=len(self.calls))

    async def send_message(self, **kwargs):
        return await self._record("send_message", **kwargs)

    async def delete_message(self, **kwargs):
        return await self._record("delete_message", **kwargs)

    async def send_video(self, **kwargs):
        return await self._record("send_video", **kwargs)

    async def send_audio(self, **kwargs):
        return await self._record("send_audio", **kwargs)


def _notifier(bot: _FakeBot) -> TelegramNotifier:
    return TelegramNotifier(bot, chat_id="-100", log_chat_id="-200", bot_token=TOKEN)


@pytest.mark.asyncio
async def test_post_returns_message_id() -> None:
    bot = _FakeBot()
    assert await _notifier(bot).post("-100", "<b>hi</b>") == 1
    name, kwargs = bot.calls[0]
    assert name == "send_message"
    assert kwargs["chat_id"] == "-100"
    assert kwargs["parse_mode"] == "HTML"


@pytest.mark.asyncio
async def test_telegram_errors_become_delivery_errors_without_token() -> None:
    bot = _FakeBot(error=NetworkError(f"POST https://api.telegram.org/bot{TOKEN}/sendMessage failed"))
    with pytest.raises(DeliveryError) as excinfo:
        await _notifier(bot).post("-100", "hello")
    assert TOKEN not in str(excinfo.value)
    assert "<redacted>" in str(excinfo.value)


@pytest.mark.asyncio
async def test_delete_failure_raises() -> None:
    with pytest.raises(DeliveryError):
        await _notifier(_FakeBot(error=TelegramError("message to delete not found"))).delete("-100", 7)


@pytest.mark.asyncio
async def test_alert_goes_to_admin_channel_and_never_raises() -> None:
    bot = _FakeBot()
    assert await _notifier(bot).alert("boom") is True
    assert bot.calls[0][1]["chat_id"] == "-200"

    assert await _notifier(_FakeBot(error=TelegramError("Forbidden"))).alert("boom") is False


@pytest.mark.asyncio
async def test_media_kind_selects_upload_method(tmp_path: Path) -> None:
    media = tmp_path / "call.bin"
    media.write_bytes(b"\x00" * 256)
    bot = _FakeBot()
    notifier = _notifier(bot)

    await notifier.post_media("-100", "caption", media, MediaKind.VIDEO)
    await notifier.post_media("-100", "caption", media, MediaKind.AUDIO)

    (video_call, video_kwargs), (audio_call, _) = bot.calls
    assert video_call == "send_video"
    assert video_kwargs["width"] == 360
    assert video_kwargs["height"] == 360
    assert video_kwargs["supports_streaming"] is True
    assert audio_call == "send_audio"


@pytest.mark.asyncio
async def test_unreadable_media_raises(tmp_path: Path) -> None:
    with pytest.raises(DeliveryError):
        await _notifier(_FakeBot()).post_media("-100", "caption", tmp_path / "gone.mp3", MediaKind.AUDIO)
