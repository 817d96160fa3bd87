"""Fakes shared by the call monitor tests.

These stand in for the Telegram bot, the browser session and the media
helpers. They are NOT fixtures - import them directly.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from call_monitor.errors import DeliveryError, NavigationError, TranscodeError
from call_monitor.models import CallEvent, MediaKind


def make_event(event_id: str = "uuid-1", number: str = "85512345678") -> CallEvent:
    return CallEvent(
        event_id=event_id,
        routing_id="did-1",
        display_country="Cambodia",
        subscriber_number=number,
        caller_line_identifier="+1 555 0100",
        audio_location=f"https://dash.test/live/calls/sound?did=did-1&uuid={event_id}",
    )


class FakeNotifier:
    def __init__(self, *, fail_post: bool = False, fail_delete: bool = False, fail_media: bool = False) -> None:
        self.fail_post = fail_post
        self.fail_delete = fail_delete
        self.fail_media = fail_media
        self.posts: list[tuple[str, str]] = []
        self.deletes: list[tuple[str, int]] = []
        self.media: list[dict] = []
        self.alerts: list[str] = []
        self._next_id = 100

    async def post(self, channel: str, text: str, parse_mode: str | None = None) -> int:
        if self.fail_post:
            raise DeliveryError("post failed")
        self.posts.append((channel, text))
        self._next_id += 1
        return self._next_id

    async def delete(self, channel: str, message_id: int) -> None:
        self.deletes.append((channel, message_id))
        if self.fail_delete:
            raise DeliveryError("delete failed")

    async def post_media(self, channel: str, text: str, media_path: Path, kind: MediaKind) -> int:
        if self.fail_media:
            raise DeliveryError("media failed")
        self.media.append(
            {"channel": channel, "text": text, "path": Path(media_path), "kind": kind, "existed": Path(media_path).exists()}
        )
        self._next_id += 1
        return self._next_id

    async def alert(self, text: str) -> bool:
        self.alerts.append(text)
        return True


class FakeCredentials:
    def __init__(self, cookie: str = "sid=abc") -> None:
        self.cookie = cookie
        self.refreshes = 0

    async def cookie_header(self) -> str:
        return self.cookie

    async def refresh(self) -> None:
        self.refreshes += 1


class FakeFetcher:
    def __init__(self, succeed: bool = True, payload: bytes = b"\xff" * 512) -> None:
        self.succeed = succeed
        self.payload = payload
        self.calls: list[tuple[str, Path]] = []

    async def fetch(self, credentials, audio_location: str, destination: Path) -> bool:
        self.calls.append((audio_location, destination))
        if self.succeed:
            destination.write_bytes(self.payload)
        return self.succeed


class FakeTranscoder:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.calls = 0

    async def transcode(self, input_path: Path, output_path: Path) -> Path:
        self.calls += 1
        if not self.succeed:
            raise TranscodeError("ffmpeg exploded")
        output_path.write_bytes(b"mp4" * 100)
        return output_path


class FakeSession:
    def __init__(self, email: str = "agent@dash.test", *, fail_reload: bool = False) -> None:
        self.account = SimpleNamespace(email=email)
        self.page = None
        self.closed = False
        self.fail_reload = fail_reload
        self.reloads = 0

    async def cookie_header(self) -> str:
        return "sid=abc"

    async def reload(self, timeout_seconds: float) -> None:
        self.reloads += 1
        if self.fail_reload:
            raise NavigationError("page crashed")

    async def close(self) -> None:
        self.closed = True


