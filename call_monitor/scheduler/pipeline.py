"""Per-event fetch, transcode and notify chain."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from ..countries import CountryDirectory
from ..errors import DeliveryError, TranscodeError
from ..media.artifacts import ArtifactPaths, artifact_paths
from ..media.fetcher import ArtifactFetcher, SessionCredentials
from ..media.transcoder import MediaTranscoder
from ..models import CallDetails, CallEvent, DeliveryOutcome, MediaKind
from ..notifications.formatting import (
    call_caption,
    describe_call,
    download_failed_caption,
    error_caption,
    placeholder_text,
)
from ..notifications.telegram_bot import TelegramNotifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Announcement:
    """What ``announce`` posted for one event."""

    details: CallDetails
    caption: str
    placeholder: Optional[int]


class EventPipeline:
    """Delivers one detected call to the notification channel.

    A provisional message is posted as soon as the call is seen, then
    replaced by exactly one final message: the video, the raw audio, or a
    caption explaining the failure. Temporary media files never outlive
    ``deliver``.

    ``announce`` and ``deliver`` can run apart so callers may limit
    concurrent deliveries without holding back placeholders.
    """

    def __init__(
        self,
        notifier: TelegramNotifier,
        fetcher: ArtifactFetcher,
        countries: CountryDirectory,
        *,
        chat_id: str,
        transcoder: Optional[MediaTranscoder] = None,
        transcoding: bool = False,
        processing_delay_seconds: float = 14.0,
        temp_directory: Optional[str] = None,
        timezone: str = "Asia/Jakarta",
        mask_token: str = "DRX",
    ):
        self.notifier = notifier
        self.fetcher = fetcher
        self.countries = countries
        self.chat_id = chat_id
        self.transcoder = transcoder
        self.transcoding = bool(transcoding and transcoder is not None)
        self.processing_delay_seconds = processing_delay_seconds
        self.temp_directory = temp_directory
        self.timezone = timezone
        self.mask_token = mask_token

    async def process(self, event: CallEvent, credentials: SessionCredentials) -> DeliveryOutcome:
        """Run the whole chain for ``event`` and report which final message was sent."""
        announcement = await self.announce(event)
        return await self.deliver(event, credentials, announcement)

    async def announce(self, event: CallEvent) -> Announcement:
        """Post the provisional message. Never raises on delivery failures."""
        details = describe_call(event, self.countries, timezone=self.timezone, mask_token=self.mask_token)
        placeholder = await self._post_placeholder(details, logger.bind(event_id=event.event_id))
        return Announcement(details=details, caption=call_caption(event, details), placeholder=placeholder)

    async def deliver(
        self,
        event: CallEvent,
        credentials: SessionCredentials,
        announcement: Announcement,
    ) -> DeliveryOutcome:
        """Fetch the recording and replace the placeholder with the final message."""
        log = logger.bind(event_id=event.event_id)
        caption = announcement.caption
        placeholder = announcement.placeholder
        try:
            if self.processing_delay_seconds > 0:
                await asyncio.sleep(self.processing_delay_seconds)

            with artifact_paths(event.event_id, self.temp_directory) as paths:
                downloaded = await self.fetcher.fetch(credentials, event.audio_location, paths.audio)

                await self._drop_placeholder(placeholder, log)
                placeholder = None

                if not downloaded:
                    await self.notifier.post(self.chat_id, download_failed_caption(caption))
                    log.warning("Sent download failure notice")
                    return DeliveryOutcome.FAILED

                video = await self._transcode(paths, log)
                if video is not None:
                    await self.notifier.post_media(self.chat_id, caption, video, MediaKind.VIDEO)
                    log.info("Sent call video")
                    return DeliveryOutcome.VIDEO

                await self.notifier.post_media(self.chat_id, caption, paths.audio, MediaKind.AUDIO)
                log.info("Sent call audio")
                return DeliveryOutcome.AUDIO

        except Exception as e:
            log.error("Event processing failed", error=str(e))
            if placeholder is not None:
                await self._drop_placeholder(placeholder, log)
            try:
                await self.notifier.post(self.chat_id, error_caption(caption, str(e)))
            except DeliveryError:
                log.error("Could not deliver error notice")
            return DeliveryOutcome.ERROR

    async def _post_placeholder(self, details: CallDetails, log) -> Optional[int]:
        try:
            return await self.notifier.post(self.chat_id, placeholder_text(details))
        except DeliveryError as e:
            log.warning("Could not post placeholder", error=str(e))
            return None

    async def _drop_placeholder(self, message_id: Optional[int], log) -> None:
        if message_id is None:
            return
        try:
            await self.notifier.delete(self.chat_id, message_id)
        except DeliveryError as e:
            log.debug("Could not delete placeholder", error=str(e))

    async def _transcode(self, paths: ArtifactPaths, log) -> Optional[Path]:
        if not self.transcoding:
            return None
        try:
            return await self.transcoder.transcode(paths.audio, paths.video)
        except TranscodeError as e:
            log.warning("Transcode failed, sending raw audio", error=str(e))
            return None
