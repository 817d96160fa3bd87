"""Retrying download of call recordings."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import httpx
import structlog

from ..errors import FetchError, MonitorError

logger = structlog.get_logger(__name__)

DOWNLOAD_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class SessionCredentials(Protocol):
    async def cookie_header(self) -> str: ...

    async def refresh(self) -> None: ...


class ArtifactFetcher:
    """Downloads recordings with the browser session's cookies.

    Each attempt must produce a file larger than ``min_bytes``; anything
    smaller is an error page or an empty recording and counts as a failure.
    Between attempts the session view is refreshed, since stale sessions are
    the usual cause of failed downloads.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        referer: str,
        origin: str,
        attempts: int = 5,
        retry_cooldown_seconds: float = 3.0,
        min_bytes: int = 100,
        timeout_seconds: float = 30.0,
    ):
        self.client = client
        self.referer = referer
        self.origin = origin
        self.attempts = max(1, int(attempts))
        self.retry_cooldown_seconds = retry_cooldown_seconds
        self.min_bytes = min_bytes
        self.timeout_seconds = timeout_seconds

    def _headers(self, cookie: str) -> dict[str, str]:
        return {
            "User-Agent": DOWNLOAD_USER_AGENT,
            "Referer": self.referer,
            "Origin": self.origin,
            "Accept": "audio/mpeg,*/*",
            "Cookie": cookie,
        }

    async def _attempt(self, credentials: SessionCredentials, audio_location: str, destination: Path) -> int:
        cookie = await credentials.cookie_header()
        try:
            resp = await self.client.get(
                audio_location,
                headers=self._headers(cookie),
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

        try:
            destination.write_bytes(resp.content)
            size = destination.stat().st_size
        except OSError as e:
            raise FetchError(f"Could not write {destination}: {e}") from e

        if size <= self.min_bytes:
            raise FetchError(f"File too small ({size} bytes)")
        return size

    async def fetch(self, credentials: SessionCredentials, audio_location: str, destination: Path) -> bool:
        """Download ``audio_location`` into ``destination``.

        Returns:
            True once a usable file is written, False when every attempt failed.
        """
        for attempt in range(1, self.attempts + 1):
            logger.info("Downloading recording", attempt=attempt, destination=destination.name)
            try:
                size = await self._attempt(credentials, audio_location, destination)
                logger.info("Download succeeded", attempt=attempt, destination=destination.name, size=size)
                return True
            except MonitorError as e:
                logger.warning("Download attempt failed", attempt=attempt, destination=destination.name, error=str(e))

            if attempt < self.attempts:
                try:
                    await credentials.refresh()
                except MonitorError as e:
                    logger.warning("Session refresh before retry failed", error=str(e))
                await asyncio.sleep(self.retry_cooldown_seconds)

        logger.error("Download attempts exhausted", attempts=self.attempts, destination=destination.name)
        return False
