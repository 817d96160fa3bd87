from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlencode

import structlog
from playwright.async_api import Error as PlaywrightError

from ..errors import ScrapeError
from ..models import CallEvent
from .session import LIVE_CALLS_CONTAINER, Session

logger = structlog.get_logger(__name__)

PLAY_HANDLER_RE = re.compile(r"""Play\(['"]([^'"]+)['"],\s*['"]([^'"]+)['"]\)""")
MIN_CELLS = 5

# Raw row snapshot; parsing happens in Python so it can be tested without a browser.
_ROWS_SCRIPT = """
(container) => Array.from(document.querySelectorAll(`${container} tr`)).map((row) => {
  const playBtn = row.querySelector('button[onclick*="Play"]');
  return {
    cells: Array.from(row.querySelectorAll('td')).map((td) => (td.innerText || '').trim()),
    onclick: playBtn ? (playBtn.getAttribute('onclick') || '') : null,
  };
})
"""


def build_audio_location(sound_url: str, routing_id: str, event_id: str) -> str:
    return f"{sound_url}?{urlencode({'did': routing_id, 'uuid': event_id})}"


def parse_row(row: Any, sound_url: str) -> CallEvent | None:
    """Turn one raw table row into a CallEvent, or None if it is not eligible."""
    if not isinstance(row, dict):
        return None
    onclick = row.get("onclick")
    cells = row.get("cells")
    if not onclick or not isinstance(cells, list) or len(cells) < MIN_CELLS:
        return None

    m = PLAY_HANDLER_RE.search(str(onclick))
    if not m:
        return None
    routing_id, event_id = m.group(1), m.group(2)

    country, number, cli = (str(c or "").strip() for c in cells[:3])
    if not number:
        return None

    return CallEvent(
        event_id=event_id,
        routing_id=routing_id,
        display_country=country,
        subscriber_number=number,
        caller_line_identifier=cli,
        audio_location=build_audio_location(sound_url, routing_id, event_id),
    )


def parse_rows(rows: Any, sound_url: str) -> list[CallEvent]:
    if not isinstance(rows, list):
        raise ScrapeError(f"Unexpected live calls snapshot: {type(rows).__name__}")

    events: list[CallEvent] = []
    seen: set[str] = set()
    for row in rows:
        event = parse_row(row, sound_url)
        if event is None or event.event_id in seen:
            continue
        seen.add(event.event_id)
        events.append(event)
    return events


class EventScraper:
    """Extracts call events from the live calls view."""

    def __init__(self, sound_url: str, *, timeout_seconds: float = 30.0):
        self.sound_url = sound_url
        self.timeout_seconds = timeout_seconds

    async def poll(self, session: Session) -> list[CallEvent]:
        """Snapshot the current calls. Never raises; failures yield an empty list."""
        account = session.account.email
        try:
            page = session.page
            await page.wait_for_selector(LIVE_CALLS_CONTAINER, timeout=self.timeout_seconds * 1000)
            rows = await page.evaluate(_ROWS_SCRIPT, LIVE_CALLS_CONTAINER)
            events = parse_rows(rows, self.sound_url)
        except (PlaywrightError, ScrapeError) as e:
            logger.error("Scrape failed", account=account, error=str(e))
            return []
        except Exception as e:
            # e.g. the driver connection closing underneath the page
            logger.error("Unexpected scrape failure", account=account, error=str(e), error_type=type(e).__name__)
            return []

        for event in events:
            logger.debug(
                "Call visible",
                account=account,
                event_id=event.event_id,
                country=event.display_country,
                number=event.subscriber_number,
                cli=event.caller_line_identifier,
            )
        return events
