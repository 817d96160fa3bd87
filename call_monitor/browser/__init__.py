"""Browser automation against the live calls dashboard."""

from .scraper import EventScraper
from .session import Session, SessionProvider, SessionSlot

__all__ = ["EventScraper", "Session", "SessionProvider", "SessionSlot"]
