from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class CallEvent:
    event_id: str
    routing_id: str
    display_country: str
    subscriber_number: str
    caller_line_identifier: str
    audio_location: str


@dataclass(frozen=True)
class CallDetails:
    """Display metadata derived from a call's subscriber number."""

    flag: str
    country_name: str
    masked_number: str
    detected_at: str


class MediaKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"


class DeliveryOutcome(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    # download exhausted every attempt
    FAILED = "failed"
    ERROR = "error"
