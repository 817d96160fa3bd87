"""Error taxonomy for the call monitoring pipeline."""


class MonitorError(Exception):
    """Base class for every error raised by call_monitor."""


class ConfigError(MonitorError):
    """Required settings are missing or invalid."""


class AuthError(MonitorError):
    """The dashboard rejected the account credentials."""


class NavigationError(MonitorError):
    """A page could not be reached or the expected view never appeared."""


class SessionTimeoutError(NavigationError):
    """A navigation or selector wait exceeded its timeout."""


class SessionUnavailableError(MonitorError):
    """No live session is currently bound for the account."""


class ScrapeError(MonitorError):
    """The live-calls view was in an unexpected state."""


class FetchError(MonitorError):
    """An audio download attempt failed."""


class TranscodeError(MonitorError):
    """ffmpeg could not produce a video from the audio artifact."""


class DeliveryError(MonitorError):
    """Telegram refused or failed to deliver a message."""
