"""Configuration management for the call monitor."""

import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

PLACEHOLDER_DOMAIN = "example.com"


class AccountConfig(BaseModel):
    """Credentials for one monitored dashboard account."""
    email: str = Field(description="Dashboard login email")
    password: str = Field(description="Dashboard login password")

    model_config = {"frozen": True}

    @property
    def is_placeholder(self) -> bool:
        """True for the sample accounts shipped in example configs."""
        return PLACEHOLDER_DOMAIN in self.email.lower()


class TimeoutsConfig(BaseModel):
    """Per-step timeouts, in seconds."""
    login_page: float = Field(default=30, description="Loading the login page")
    selector: float = Field(default=10, description="Waiting for login form fields")
    live_view: float = Field(default=15, description="Waiting for the live calls container")
    submit_navigation: float = Field(default=60, description="Navigation after submitting credentials")
    live_page: float = Field(default=30, description="Loading and reloading the live calls page")
    scrape: float = Field(default=30, description="Waiting for the live calls table while scraping")
    fetch: float = Field(default=30, description="One audio download attempt")
    transcode: float = Field(default=120, description="One ffmpeg run")


class MonitorConfig(BaseModel):
    """Main configuration for the call monitor."""

    # Telegram settings
    bot_token: str = Field(description="Telegram bot token")
    chat_id: str = Field(description="Channel receiving call notifications")
    log_chat_id: str = Field(description="Administrative channel for operational alerts")

    accounts: list[AccountConfig] = Field(default_factory=list, description="Dashboard accounts to monitor")

    # Dashboard settings
    base_url: str = Field(default="https://www.orangecarrier.com", description="Dashboard base URL")
    login_path: str = Field(default="/login", description="Login page path")
    live_calls_path: str = Field(default="/live/calls", description="Live calls view path")
    sound_path: str = Field(default="/live/calls/sound", description="Recording download endpoint path")

    # Browser settings
    browser_headless: bool = Field(default=True, description="Run Chromium in headless mode")
    browser_executable: Optional[str] = Field(default=None, description="Chromium binary; auto-detected when unset")

    # Polling settings
    poll_interval_seconds: float = Field(default=5, description="Delay between polls of one account")
    reconnect_backoff_seconds: float = Field(default=30, description="Delay after a session-level failure")
    processing_delay_seconds: float = Field(default=14, description="Wait before downloading a new recording")
    event_concurrency: int = Field(default=10, description="Max concurrent event pipelines per account, 0 = unbounded")

    # Download settings
    fetch_attempts: int = Field(default=5, description="Download attempts per recording")
    fetch_retry_cooldown_seconds: float = Field(default=3, description="Pause between download attempts")
    min_artifact_bytes: int = Field(default=100, description="Smaller downloads are treated as failures")

    # Transcoding settings
    transcode_enabled: bool = Field(default=True, description="Convert recordings to video when ffmpeg exists")
    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable")
    background_image: str = Field(default="phone.png", description="Still image used as the video track")
    temp_directory: Optional[str] = Field(default=None, description="Directory for temporary media files")

    # Display settings
    country_prefix_file: str = Field(default="negara.json", description="Numeric prefix to ISO code table")
    country_names_file: str = Field(default="country.json", description="ISO code to country name table")
    display_timezone: str = Field(default="Asia/Jakarta", description="Time zone for detection timestamps")
    mask_token: str = Field(default="DRX", description="Text replacing the hidden digits of a number")

    log_level: str = Field(default="INFO", description="Logging level")

    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)

    @field_validator("chat_id", "log_chat_id", mode="before")
    @classmethod
    def _coerce_chat_id(cls, value: Any) -> Any:
        # Telegram chat ids are often written as bare integers in config files
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + self.login_path

    @property
    def live_calls_url(self) -> str:
        return self.base_url.rstrip("/") + self.live_calls_path

    @property
    def sound_url(self) -> str:
        return self.base_url.rstrip("/") + self.sound_path

    def active_accounts(self) -> list[AccountConfig]:
        """Accounts that should actually be monitored."""
        return [account for account in self.accounts if not account.is_placeholder]


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lower-case top-level keys so ``CHAT_ID`` style documents load too."""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[str(key).lower()] = value
    return normalized


def load_config(config_path: Optional[str] = None) -> MonitorConfig:
    """Load configuration from file and environment variables.

    Args:
        config_path: YAML (or JSON) settings document. Defaults to
            ``CALL_MONITOR_CONFIG`` or ``config.yaml``.

    Raises:
        ConfigError: when the document is unreadable or required settings
            are missing.
    """
    if config_path is None:
        config_path = os.getenv("CALL_MONITOR_CONFIG", "config.yaml")

    config_data: Dict[str, Any] = {}

    # Load from file if exists
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        config_data = _normalize_keys(loaded)

    # Override with environment variables
    env_overrides = {
        "bot_token": os.getenv("TELEGRAM_BOT_TOKEN"),
        "chat_id": os.getenv("TELEGRAM_CHAT_ID"),
        "log_chat_id": os.getenv("TELEGRAM_LOG_CHAT_ID"),
        "log_level": os.getenv("LOG_LEVEL"),
        "browser_headless": os.getenv("BROWSER_HEADLESS"),
        "browser_executable": os.getenv("BROWSER_EXECUTABLE"),
    }

    for key, value in env_overrides.items():
        if value is not None:
            if key in ["browser_headless"]:
                value = value.lower() in ("true", "1", "yes")
            config_data[key] = value

    try:
        return MonitorConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
