"""Live call monitor: watches dashboard accounts and forwards call recordings to Telegram."""

__version__ = "0.1.0"
