from __future__ import annotations

import html
from datetime import datetime
from zoneinfo import ZoneInfo

from ..countries import CountryDirectory
from ..models import CallDetails, CallEvent

TIME_FORMAT = "%d/%m/%Y, %H.%M.%S"


def describe_call(
    event: CallEvent,
    countries: CountryDirectory,
    *,
    timezone: str = "Asia/Jakarta",
    mask_token: str = "DRX",
    now: datetime | None = None,
) -> CallDetails:
    detected = now or datetime.now(ZoneInfo(timezone))
    number = event.subscriber_number
    return CallDetails(
        flag=countries.flag(number),
        country_name=countries.country_name(number),
        masked_number=countries.mask(number, mask_token),
        detected_at=detected.strftime(TIME_FORMAT),
    )


def placeholder_text(details: CallDetails) -> str:
    return f"{details.flag} {html.escape(details.country_name)} {html.escape(details.masked_number)}\n⏳ Processing audio..."


def call_caption(event: CallEvent, details: CallDetails) -> str:
    esc = html.escape
    return "\n".join(
        [
            "✨ <b>New Call Activity Detected</b> ✨",
            "",
            f"{details.flag} <b>Country:</b> {esc(details.country_name)}",
            f"☎️ <b>Number:</b> {esc(details.masked_number)}",
            f"📞 <b>CLI:</b> {esc(event.caller_line_identifier)}",
            f"⏰ <b>Time:</b> {esc(details.detected_at)}",
        ]
    )


def download_failed_caption(caption: str) -> str:
    return f"{caption}\n\n⚠️ Audio download failed"


def error_caption(caption: str, error: str) -> str:
    return f"{caption}\n\n⚠️ Error: {html.escape(error[:300])}"


def worker_error_alert(account_email: str, error: str) -> str:
    return f"🚨 <b>Worker Error</b> for <code>{html.escape(account_email)}</code>:\n<code>{html.escape(error[:500])}</code>"


def startup_notice(accounts: int, transcoding: bool) -> str:
    return (
        "✅ <b>Live Call Monitor Started</b>\n\n"
        f"👤 Accounts: {accounts}\n"
        "📞 Monitoring for incoming calls...\n"
        f"🎬 FFmpeg: {'Available' if transcoding else 'Not found'}"
    )


def shutdown_notice(processed: int) -> str:
    return f"🛑 <b>Live Call Monitor Stopped</b>\n\nProcessed calls: {processed}"


def start_command_text() -> str:
    return (
        "🔥 Live Call Monitor is running...\n\n"
        "📞 Monitoring for incoming calls\n"
        "🎵 Audio will be sent automatically"
    )


def status_text(accounts: int, processed: int, transcoding: bool) -> str:
    return (
        "📊 <b>Status</b>\n\n"
        f"Accounts monitored: {accounts}\n"
        f"Processed calls: {processed}\n"
        f"FFmpeg: {'✓' if transcoding else '✗'}"
    )
