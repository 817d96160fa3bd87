"""Main entry point for the live call monitor."""

import argparse
import asyncio
import logging
import os
import signal
from typing import Optional

import httpx
import structlog

from .browser.scraper import EventScraper
from .browser.session import SessionProvider
from .config import AccountConfig, MonitorConfig, load_config
from .countries import CountryDirectory
from .errors import ConfigError
from .ledger import DedupLedger
from .media.fetcher import ArtifactFetcher
from .media.transcoder import MediaTranscoder
from .notifications.commands import StatusCommands, build_application
from .notifications.formatting import shutdown_notice, startup_notice
from .notifications.telegram_bot import TelegramNotifier
from .scheduler.account_monitor import AccountMonitor
from .scheduler.fleet import FleetSupervisor
from .scheduler.pipeline import EventPipeline

logger = structlog.get_logger(__name__)


def configure_logging(level: str) -> None:
    """Configure structured console logging."""
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=numeric_level)
    # Avoid leaking secrets (Telegram token is embedded in the Telegram API URL).
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run(config: MonitorConfig, countries: CountryDirectory) -> None:
    """Wire every component together and monitor until cancelled."""
    ledger = DedupLedger()

    transcoder = MediaTranscoder(
        binary=config.ffmpeg_binary,
        background_image=config.background_image,
        timeout_seconds=config.timeouts.transcode,
    )
    transcoding = config.transcode_enabled and await transcoder.available()
    logger.info("FFmpeg check", available=transcoding)

    accounts = config.active_accounts()
    commands = StatusCommands(len(accounts), lambda: len(ledger), transcoding)
    application = build_application(config.bot_token)
    commands.register(application)

    async with application, httpx.AsyncClient() as http_client, SessionProvider(config) as provider:
        await application.start()
        await application.updater.start_polling()

        notifier = TelegramNotifier(application.bot, config.chat_id, config.log_chat_id, bot_token=config.bot_token)
        fetcher = ArtifactFetcher(
            http_client,
            referer=config.live_calls_url,
            origin=config.base_url.rstrip("/"),
            attempts=config.fetch_attempts,
            retry_cooldown_seconds=config.fetch_retry_cooldown_seconds,
            min_bytes=config.min_artifact_bytes,
            timeout_seconds=config.timeouts.fetch,
        )
        pipeline = EventPipeline(
            notifier,
            fetcher,
            countries,
            chat_id=config.chat_id,
            transcoder=transcoder,
            transcoding=transcoding,
            processing_delay_seconds=config.processing_delay_seconds,
            temp_directory=config.temp_directory,
            timezone=config.display_timezone,
            mask_token=config.mask_token,
        )
        scraper = EventScraper(config.sound_url, timeout_seconds=config.timeouts.scrape)

        def make_monitor(account: AccountConfig) -> AccountMonitor:
            return AccountMonitor(
                account,
                provider,
                scraper,
                ledger,
                pipeline,
                notifier,
                poll_interval_seconds=config.poll_interval_seconds,
                reconnect_backoff_seconds=config.reconnect_backoff_seconds,
                reload_timeout_seconds=config.timeouts.live_page,
                event_concurrency=config.event_concurrency,
            )

        supervisor = FleetSupervisor(make_monitor)
        await notifier.alert(startup_notice(len(accounts), transcoding))
        supervisor.start(accounts)
        logger.info("Bot is now monitoring live calls", accounts=len(accounts))

        try:
            await supervisor.wait()
        finally:
            logger.info("Shutting down")
            await supervisor.stop()
            await notifier.alert(shutdown_notice(len(ledger)))
            await application.updater.stop()
            await application.stop()


async def _run_until_signal(config: MonitorConfig, countries: CountryDirectory) -> None:
    task = asyncio.create_task(run(config, countries))
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handler support
        pass
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Monitor stopped")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Live call monitor")
    parser.add_argument(
        "--config",
        default=os.getenv("CALL_MONITOR_CONFIG", "config.yaml"),
        help="Path to YAML or JSON config",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (INFO, WARNING, ...)",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("Configuration error", error=str(e))
        return 2

    configure_logging(args.log_level or config.log_level)

    try:
        countries = CountryDirectory.from_files(config.country_prefix_file, config.country_names_file)
    except (OSError, ValueError) as e:
        logger.error("Could not load country tables", error=str(e))
        return 2

    try:
        asyncio.run(_run_until_signal(config, countries))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    except Exception as e:
        logger.error("Monitor crashed", error=str(e))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
