"""Self-healing polling loop for one dashboard account."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog

from ..browser.scraper import EventScraper
from ..browser.session import SessionProvider, SessionSlot
from ..config import AccountConfig
from ..ledger import DedupLedger
from ..models import CallEvent
from ..notifications.formatting import worker_error_alert
from ..notifications.telegram_bot import TelegramNotifier
from .pipeline import EventPipeline

logger = structlog.get_logger(__name__)


class MonitorState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    POLLING = "polling"


class AccountMonitor:
    """Keeps one account logged in and turns new calls into pipeline tasks.

    Polls are strictly sequential. Each new call is handed to its own task so
    a slow download never delays the next poll. Any session-level failure
    drops the session, alerts the admin channel and reconnects after a
    backoff; the loop itself never ends.
    """

    def __init__(
        self,
        account: AccountConfig,
        provider: SessionProvider,
        scraper: EventScraper,
        ledger: DedupLedger,
        pipeline: EventPipeline,
        notifier: TelegramNotifier,
        *,
        poll_interval_seconds: float = 5.0,
        reconnect_backoff_seconds: float = 30.0,
        reload_timeout_seconds: float = 30.0,
        event_concurrency: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.account = account
        self.provider = provider
        self.scraper = scraper
        self.ledger = ledger
        self.pipeline = pipeline
        self.notifier = notifier
        self.poll_interval_seconds = poll_interval_seconds
        self.reconnect_backoff_seconds = reconnect_backoff_seconds
        self.slot = SessionSlot(account.email, reload_timeout_seconds)
        self.state = MonitorState.DISCONNECTED
        self._sleep = sleep
        self._limiter: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(event_concurrency) if event_concurrency > 0 else None
        )
        self._tasks: set[asyncio.Task] = set()
        self.log = logger.bind(account=account.email)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def run(self) -> None:
        """Poll forever."""
        self.log.info("Account monitor started")
        while True:
            await self.step()

    async def step(self) -> None:
        """Run one iteration of the connect/poll/backoff cycle."""
        if self.slot.session is None:
            if not await self._connect():
                await self._sleep(self.reconnect_backoff_seconds)
                return

        try:
            await self._poll()
        except Exception as e:
            await self._disconnect(e)
            await self._sleep(self.reconnect_backoff_seconds)
            return

        await self._sleep(self.poll_interval_seconds)

    async def _connect(self) -> bool:
        self.state = MonitorState.CONNECTING
        try:
            session = await self.provider.acquire(self.account)
        except Exception as e:
            self.state = MonitorState.DISCONNECTED
            self.log.error("Session acquisition failed", error=str(e))
            await self.notifier.alert(worker_error_alert(self.account.email, str(e)))
            return False

        self.slot.bind(session)
        self.state = MonitorState.POLLING
        return True

    async def _poll(self) -> None:
        session = self.slot.session
        events = await self.scraper.poll(session)
        self.dispatch(events)
        await self.slot.refresh()

    async def _disconnect(self, error: Exception) -> None:
        self.log.error("Session failed while polling", error=str(error))
        session = self.slot.take()
        if session is not None:
            await self.provider.release(session)
        self.state = MonitorState.DISCONNECTED
        await self.notifier.alert(worker_error_alert(self.account.email, str(error)))

    def dispatch(self, events: list[CallEvent]) -> list[asyncio.Task]:
        """Start a pipeline task for every event not yet in the ledger."""
        spawned = []
        for event in events:
            if not self.ledger.claim(event.event_id):
                continue
            self.log.info(
                "New call",
                event_id=event.event_id,
                country=event.display_country,
                cli=event.caller_line_identifier,
            )
            task = asyncio.create_task(self._process(event), name=f"call-{event.event_id}")
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
            spawned.append(task)
        return spawned

    async def _process(self, event: CallEvent) -> None:
        # placeholders go out on detection; only deliveries wait for the limiter
        announcement = await self.pipeline.announce(event)
        if self._limiter is None:
            await self.pipeline.deliver(event, self.slot, announcement)
            return
        async with self._limiter:
            await self.pipeline.deliver(event, self.slot, announcement)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error("Event task crashed", task=task.get_name(), error=str(exc))

    async def drain(self) -> None:
        """Wait for every outstanding event task."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding event tasks and release the session."""
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
        session = self.slot.take()
        if session is not None:
            await self.provider.release(session)
        self.state = MonitorState.DISCONNECTED
        self.log.info("Account monitor closed")
