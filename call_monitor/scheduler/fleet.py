"""Fan-out of one account monitor per configured account."""

import asyncio
from typing import Callable, Dict, List

import structlog

from ..config import AccountConfig
from .account_monitor import AccountMonitor

logger = structlog.get_logger(__name__)


class FleetSupervisor:
    """Starts independent monitors; never restarts or aggregates them."""

    def __init__(self, monitor_factory: Callable[[AccountConfig], AccountMonitor]):
        self.monitor_factory = monitor_factory
        self.monitors: Dict[str, AccountMonitor] = {}
        self.tasks: Dict[str, asyncio.Task] = {}

    def start(self, accounts: List[AccountConfig]) -> Dict[str, asyncio.Task]:
        """Spawn a monitor task for every non-placeholder account."""
        for account in accounts:
            if account.is_placeholder:
                logger.info("Skipping placeholder account", account=account.email)
                continue
            if account.email in self.tasks:
                logger.warning("Account configured twice, ignoring duplicate", account=account.email)
                continue

            monitor = self.monitor_factory(account)
            task = asyncio.create_task(monitor.run(), name=f"monitor-{account.email}")
            task.add_done_callback(self._monitor_done)
            self.monitors[account.email] = monitor
            self.tasks[account.email] = task

        logger.info("Fleet started", accounts=len(self.tasks))
        return dict(self.tasks)

    def _monitor_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Account monitor stopped unexpectedly", task=task.get_name(), error=str(exc))

    async def wait(self) -> None:
        """Block until every monitor task has ended."""
        if self.tasks:
            await asyncio.gather(*self.tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel all monitors and release their sessions."""
        for task in self.tasks.values():
            task.cancel()
        await self.wait()
        for monitor in self.monitors.values():
            await monitor.close()
        logger.info("Fleet stopped", accounts=len(self.tasks))
