"""Authenticated dashboard sessions driven by Playwright."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import AccountConfig, MonitorConfig
from ..errors import AuthError, NavigationError, SessionTimeoutError, SessionUnavailableError

logger = structlog.get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

SYSTEM_CHROMIUM_PATHS = (
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/bin/google-chrome",
    "/usr/local/bin/chromium",
    "/opt/chromium/chrome",
    "/opt/google/chrome/chrome",
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-features=IsolateOrigins,site-per-process",
]

EMAIL_INPUT = 'input[name="email"]'
PASSWORD_INPUT = 'input[name="password"]'
SUBMIT_SELECTORS = ("#loginSubmit", 'button[type="submit"]', "button.btn-primary")
LIVE_CALLS_CONTAINER = "#LiveCalls"

TYPING_DELAY_MS = 50
PRE_SUBMIT_PAUSE_MS = 2000
POST_LOGIN_SETTLE_MS = 3000


def find_chromium_path(candidates: tuple[str, ...] = SYSTEM_CHROMIUM_PATHS) -> Optional[str]:
    """Return the first system Chromium binary that exists, if any."""
    for path in candidates:
        if os.path.exists(path):
            logger.info("Using system Chromium", path=path)
            return path

    logger.warning("No system Chromium found, falling back to Playwright's bundled browser")
    return None


@asynccontextmanager
async def _translate_errors(step: str) -> AsyncIterator[None]:
    try:
        yield
    except PlaywrightTimeoutError as e:
        raise SessionTimeoutError(f"{step} timed out: {e}") from e
    except PlaywrightError as e:
        raise NavigationError(f"{step} failed: {e}") from e


class Session:
    """A logged-in browser showing the live calls view for one account."""

    def __init__(self, account: AccountConfig, browser: Browser, context: BrowserContext, page: Page):
        self.account = account
        self.browser = browser
        self.context = context
        self.page = page
        self.closed = False

    async def cookie_header(self) -> str:
        """Serialize the browser cookies into a ``Cookie`` header value."""
        cookies = await self.context.cookies()
        return "; ".join(f"{c['name']}={c['value']}" for c in cookies)

    async def reload(self, timeout_seconds: float) -> None:
        """Reload the live calls view."""
        async with _translate_errors("Reloading live calls view"):
            await self.page.reload(wait_until="networkidle", timeout=timeout_seconds * 1000)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.browser.close()


class SessionSlot:
    """Holder of the one live session an account monitor owns.

    Event pipelines borrow credentials and request view refreshes through the
    slot instead of touching the session directly. Reloads are serialized so
    the polling loop and download retries never reload the page at once.
    """

    def __init__(self, account_email: str, reload_timeout_seconds: float):
        self.account_email = account_email
        self.reload_timeout_seconds = reload_timeout_seconds
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def bind(self, session: Session) -> None:
        if self._session is not None and not self._session.closed:
            raise RuntimeError(f"Session already bound for {self.account_email}")
        self._session = session

    def take(self) -> Optional[Session]:
        """Unbind and return the current session."""
        session, self._session = self._session, None
        return session

    def _require(self) -> Session:
        session = self._session
        if session is None or session.closed:
            raise SessionUnavailableError(f"No live session for {self.account_email}")
        return session

    async def cookie_header(self) -> str:
        session = self._require()
        async with _translate_errors("Reading session cookies"):
            return await session.cookie_header()

    async def refresh(self) -> None:
        async with self._lock:
            await self._require().reload(self.reload_timeout_seconds)


class SessionProvider:
    """Creates and releases authenticated dashboard sessions."""

    def __init__(self, config: MonitorConfig):
        self.config = config
        self.timeouts = config.timeouts
        self.playwright: Optional[Playwright] = None
        self.executable_path: Optional[str] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()

    async def start(self):
        """Start the Playwright driver shared by every account."""
        logger.info("Starting session provider")

        self.playwright = await async_playwright().start()
        self.executable_path = self.config.browser_executable or find_chromium_path()

    async def stop(self):
        """Stop the Playwright driver."""
        logger.info("Stopping session provider")

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

    async def acquire(self, account: AccountConfig) -> Session:
        """Log in as ``account`` and open the live calls view.

        Raises:
            AuthError: the dashboard kept us on the login page.
            NavigationError: a page or control could not be reached.
            SessionTimeoutError: a navigation or selector wait timed out.
        """
        if self.playwright is None:
            raise NavigationError("Session provider is not started")

        logger.info("Logging in", account=account.email)

        async with _translate_errors("Launching browser"):
            browser = await self.playwright.chromium.launch(
                headless=self.config.browser_headless,
                executable_path=self.executable_path,
                args=LAUNCH_ARGS,
            )

        try:
            async with _translate_errors("Opening browser context"):
                context = await browser.new_context(user_agent=USER_AGENT)
                page = await context.new_page()
            await self._login(page, account)
            await self._open_live_view(page)
        except BaseException:
            await self._close_quietly(browser, account.email)
            raise

        logger.info("Live calls view loaded", account=account.email)
        return Session(account, browser, context, page)

    async def release(self, session: Session) -> None:
        """Close the session's browser. Close failures are only logged."""
        await self._close_quietly(session, session.account.email)

    async def _login(self, page: Page, account: AccountConfig) -> None:
        async with _translate_errors("Loading login page"):
            await page.goto(self.config.login_url, wait_until="networkidle", timeout=self.timeouts.login_page * 1000)
            await page.wait_for_selector(EMAIL_INPUT, timeout=self.timeouts.selector * 1000)
            await page.locator(EMAIL_INPUT).press_sequentially(account.email, delay=TYPING_DELAY_MS)
            await page.locator(PASSWORD_INPUT).press_sequentially(account.password, delay=TYPING_DELAY_MS)
            await page.wait_for_timeout(PRE_SUBMIT_PAUSE_MS)

        submit = None
        for selector in SUBMIT_SELECTORS:
            async with _translate_errors("Finding submit control"):
                submit = await page.query_selector(selector)
            if submit is not None:
                break
        if submit is None:
            raise NavigationError("Submit button not found")

        async with _translate_errors("Submitting login form"):
            async with page.expect_navigation(
                wait_until="networkidle", timeout=self.timeouts.submit_navigation * 1000
            ):
                await submit.click()
            await page.wait_for_timeout(POST_LOGIN_SETTLE_MS)

        if "login" in page.url:
            raise AuthError(f"Login failed for {account.email}: still on login page")

        logger.info("Login succeeded", account=account.email)

    async def _open_live_view(self, page: Page) -> None:
        async with _translate_errors("Opening live calls view"):
            await page.goto(self.config.live_calls_url, wait_until="networkidle", timeout=self.timeouts.live_page * 1000)
            await page.wait_for_selector(LIVE_CALLS_CONTAINER, timeout=self.timeouts.live_view * 1000)

    async def _close_quietly(self, closable, account_email: str) -> None:
        try:
            await closable.close()
        except PlaywrightError as e:
            logger.warning("Failed to close browser", account=account_email, error=str(e))
