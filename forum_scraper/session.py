"""
Owns the one long-lived, fingerprint-hardened browser context shared by every
request. The context is launched lazily on first use, behind a lock, so
concurrent first requests still produce a single browser.
"""
import asyncio
import os
from typing import Awaitable, Callable, Optional, Protocol

from playwright.async_api import async_playwright
from playwright_stealth import Stealth

from forum_scraper.config import SessionSettings
from forum_scraper.errors import SessionLaunchError
from forum_scraper.logging_utils import get_logger

logger = get_logger("session")

# Hides the automation markers left by chromedriver-style tooling.
AUTOMATION_SUPPRESSION_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
delete window.cdc_adoQpoasnfa76pfcZLmcfl_Array;
delete window.cdc_adoQpoasnfa76pfcZLmcfl_Promise;
delete window.cdc_adoQpoasnfa76pfcZLmcfl_Symbol;
"""


class PageSource(Protocol):
    """Anything that can open a fresh page for one navigation."""

    async def new_page(self): ...


class BrowserSession:
    """A persistent Playwright context together with the driver that owns it."""

    def __init__(self, playwright, context, profile_path: str):
        self.playwright = playwright
        self.context = context
        self.profile_path = profile_path

    async def new_page(self):
        return await self.context.new_page()

    def on_close(self, callback: Callable[[], None]) -> None:
        """Calls ``callback`` when the context goes away, including a browser crash."""
        self.context.on("close", lambda _context: callback())

    async def close(self) -> None:
        try:
            await self.context.close()
        finally:
            await self.playwright.stop()


async def launch_persistent_session(settings: SessionSettings) -> BrowserSession:
    profile_path = settings.profile_path()
    os.makedirs(profile_path, exist_ok=True)
    logger.info(f"Persistent profile: {profile_path}", extra={"profile_path": profile_path, "event_type": "session_profile"})

    playwright = await async_playwright().start()
    try:
        context = await playwright.chromium.launch_persistent_context(
            profile_path,
            headless=settings.headless,
            args=list(settings.args),
            viewport=dict(settings.viewport),
            user_agent=settings.user_agent,
            locale=settings.locale,
            timezone_id=settings.timezone_id,
            bypass_csp=settings.bypass_csp,
            java_script_enabled=True,
            ignore_https_errors=settings.ignore_https_errors,
        )
        if settings.stealth:
            await Stealth().apply_stealth_async(context)
        await context.add_init_script(AUTOMATION_SUPPRESSION_SCRIPT)
    except BaseException:
        await playwright.stop()
        raise
    return BrowserSession(playwright, context, profile_path)


SessionLauncher = Callable[[SessionSettings], Awaitable[PageSource]]


class SessionManager:
    """Lazily creates and then hands out the shared browser session.

    ``launcher`` performs the actual construction and can be swapped for a fake
    in tests. A failed launch leaves the manager empty so the next ``acquire``
    tries again.
    """

    def __init__(self, settings: Optional[SessionSettings] = None, launcher: SessionLauncher = launch_persistent_session):
        self.settings = settings or SessionSettings()
        self._launcher = launcher
        self._session: Optional[PageSource] = None
        self._lock = asyncio.Lock()
        self.launch_count = 0

    @property
    def is_started(self) -> bool:
        return self._session is not None

    async def acquire(self) -> PageSource:
        if self._session is not None:
            return self._session
        async with self._lock:
            if self._session is None:
                self.launch_count += 1
                logger.info("Launching persistent browser session", extra={"attempt": self.launch_count, "event_type": "session_launch_start"})
                try:
                    self._session = await self._launcher(self.settings)
                except Exception as e:
                    logger.error(f"Browser session launch failed: {e}", exc_info=True, extra={"event_type": "session_launch_error"})
                    raise SessionLaunchError(f"Failed to launch browser session: {e}") from e
                session = self._session
                if hasattr(session, "on_close"):
                    session.on_close(lambda: self._forget(session))
                logger.info("Persistent browser session ready", extra={"event_type": "session_launch_success"})
        return self._session

    def _forget(self, session: PageSource) -> None:
        if self._session is session:
            self._session = None
            logger.warning("Browser session closed unexpectedly; relaunching on next request", extra={"event_type": "session_closed_unexpectedly"})

    async def close(self) -> None:
        async with self._lock:
            session, self._session = self._session, None
        if session is not None and hasattr(session, "close"):
            logger.info("Closing persistent browser session", extra={"event_type": "session_close"})
            await session.close()
