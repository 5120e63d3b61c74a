"""
Drives one page from navigation to a fully rendered, lazily-loaded state.

The controller moves through a fixed sequence of states:

    NAVIGATING -> CHALLENGE_CHECK -> (CHALLENGE_WAIT) -> SETTLING -> SCROLLING -> CAPTURED

CHALLENGE_WAIT only happens when the page title looks like an anti-bot
interstitial. There are no retries; a failure in any state ends the request.
"""
import asyncio
import random
from contextlib import asynccontextmanager
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from forum_scraper.config import NavigationSettings
from forum_scraper.errors import NavigationError
from forum_scraper.logging_utils import ScrapeObserver, get_logger
from forum_scraper.session import PageSource

logger = get_logger("navigation")

SCROLL_TO_BOTTOM_SCRIPT = "() => window.scrollTo(0, document.body.scrollHeight)"


class NavigationState(str, Enum):
    NAVIGATING = "navigating"
    CHALLENGE_CHECK = "challenge_check"
    CHALLENGE_WAIT = "challenge_wait"
    SETTLING = "settling"
    SCROLLING = "scrolling"
    CAPTURED = "captured"


def is_challenge_title(title: str, phrases: Iterable[str]) -> bool:
    return bool(title) and any(phrase in title for phrase in phrases)


@asynccontextmanager
async def open_page(session: PageSource, url: str = ""):
    """Opens a page from ``session`` and always closes it on exit."""
    try:
        page = await session.new_page()
    except PlaywrightError as e:
        raise NavigationError(f"Could not open a new page: {e}") from e
    try:
        yield page
    finally:
        try:
            await page.close()
        except PlaywrightError as e:
            logger.warning(f"Error closing page for {url}: {e}", extra={"url": url, "event_type": "page_close_error"})


class NavigationController:
    """Renders a URL to settled HTML.

    ``sleep`` and ``uniform`` are injectable so tests can run the state machine
    without real delays.
    """

    def __init__(
        self,
        settings: Optional[NavigationSettings] = None,
        observer: Optional[ScrapeObserver] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        self.settings = settings or NavigationSettings()
        self.observer = observer or ScrapeObserver()
        self._sleep = sleep
        self._uniform = uniform

    def _enter(self, url: str, state: NavigationState) -> None:
        self.observer.phase_changed(url, state)

    async def _random_delay(self, delay_range) -> float:
        low, high = delay_range
        delay = self._uniform(low, high)
        await self._sleep(delay)
        return delay

    async def render(self, session: PageSource, url: str) -> str:
        async with open_page(session, url) as page:
            try:
                return await self._drive(page, url)
            except PlaywrightTimeoutError as e:
                logger.error(f"Navigation timed out for {url}: {e}", extra={"url": url, "event_type": "navigation_timeout"})
                raise NavigationError(f"Navigation timed out: {e}") from e
            except PlaywrightError as e:
                logger.error(f"Navigation error for {url}: {e}", extra={"url": url, "event_type": "navigation_error"})
                raise NavigationError(str(e)) from e

    async def _drive(self, page, url: str) -> str:
        self._enter(url, NavigationState.NAVIGATING)
        await page.goto(url, wait_until=self.settings.wait_until, timeout=self.settings.timeout_ms)

        self._enter(url, NavigationState.CHALLENGE_CHECK)
        if await self._challenge_detected(page, url):
            self._enter(url, NavigationState.CHALLENGE_WAIT)
            delay = await self._random_delay(self.settings.challenge_delay)
            logger.info(f"Challenge wait finished after {delay:.1f}s", extra={"url": url, "delay_s": delay, "event_type": "challenge_wait_done"})

        self._enter(url, NavigationState.SETTLING)
        await self._random_delay(self.settings.settle_delay)

        self._enter(url, NavigationState.SCROLLING)
        await page.evaluate(SCROLL_TO_BOTTOM_SCRIPT)
        await self._sleep(self.settings.post_scroll_delay)

        html = await page.content()
        self._enter(url, NavigationState.CAPTURED)
        logger.info(f"Captured {len(html)} chars from {url}", extra={"url": url, "content_length": len(html), "event_type": "navigation_captured"})
        return html

    async def _challenge_detected(self, page, url: str) -> bool:
        try:
            title = await page.title()
        except PlaywrightError as e:
            logger.warning(f"Could not read page title for {url}: {e}", extra={"url": url, "event_type": "challenge_title_error"})
            return False
        if is_challenge_title(title, self.settings.challenge_phrases):
            logger.info("Cloudflare challenge detected, waiting", extra={"url": url, "page_title": title, "event_type": "challenge_detected"})
            return True
        return False
