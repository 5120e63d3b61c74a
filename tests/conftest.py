import sys
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add the project root directory to sys.path
# This ensures that modules like 'forum_scraper' and 'cli' can be imported directly
# when tests are run from any subdirectory or by various test runners.
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from forum_scraper.logging_utils import ScrapeObserver


class RecordingObserver(ScrapeObserver):
    """Keeps every pipeline event in order instead of logging it."""

    def __init__(self):
        self.events = []

    def request_started(self, url):
        self.events.append(("request_started", url))

    def phase_changed(self, url, state):
        self.events.append(("phase", state))

    def content_regions_found(self, count):
        self.events.append(("regions", count))

    def extraction_summary(self, url, result):
        self.events.append(("summary", result))

    def request_failed(self, url, error):
        self.events.append(("failed", error))

    @property
    def phases(self):
        return [value for kind, value in self.events if kind == "phase"]


def make_fake_page(title="Forum thread", html="<html><body></body></html>"):
    page = AsyncMock()
    page.title = AsyncMock(return_value=title)
    page.content = AsyncMock(return_value=html)
    page.goto = AsyncMock(return_value=None)
    page.evaluate = AsyncMock(return_value=None)
    page.close = AsyncMock(return_value=None)
    return page


def make_fake_session(page):
    session = AsyncMock()
    session.new_page = AsyncMock(return_value=page)
    session.on_close = MagicMock()
    return session


async def no_sleep(seconds):
    return None


@pytest.fixture
def recorder():
    return RecordingObserver()
