"""
Request-level glue: validate the target URL, then session -> render -> extract.
"""
from typing import Any, Iterable, Optional

from forum_scraper.config import Settings
from forum_scraper.errors import DisallowedOriginError, ValidationError
from forum_scraper.extractor import ExtractionResult, ResourceExtractor
from forum_scraper.logging_utils import ScrapeObserver
from forum_scraper.navigation import NavigationController
from forum_scraper.session import SessionManager


def allowed_hosts_label(allowed_prefixes: Iterable[str]) -> str:
    hosts = []
    for prefix in allowed_prefixes:
        host = prefix.split("://", 1)[-1]
        if host not in hosts:
            hosts.append(host)
    return " / ".join(hosts)


def validate_target_url(url: Any, allowed_prefixes: Iterable[str]) -> str:
    """Returns ``url`` if it is a non-empty string under an allowed prefix.

    Raises ValidationError for a missing or non-string value and
    DisallowedOriginError for anything outside the allow-list.
    """
    if not url or not isinstance(url, str):
        raise ValidationError('Missing or invalid "url"')
    prefixes = list(allowed_prefixes)
    if not any(url.startswith(prefix) for prefix in prefixes):
        raise DisallowedOriginError(f"Only {allowed_hosts_label(prefixes)} URLs allowed")
    return url


class ScrapeService:
    def __init__(
        self,
        session_manager: SessionManager,
        navigator: NavigationController,
        extractor: ResourceExtractor,
        observer: Optional[ScrapeObserver] = None,
    ):
        self.session_manager = session_manager
        self.navigator = navigator
        self.extractor = extractor
        self.observer = observer or ScrapeObserver()

    @classmethod
    def from_settings(cls, settings: Settings, observer: Optional[ScrapeObserver] = None) -> "ScrapeService":
        observer = observer or ScrapeObserver()
        return cls(
            session_manager=SessionManager(settings.session),
            navigator=NavigationController(settings.navigation, observer=observer),
            extractor=ResourceExtractor(settings.extraction, settings.classification, observer=observer),
            observer=observer,
        )

    async def scrape(self, url: str) -> ExtractionResult:
        self.observer.request_started(url)
        try:
            session = await self.session_manager.acquire()
            html = await self.navigator.render(session, url)
            result = self.extractor.extract(html)
        except Exception as e:
            self.observer.request_failed(url, e)
            raise
        self.observer.extraction_summary(url, result)
        return result

    async def close(self) -> None:
        await self.session_manager.close()
