"""
Pulls the thread title and the video, image and zip links out of rendered forum
markup. Only the post content wrappers are searched; page chrome is ignored.
"""
import logging
import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup

from forum_scraper import classifier
from forum_scraper.config import ClassificationRules, ExtractionSettings
from forum_scraper.logging_utils import ScrapeObserver, get_logger

logger = get_logger("extractor")

TEXT_PREVIEW_CHARS = 400


class ExtractionResult(NamedTuple):
    title: str
    videos: Tuple[str, ...] = ()
    images: Tuple[str, ...] = ()
    zips: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "videos": list(self.videos),
            "images": list(self.images),
            "zips": list(self.zips),
        }


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class _Buckets:
    """Ordered, de-duplicated output lists; a URL lands in one list only."""

    def __init__(self):
        self.lists: Dict[str, List[str]] = {"video": [], "image": [], "zip": []}
        self._placed: Dict[str, str] = {}

    def add(self, category: str, url: str) -> bool:
        placed = self._placed.get(url)
        if placed is not None:
            if placed != category:
                logger.debug(f"{url} already recorded as {placed}, not adding as {category}", extra={"url": url, "category": category, "placed": placed, "event_type": "extract_cross_category_duplicate"})
            return False
        self._placed[url] = category
        return classifier.add_unique(self.lists[category], url)


class ResourceExtractor:
    """Turns rendered markup into an ``ExtractionResult``.

    ``document_factory`` builds the traversable tree from markup; it defaults to
    BeautifulSoup with the stdlib parser and only needs to return an object with
    the ``select``/``select_one`` traversal API.
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        rules: Optional[ClassificationRules] = None,
        document_factory: Callable[[str], Any] = parse_html,
        observer: Optional[ScrapeObserver] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.rules = rules or ClassificationRules()
        self.document_factory = document_factory
        self.observer = observer or ScrapeObserver()

    def extract(self, html: str) -> ExtractionResult:
        document = self.document_factory(html or "")
        title = self.extract_title(document)
        buckets = _Buckets()

        regions = document.select(self.settings.content_wrapper_selector)
        self.observer.content_regions_found(len(regions))

        for index, region in enumerate(regions, start=1):
            if logger.isEnabledFor(logging.DEBUG):
                preview = re.sub(r"\s+", " ", region.get_text().strip())[:TEXT_PREVIEW_CHARS]
                logger.debug(f"Content block {index} preview: {preview}", extra={"block": index, "event_type": "extract_block_preview"})

            for href in self._links(region):
                category = classifier.classify_host(href, self.rules)
                if category in ("zip", "video"):
                    buckets.add(category, href)

            for img in region.select("img"):
                src = img.get("src") or img.get("data-src") or ""
                parent_anchor = img.find_parent("a", href=True)
                anchor_href = parent_anchor.get("href") if parent_anchor is not None else None
                image_url = classifier.resolve_image_url(src, anchor_href, self.rules)
                if image_url and buckets.add("image", image_url):
                    logger.debug(f"Captured image: {image_url} (class: {_class_attr(img)})", extra={"url": image_url, "event_type": "extract_image_captured"})

        return ExtractionResult(
            title=title,
            videos=tuple(buckets.lists["video"]),
            images=tuple(buckets.lists["image"]),
            zips=tuple(buckets.lists["zip"]),
        )

    def extract_title(self, document) -> str:
        node = document.select_one(self.settings.title_span_selector)
        title = node.get_text().strip() if node is not None else ""
        if not title:
            heading = document.select_one(self.settings.title_heading_selector)
            title = heading.get_text().strip() if heading is not None else ""
        return title or self.settings.default_title

    def _links(self, region) -> List[str]:
        links = []
        for anchor in region.select('a[href^="http"]'):
            href = (anchor.get("href") or "").strip()
            if href:
                links.append(href)
                logger.debug(f"Link: {href}", extra={"url": href, "event_type": "extract_link_found"})
        return links


def _class_attr(tag) -> str:
    value = tag.get("class")
    if isinstance(value, list):
        return " ".join(value) or "none"
    return value or "none"


def extract(html: str, settings: Optional[ExtractionSettings] = None, rules: Optional[ClassificationRules] = None) -> ExtractionResult:
    """Convenience wrapper around ``ResourceExtractor.extract``."""
    return ResourceExtractor(settings=settings, rules=rules).extract(html)
