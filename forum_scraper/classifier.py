"""
Sorts discovered links into videos, zips and images by hostname substring or
file extension.
"""
from typing import List, Literal, Optional
from urllib.parse import urlparse

from forum_scraper.config import ClassificationRules
from forum_scraper.logging_utils import get_logger

logger = get_logger("classifier")

LinkCategory = Literal["video", "zip", "image", "none"]

# Number of trailing path characters inspected for an image extension.
EXTENSION_WINDOW = 5

DEFAULT_RULES = ClassificationRules()


def hostname_of(url: str) -> Optional[str]:
    """Lower-cased hostname, or None when the URL cannot be parsed."""
    try:
        hostname = urlparse(url.strip()).hostname
    except ValueError as e:
        logger.debug(f"Skipping malformed URL {url!r}: {e}", extra={"url": url, "event_type": "classify_skip_malformed"})
        return None
    if not hostname:
        logger.debug(f"Skipping URL without hostname {url!r}", extra={"url": url, "event_type": "classify_skip_no_host"})
        return None
    return hostname.lower()


def has_image_extension(url: str, rules: ClassificationRules = DEFAULT_RULES) -> bool:
    """True if the path (query string dropped) ends in a known image extension."""
    window = url.lower().split("?")[0][-EXTENSION_WINDOW:]
    return any(window.endswith(ext) for ext in rules.image_extensions)


def classify_host(url: str, rules: ClassificationRules = DEFAULT_RULES) -> LinkCategory:
    hostname = hostname_of(url)
    if hostname is None:
        return "none"
    # File hosts take priority over video hosts.
    if any(host in hostname for host in rules.zip_hosts):
        return "zip"
    if any(host in hostname for host in rules.video_hosts):
        return "video"
    return "none"


def classify(url: str, rules: ClassificationRules = DEFAULT_RULES) -> LinkCategory:
    """Assigns ``url`` to exactly one of video, zip, image or none.

    Hostname rules are checked first (zip, then video). A URL that matches no
    host but carries an image extension is an image. Malformed URLs are
    ``none``.
    """
    category = classify_host(url, rules)
    if category != "none":
        return category
    if hostname_of(url) is not None and has_image_extension(url, rules):
        return "image"
    return "none"


def resolve_image_url(src: str, anchor_href: Optional[str], rules: ClassificationRules = DEFAULT_RULES) -> Optional[str]:
    """Picks the URL to record for an image element.

    Returns None when ``src`` is not an absolute http(s) image. If the image is
    wrapped in an anchor whose href is itself an absolute image URL, the anchor
    target is the full resolution copy and is returned instead of ``src``.
    """
    src = (src or "").strip()
    if not src.startswith("http") or not has_image_extension(src, rules):
        return None
    href = (anchor_href or "").strip()
    if href.startswith("http") and has_image_extension(href, rules):
        return href
    return src


def add_unique(items: List[str], url: str) -> bool:
    """Appends ``url`` unless already present. Returns True if it was added."""
    if url in items:
        return False
    items.append(url)
    return True
