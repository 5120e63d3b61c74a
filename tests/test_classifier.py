import pytest
from pydantic import ValidationError

from forum_scraper.classifier import (
    add_unique,
    classify,
    classify_host,
    has_image_extension,
    hostname_of,
    resolve_image_url,
)
from forum_scraper.config import ClassificationRules


@pytest.mark.parametrize("url, expected", [
    ("https://upfiles.com/f/abc123", "zip"),
    ("https://www.file-upload.org/xyz", "zip"),
    ("https://frdl.io/d/1", "zip"),
    ("https://streamtape.com/v/abc", "video"),
    ("https://VIDOZA.NET/embed-1.html", "video"),
    ("https://cdn.example.com/pics/cover.JPG", "image"),
    ("https://example.com/thread/42", "none"),
])
def test_classify_by_host_and_extension(url, expected):
    assert classify(url) == expected


def test_zip_host_wins_over_video_host():
    rules = ClassificationRules(zip_hosts=("shared.cc",), video_hosts=("shared.cc",))
    assert classify("https://shared.cc/file/1", rules) == "zip"


def test_host_match_beats_image_extension():
    assert classify("https://upfiles.com/preview.png") == "zip"


def test_malformed_url_is_skipped_not_raised():
    assert hostname_of("http://[not-an-ipv6/path") is None
    assert classify("http://[not-an-ipv6/path") == "none"
    assert classify("not a url at all") == "none"


def test_classification_is_idempotent():
    url = "https://luluvid.com/e/xyz"
    assert classify(url) == classify(url) == "video"


def test_classify_host_ignores_image_extensions():
    assert classify_host("https://example.com/a.png") == "none"


def test_image_extension_ignores_query_string():
    assert has_image_extension("https://x.com/a.webp?width=300")
    assert not has_image_extension("https://x.com/a.php?img=b.png")


def test_image_extension_window_is_last_five_characters():
    assert has_image_extension("https://x.com/photo.jpeg")
    assert not has_image_extension("https://x.com/photo.jpeg.html")


def test_resolve_image_prefers_anchor_full_resolution():
    assert resolve_image_url("http://x.com/a.png", "http://x.com/a-full.png") == "http://x.com/a-full.png"


def test_resolve_image_keeps_src_when_anchor_is_not_an_image():
    assert resolve_image_url("http://x.com/a.png", "http://x.com/thread/2") == "http://x.com/a.png"


def test_resolve_image_ignores_relative_anchor_href():
    assert resolve_image_url("https://x.com/a.png", "/full.png") == "https://x.com/a.png"
    assert resolve_image_url("https://x.com/a.png", "  ") == "https://x.com/a.png"


def test_resolve_image_discards_relative_or_non_image_src():
    assert resolve_image_url("/uploads/a.png", None) is None
    assert resolve_image_url("data:image/png;base64,AAAA", None) is None
    assert resolve_image_url("http://x.com/pixel", None) is None


def test_add_unique_preserves_first_seen_order():
    items = []
    assert add_unique(items, "a")
    assert add_unique(items, "b")
    assert not add_unique(items, "a")
    assert items == ["a", "b"]


def test_rules_are_read_only_and_normalised():
    rules = ClassificationRules(video_hosts=[" StreamTape.com ", ""])
    assert rules.video_hosts == ("streamtape.com",)
    with pytest.raises(ValidationError):
        rules.video_hosts = ("other",)
