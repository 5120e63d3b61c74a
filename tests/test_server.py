import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import make_fake_page, make_fake_session
from forum_scraper.config import ServerSettings, Settings
from forum_scraper.errors import NavigationError, SessionLaunchError
from forum_scraper.extractor import ExtractionResult, ResourceExtractor
from forum_scraper.pipeline import ScrapeService
from forum_scraper.server import create_app
from forum_scraper.session import SessionManager

RESULT = ExtractionResult(
    title="Thread title",
    videos=("https://strmup.cc/v/1",),
    images=("https://img.example.com/3.gif",),
    zips=("https://frdl.io/f/2",),
)


@pytest.fixture
def service():
    fake = MagicMock()
    fake.scrape = AsyncMock(return_value=RESULT)
    fake.close = AsyncMock()
    return fake


@pytest.fixture
def client(service):
    with TestClient(create_app(Settings(), service)) as test_client:
        yield test_client


def test_scrape_success(client, service):
    response = client.post("/api/scrape", json={"url": "https://dropmms.co/topic/1"})

    assert response.status_code == 200
    assert response.json() == {
        "title": "Thread title",
        "videos": ["https://strmup.cc/v/1"],
        "images": ["https://img.example.com/3.gif"],
        "zips": ["https://frdl.io/f/2"],
    }
    service.scrape.assert_awaited_once_with("https://dropmms.co/topic/1")


@pytest.mark.parametrize("body", [{}, {"url": ""}, {"url": 123}, {"url": None}, {"url": ["https://dropmms.co"]}, ["https://dropmms.co"]])
def test_missing_or_invalid_url_is_400(client, service, body):
    response = client.post("/api/scrape", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": 'Missing or invalid "url"'}
    service.scrape.assert_not_awaited()


def test_non_json_body_is_400(client, service):
    response = client.post("/api/scrape", content=b"url=https://dropmms.co/x", headers={"Content-Type": "application/x-www-form-urlencoded"})
    assert response.status_code == 400
    service.scrape.assert_not_awaited()


@pytest.mark.parametrize("url", ["https://example.com/topic/1", "https://evil.dropmms.co.example.com", "javascript:alert(1)"])
def test_disallowed_origin_is_403(client, service, url):
    response = client.post("/api/scrape", json={"url": url})

    assert response.status_code == 403
    assert response.json() == {"error": "Only dropmms.co / videmms24.com URLs allowed"}
    service.scrape.assert_not_awaited()


@pytest.mark.parametrize("error", [NavigationError("Navigation timed out: Timeout 60000ms exceeded."), SessionLaunchError("Failed to launch browser session: boom")])
def test_pipeline_failure_is_500(client, service, error):
    service.scrape.side_effect = error

    response = client.post("/api/scrape", json={"url": "https://videmms24.com/topic/9"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to scrape page", "details": str(error)}


def test_failure_does_not_poison_next_request(client, service):
    service.scrape.side_effect = [SessionLaunchError("first launch failed"), RESULT]

    assert client.post("/api/scrape", json={"url": "https://dropmms.co/a"}).status_code == 500
    assert client.post("/api/scrape", json={"url": "https://dropmms.co/a"}).status_code == 200


def test_pipeline_failure_is_logged_once(caplog):
    navigator = MagicMock()
    navigator.render = AsyncMock(side_effect=NavigationError("Navigation timed out"))
    service = ScrapeService(SessionManager(launcher=AsyncMock(return_value=make_fake_session(make_fake_page()))), navigator, ResourceExtractor())

    with caplog.at_level(logging.INFO, logger="forum_scraper"):
        with TestClient(create_app(Settings(), service)) as client:
            response = client.post("/api/scrape", json={"url": "https://dropmms.co/topic/1"})

    assert response.status_code == 500
    errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert [record.event_type for record in errors] == ["scrape_request_failed"]
    assert errors[0].exc_info is not None


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert isinstance(body["uptime"], float)
    assert body["uptime"] >= 0


def test_rate_limit_returns_429(service):
    settings = Settings(server=ServerSettings(rate_limit="2/minute"))
    with TestClient(create_app(settings, service)) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 200
        response = client.get("/health")

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please wait."}


def test_shutdown_closes_service(service):
    with TestClient(create_app(Settings(), service)):
        pass
    service.close.assert_awaited_once()
