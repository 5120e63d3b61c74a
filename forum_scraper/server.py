"""
HTTP front end: ``POST /api/scrape`` and ``GET /health`` behind a per-client
rate limit.
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from forum_scraper.config import Settings, load_settings
from forum_scraper.errors import ValidationError
from forum_scraper.logging_utils import get_logger
from forum_scraper.pipeline import ScrapeService, validate_target_url

logger = get_logger("server")

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait."


def _rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}", extra={"client": get_remote_address(request), "limit": str(exc.detail), "event_type": "rate_limit_exceeded"})
    return JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})


def create_app(settings: Optional[Settings] = None, service: Optional[ScrapeService] = None) -> FastAPI:
    settings = settings or load_settings()
    service = service or ScrapeService.from_settings(settings)
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app_: FastAPI):
        yield
        await service.close()

    app = FastAPI(title="Forum scrape API", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=[settings.server.rate_limit])
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded)
    app.add_middleware(SlowAPIMiddleware)

    @app.post("/api/scrape")
    async def scrape(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        url = body.get("url") if isinstance(body, dict) else None

        try:
            validate_target_url(url, settings.server.allowed_prefixes)
        except ValidationError as e:
            logger.info(f"Rejected scrape request: {e}", extra={"url": url if isinstance(url, str) else None, "status": e.status_code, "event_type": "scrape_request_rejected"})
            return JSONResponse(status_code=e.status_code, content={"error": str(e)})

        try:
            result = await service.scrape(url)
        except Exception as e:
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to scrape page", "details": str(e) or "Internal error"},
            )
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "ok", "uptime": time.monotonic() - started_at}

    return app


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    logger.info(
        f"Server running on http://localhost:{settings.server.port}",
        extra={"host": settings.server.host, "port": settings.server.port, "event_type": "server_start"},
    )
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_level="info")


if __name__ == "__main__":
    main()
