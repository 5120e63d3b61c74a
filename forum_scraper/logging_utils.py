"""
JSON logging and the observer hooks the scrape pipeline reports through.
"""
import json
import logging
import os
from typing import Optional

# --- Logging Setup ---
class JsonFormatter(logging.Formatter):
    CORE_LOG_KEYS = {
        'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
        'funcName', 'levelname', 'levelno', 'lineno', 'message', 'module',
        'msecs', 'msg', 'name', 'pathname', 'process', 'processName',
        'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName',
        'timestamp', 'level', 'function', 'line',
    }

    def format(self, record):
        log_entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }
        log_entry['event'] = getattr(record, 'event_type', record.msg.split(' ')[0] if isinstance(record.msg, str) else 'generic_event')
        for key, value in record.__dict__.items():
            if key not in self.CORE_LOG_KEYS and key not in log_entry:
                log_entry[key] = value
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


ROOT_LOGGER_NAME = "forum_scraper"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Returns a logger under the ``forum_scraper`` namespace.

    The JSON handler is attached once, to the namespace root, so module loggers
    share it through propagation.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(level or os.getenv("LOG_LEVEL", "INFO").upper())
    elif level:
        root.setLevel(level.upper())
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


logger = get_logger("observer")


class ScrapeObserver:
    """Receives pipeline events at fixed points of a scrape.

    The default implementation writes structured log records. Subclass it (or
    pass any object with the same methods) to record events elsewhere.
    """

    def request_started(self, url: str) -> None:
        logger.info(f"Scraping: {url}", extra={"url": url, "event_type": "scrape_request_start"})

    def phase_changed(self, url: str, state) -> None:
        state_name = getattr(state, "value", str(state))
        logger.info(f"Navigation phase {state_name} for {url}", extra={"url": url, "state": state_name, "event_type": "navigation_phase"})

    def content_regions_found(self, count: int) -> None:
        logger.info(f"Found {count} content wrapper blocks", extra={"count": count, "event_type": "content_regions_found"})

    def extraction_summary(self, url: str, result) -> None:
        logger.info(
            f"Extracted '{result.title}' from {url}",
            extra={
                "url": url,
                "title": result.title,
                "videos": len(result.videos),
                "images": len(result.images),
                "zips": len(result.zips),
                "event_type": "extraction_summary",
            },
        )

    def request_failed(self, url: str, error: BaseException) -> None:
        logger.error(f"Scrape failed for {url}: {error}", extra={"url": url, "error": str(error), "error_type": type(error).__name__, "event_type": "scrape_request_failed"}, exc_info=error)
