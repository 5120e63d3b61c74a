"""Exception types raised by the scrape pipeline."""


class ScrapeError(Exception):
    """Base class for scraper failures."""
    status_code = 500


class ValidationError(ScrapeError):
    """The request did not carry a usable ``url``."""
    status_code = 400


class DisallowedOriginError(ValidationError):
    """The ``url`` does not start with an allow-listed origin."""
    status_code = 403


class SessionLaunchError(ScrapeError):
    """The persistent browser session could not be created."""


class NavigationError(ScrapeError):
    """Navigation, settling or capture of a page failed."""
