"""Exception hierarchy for newsgrab.

:class:`ConfigurationError` is raised by proxy selection and degraded to a
direct connection.  :class:`PolicyDenied`, :class:`NetworkError` and
:class:`PersistenceError` are raised while processing one URL and turned into
that URL's failure record by the pipeline.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for every error raised by newsgrab."""


class ConfigurationError(ScraperError):
    """Invalid or incomplete configuration (bad proxy credentials, empty pool)."""


class PolicyDenied(ScraperError):
    """The target URL is disallowed by the site's robots.txt."""

    message = "blocked by robots.txt"

    def __init__(self, url: str) -> None:
        super().__init__(self.message)
        self.url = url


class NetworkError(ScraperError):
    """Timeout, connection failure or non-2xx response."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ParseError(ScraperError):
    """A URL could not be split into an origin for the robots.txt lookup."""


class PersistenceError(ScraperError):
    """Writing an extracted article to disk failed."""
