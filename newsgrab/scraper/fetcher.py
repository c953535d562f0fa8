"""HTTP fetcher for article pages.

Uses ``httpx`` with browser-like headers.  The ``Referer`` is set to a search
engine because many news sites serve a reduced page or a block screen to
referer-less traffic; sites' terms of service may forbid this.

Failures are returned as :class:`FetchResult` errors rather than raised, and
nothing is retried.
"""

from __future__ import annotations

import logging
import random
import time

import httpx

from newsgrab.scraper.models import NO_PROXY, FetchResult, ProxyDescriptor
from newsgrab.scraper.proxy import client_options

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/129.0.0.0 Safari/537.36"
)

_USER_AGENT_POOL = [
    DEFAULT_USER_AGENT,
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/128.0.0.0 Safari/537.36 Edg/128.0.0.0"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.6 Safari/605.1.15"
    ),
    (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:131.0) Gecko/20100101 Firefox/131.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:130.0) Gecko/20100101 Firefox/130.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:130.0) Gecko/20100101 Firefox/130.0",
]


def pick_user_agent(random_enabled: bool = False) -> str:
    """Return the fixed desktop UA, or a random one from the built-in pool."""
    if random_enabled:
        return random.choice(_USER_AGENT_POOL)
    return DEFAULT_USER_AGENT


def build_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://www.google.com/",
    }


def fetch_url(
    url: str,
    proxy: ProxyDescriptor = NO_PROXY,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchResult:
    """Fetch *url* through *proxy* and return a :class:`FetchResult`.

    *timeout* bounds the whole request, body included: the body is streamed
    and the fetch gives up once the deadline passes, so a server trickling
    bytes cannot hold the batch.

    The result carries the decoded body on a 2xx response.  Otherwise
    ``error`` is ``"timeout"``, ``"HTTP <status>"`` or
    ``"request error: <message>"``.
    """
    deadline = time.monotonic() + timeout
    try:
        with httpx.Client(
            headers=build_headers(user_agent),
            timeout=timeout,
            follow_redirects=True,
            trust_env=False,
            **client_options(proxy),
        ) as client:
            with client.stream("GET", url) as response:
                if not response.is_success:
                    logger.info("HTTP %d for %s", response.status_code, url)
                    return FetchResult(
                        url=url,
                        error=f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                parts = []
                for text in response.iter_text():
                    if time.monotonic() > deadline:
                        raise httpx.ReadTimeout("response exceeded deadline")
                    parts.append(text)
                if time.monotonic() > deadline:
                    raise httpx.ReadTimeout("response exceeded deadline")
    except httpx.TimeoutException:
        logger.warning("Timeout fetching %s", url)
        return FetchResult(url=url, error="timeout")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        return FetchResult(url=url, error=f"request error: {exc}")

    return FetchResult(url=url, html="".join(parts), status_code=response.status_code)
