"""robots.txt compliance checking.

A deliberately small subset of the robots exclusion protocol:

* ``User-agent``, ``Allow`` and ``Disallow`` lines only (no crawl-delay,
  sitemap or wildcard matching).
* Rules are plain path prefixes.  When both an allow and a disallow prefix
  match, the longer one wins; ties favour disallow.
* Only the ``*`` group is ever evaluated, even though every group is parsed.
* An empty ``Disallow:`` value is ignored rather than read as "allow all".

Rule sets are fetched once per origin and cached for the lifetime of the
:class:`RobotsChecker`.  Failing to fetch robots.txt never blocks a URL.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict
from urllib.parse import urlsplit

import httpx

from newsgrab.exceptions import ParseError
from newsgrab.scraper.models import AgentRules, RobotsRuleSet

logger = logging.getLogger(__name__)

#: The only user-agent group consulted when evaluating a URL.
EVALUATED_AGENT = "*"

DEFAULT_ROBOTS_TIMEOUT = 5.0


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_robots(text: str) -> RobotsRuleSet:
    """Parse robots.txt *text* into a :class:`RobotsRuleSet`.

    Directive names are matched case-insensitively and agent tokens are
    case-folded.  Path values keep their case.  Inline ``#`` comments are
    dropped.
    """
    rules = RobotsRuleSet()
    current = EVALUATED_AGENT

    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            current = value.casefold()
            rules.agents.setdefault(current, AgentRules())
        elif key in ("allow", "disallow"):
            if not value:
                continue
            group = rules.agents.setdefault(current, AgentRules())
            target = group.allow if key == "allow" else group.disallow
            target.append(value)

    return rules


def _request_path(url: str) -> str:
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return path


def is_path_allowed(rules: AgentRules, path: str) -> bool:
    """Apply longest-match prefix resolution to *path*."""
    for disallow in rules.disallow:
        if not path.startswith(disallow):
            continue
        overridden = any(
            path.startswith(allow) and len(allow) > len(disallow)
            for allow in rules.allow
        )
        if not overridden:
            return False
    return True


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*.

    Raises:
        ParseError: If *url* has no scheme or host.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise ParseError(f"cannot derive origin from {url!r}: {exc}") from None
    if not parts.scheme or not host:
        raise ParseError(f"cannot derive origin from {url!r}")
    netloc = host if port is None else f"{host}:{port}"
    return f"{parts.scheme.lower()}://{netloc}"


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------

class RobotsChecker:
    """Per-origin robots.txt cache and allow/deny oracle.

    Args:
        user_agent: Sent as the ``User-Agent`` header when fetching robots.txt.
        timeout: Seconds to wait for robots.txt.
    """

    def __init__(
        self,
        user_agent: str | None = None,
        timeout: float = DEFAULT_ROBOTS_TIMEOUT,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._cache: Dict[str, RobotsRuleSet] = {}
        self._lock = threading.Lock()
        self._origin_locks: Dict[str, threading.Lock] = {}

    def __contains__(self, origin: str) -> bool:
        return origin in self._cache

    def _fetch(self, origin: str) -> RobotsRuleSet:
        robots_url = f"{origin}/robots.txt"
        headers = {"User-Agent": self.user_agent} if self.user_agent else {}
        try:
            # HTTP_PROXY and the like configure article fetches only.
            response = httpx.get(
                robots_url,
                headers=headers,
                timeout=self.timeout,
                follow_redirects=True,
                trust_env=False,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.info("Could not fetch robots.txt for %s: %s", origin, exc)
            return RobotsRuleSet()
        return parse_robots(response.text)

    def rules_for_origin(self, origin: str) -> RobotsRuleSet:
        """Return the cached rule set for *origin*, fetching it on first use.

        Each origin has its own lock, so a slow robots.txt only holds up
        lookups for that origin.
        """
        with self._lock:
            rules = self._cache.get(origin)
            if rules is not None:
                return rules
            origin_lock = self._origin_locks.setdefault(origin, threading.Lock())

        with origin_lock:
            with self._lock:
                rules = self._cache.get(origin)
            if rules is None:
                rules = self._fetch(origin)
                with self._lock:
                    self._cache[origin] = rules
            return rules

    def is_allowed(self, url: str, enabled: bool = True) -> bool:
        """Return ``True`` unless robots.txt for *url*'s origin disallows it.

        With ``enabled=False`` this is a no-op that always allows.  Errors of
        any kind while evaluating are logged and treated as allowed.
        """
        if not enabled:
            return True
        try:
            rules = self.rules_for_origin(origin_of(url))
            return is_path_allowed(rules.rules_for(EVALUATED_AGENT), _request_path(url))
        except Exception as exc:  # noqa: BLE001
            logger.error("Error checking robots.txt for %s: %s", url, exc)
            return True
