"""Data models for the scraper pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List

from newsgrab.exceptions import NetworkError


class ProxyKind(str, enum.Enum):
    """How the outbound identity for a request was chosen."""

    NONE = "none"
    STATIC = "static"
    POOLED = "pooled"
    MANAGED = "managed"


@dataclass(frozen=True)
class ProxyDescriptor:
    """Resolved proxy configuration for a single request attempt.

    ``uri`` is ``None`` only for :attr:`ProxyKind.NONE`.  ``pool_index`` is
    the position in the proxy pool the URI was taken from (pooled only).
    """

    kind: ProxyKind = ProxyKind.NONE
    uri: str | None = None
    pool_index: int | None = None

    @property
    def is_direct(self) -> bool:
        return self.uri is None

    @property
    def scheme(self) -> str:
        if self.uri is None:
            return ""
        return self.uri.split("://", 1)[0].lower()

    @property
    def is_socks(self) -> bool:
        return self.scheme.startswith("socks")


NO_PROXY = ProxyDescriptor()


@dataclass
class AgentRules:
    """Allow/disallow path prefixes for one robots.txt user-agent group."""

    allow: List[str] = field(default_factory=list)
    disallow: List[str] = field(default_factory=list)


@dataclass
class RobotsRuleSet:
    """Parsed robots.txt for one origin, keyed by case-folded agent token."""

    agents: Dict[str, AgentRules] = field(default_factory=dict)

    def rules_for(self, agent: str) -> AgentRules:
        """Return the rules for *agent*, or an empty (allow-all) group."""
        return self.agents.get(agent, AgentRules())


@dataclass
class FetchResult:
    """Outcome of a single HTTP fetch attempt.

    Exactly one of ``html`` and ``error`` is set.
    """

    url: str
    html: str | None = None
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Raise :class:`NetworkError` if the fetch failed."""
        if self.error is not None:
            raise NetworkError(self.url, self.error, self.status_code)


@dataclass(frozen=True)
class ExtractedArticle:
    """Readable article content derived from a fetched page."""

    source_url: str
    title: str
    body: str

    def to_text(self) -> str:
        """Render the article the way it is written to disk."""
        return f"URL: {self.source_url}\nTitle: {self.title}\n\n{self.body}"


@dataclass(frozen=True)
class FailedUrl:
    url: str
    error: str


@dataclass
class BatchOutcome:
    """Successes and failures of a batch run, in processing order."""

    successful: List[str] = field(default_factory=list)
    failures: List[FailedUrl] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.successful) + len(self.failures)

    def add_success(self, filename: str) -> None:
        self.successful.append(filename)

    def add_failure(self, url: str, error: str) -> None:
        self.failures.append(FailedUrl(url=url, error=error))
