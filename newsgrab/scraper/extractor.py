"""Content extraction: turns fetched HTML into an :class:`ExtractedArticle`."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from newsgrab.scraper.models import ExtractedArticle

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Heuristic tables
# ---------------------------------------------------------------------------

#: Candidate article containers as ``(css selector, rank)``.  The lowest
#: ranked selector that matches anything wins; new site heuristics are added
#: here rather than as branches in the code.
CONTENT_SELECTORS: Tuple[Tuple[str, int], ...] = (
    ("article", 0),
    (".article-content", 10),
    (".article-body", 20),
    (".story-body", 30),
    (".entry-content", 40),
    (".post-content", 50),
    (".content", 60),
    ("#content", 70),
    ("main", 80),
)

#: Elements stripped from the chosen container before paragraphs are read.
NOISE_SELECTORS: Tuple[str, ...] = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    ".ad",
    ".advertisement",
    ".social-share",
    ".related-articles",
)

_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def find_container(soup: BeautifulSoup) -> Optional[Tag]:
    """Return the first element of the highest-priority matching selector."""
    for selector, _rank in sorted(CONTENT_SELECTORS, key=lambda item: item[1]):
        element = soup.select_one(selector)
        if element is not None:
            return element
    return None


def _strip_noise(container: Tag) -> None:
    for element in container.select(", ".join(NOISE_SELECTORS)):
        # A match nested in an earlier match is already gone.
        if not element.decomposed:
            element.decompose()


def _join_paragraphs(paragraphs: List[Tag]) -> str:
    texts = [p.get_text().strip() for p in paragraphs]
    return "\n\n".join(text for text in texts if text)


def _extract_title(soup: BeautifulSoup, url: str) -> str:
    """Return the first ``<h1>``, else ``<title>``, else the URL's host name."""
    h1 = soup.find("h1")
    if h1 is not None:
        text = h1.get_text().strip()
        if text:
            return text
    if soup.title is not None:
        text = soup.title.get_text().strip()
        if text:
            return text
    return urlsplit(url).hostname or ""


def _extract_body(soup: BeautifulSoup) -> str:
    body = soup.body or soup

    container = find_container(soup)
    if container is not None:
        _strip_noise(container)
        text = _join_paragraphs(container.find_all("p"))
    else:
        logger.debug("No content container matched; using all body paragraphs")
        text = _join_paragraphs(body.find_all("p"))

    if not text.strip():
        logger.debug("No paragraph text found; using whole body text")
        text = _WHITESPACE_RE.sub(" ", body.get_text()).strip()

    return text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_article(html: str, source_url: str) -> ExtractedArticle:
    """Extract the title and readable body text of *html*.

    The body comes from the first tier that yields text:

    1. paragraphs inside the best content container (see
       :data:`CONTENT_SELECTORS`), with noise elements removed;
    2. when no container matched, every paragraph in ``<body>``;
    3. the whole body text with whitespace collapsed.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = _extract_title(soup, source_url)
    body = _extract_body(soup)
    return ExtractedArticle(source_url=source_url, title=title, body=body)
