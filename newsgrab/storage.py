"""Writing extracted articles to disk."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from slugify import slugify

from newsgrab.exceptions import PersistenceError

if TYPE_CHECKING:
    from newsgrab.scraper.models import ExtractedArticle

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 150


def article_filename(title: str) -> str:
    """Return a filesystem-safe ``.txt`` filename for *title*.

    Non-ASCII characters are transliterated.  A title with nothing usable
    left falls back to the current UTC timestamp.
    """
    stem = slugify(title, max_length=MAX_FILENAME_LENGTH, lowercase=False)
    if not stem:
        stem = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
    return f"{stem}.txt"


def save_article(article: ExtractedArticle, output_dir: Path) -> str:
    """Write *article* into *output_dir* and return the filename used.

    An existing file with the same name is overwritten.

    Raises:
        PersistenceError: If the directory or file cannot be written.
    """
    filename = article_filename(article.title)
    path = output_dir / filename
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(article.to_text(), encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"could not write {path}: {exc}") from exc
    logger.info("Saved: %s", filename)
    return filename
