"""Collecting the URL list from arguments, a file or interactive input."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


def is_candidate_url(value: str) -> bool:
    return value.startswith("http")


def read_urls_from_file(path: Path) -> List[str]:
    """Return the ``http`` lines of a newline-delimited URL file, in order."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Error reading URL file %s: %s", path, exc)
        return []
    lines = (line.strip() for line in content.splitlines())
    return [line for line in lines if line and is_candidate_url(line)]


def filter_url_args(args: Iterable[str]) -> List[str]:
    return [arg for arg in args if is_candidate_url(arg)]


def prompt_urls(
    read_line: Callable[[], str],
    echo: Callable[[str], None] = print,
) -> List[str]:
    """Read URLs one per line until a blank line or end of input.

    Lines that do not start with ``http`` are rejected with a message.
    """
    urls: List[str] = []
    while True:
        try:
            line = read_line().strip()
        except EOFError:
            break
        if not line:
            break
        if is_candidate_url(line):
            urls.append(line)
        else:
            echo("Invalid URL, must start with http:// or https://")
    return urls


def collect_urls(
    args: List[str],
    read_line: Optional[Callable[[], str]] = None,
    echo: Callable[[str], None] = print,
) -> List[str]:
    """Resolve the batch input.

    * First argument is an existing ``.txt`` file: read URLs from it.
    * Other arguments: keep those starting with ``http``.
    * No arguments: prompt interactively via *read_line*.
    """
    if args:
        first = Path(args[0])
        if args[0].endswith(".txt") and first.is_file():
            return read_urls_from_file(first)
        return filter_url_args(args)

    if read_line is None:
        return []
    echo("No URLs provided. Please enter URLs (one per line, enter an empty line to finish):")
    return prompt_urls(read_line, echo=echo)
