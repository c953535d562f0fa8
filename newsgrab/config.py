"""Centralised settings for newsgrab.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the current working
directory (loaded automatically when this module is imported).  Real
environment variables always win over `.env` entries.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv(Path.cwd() / ".env", override=False)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s must be an integer, got %r; using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, str(default))
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s must be a number, got %r; using %s", name, raw, default)
        return default


def _env_str(name: str) -> str | None:
    """Return the variable, treating empty strings as unset."""
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Proxy
    # ------------------------------------------------------------------
    proxy_type: str = field(
        default_factory=lambda: os.environ.get("PROXY_TYPE", "none").strip().lower() or "none"
    )
    http_proxy: str | None = field(default_factory=lambda: _env_str("HTTP_PROXY"))
    https_proxy: str | None = field(default_factory=lambda: _env_str("HTTPS_PROXY"))
    socks_proxy: str | None = field(default_factory=lambda: _env_str("SOCKS_PROXY"))

    # Managed proxy provider (SmartProxy)
    smartproxy_user: str | None = field(default_factory=lambda: _env_str("SMARTPROXY_USER"))
    smartproxy_pass: str | None = field(default_factory=lambda: _env_str("SMARTPROXY_PASS"))
    smartproxy_host: str = field(
        default_factory=lambda: os.environ.get("SMARTPROXY_HOST", "gate.smartproxy.com")
    )
    # Kept as text; checked when the managed proxy URI is built.
    smartproxy_port: str = field(
        default_factory=lambda: os.environ.get("SMARTPROXY_PORT", "7000").strip()
    )

    # Proxy pool
    proxy_list_file: Path = field(
        default_factory=lambda: Path(os.environ.get("PROXY_LIST_FILE", "proxies.txt"))
    )
    use_proxy_list: bool = field(default_factory=lambda: _env_bool("USE_PROXY_LIST"))

    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    request_delay_ms: int = field(default_factory=lambda: _env_int("REQUEST_DELAY", 1000))
    request_timeout: float = field(
        default_factory=lambda: _env_float("REQUEST_TIMEOUT", 30.0)
    )
    robots_timeout: float = field(
        default_factory=lambda: _env_float("ROBOTS_TIMEOUT", 5.0)
    )
    use_random_user_agent: bool = field(
        default_factory=lambda: _env_bool("USE_RANDOM_USER_AGENT")
    )
    respect_robots_txt: bool = field(
        default_factory=lambda: _env_bool("RESPECT_ROBOTS_TXT")
    )
    workers: int = field(default_factory=lambda: _env_int("SCRAPE_WORKERS", 1))

    # ------------------------------------------------------------------
    # Output / logging
    # ------------------------------------------------------------------
    output_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("OUTPUT_DIR", "articles"))
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.environ.get("LOG_FORMAT", "console").strip().lower()
    )

    @property
    def request_delay(self) -> float:
        """Inter-request delay in seconds (``0`` disables the wait)."""
        return max(self.request_delay_ms, 0) / 1000.0

    @property
    def pool_enabled(self) -> bool:
        """Whether the proxy list file should be loaded."""
        return self.proxy_type == "proxy_list" or self.use_proxy_list

    def ensure_output_dir(self) -> None:
        """Create the output directory if it does not exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton; import this everywhere:
#   from newsgrab.config import settings
settings = Settings()
