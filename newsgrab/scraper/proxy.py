"""Proxy selection and rotation.

Four outbound modes are supported, chosen by ``settings.proxy_type``:

``none``        direct connection
``http`` / ``https`` / ``socks5``
                a single static proxy URI taken verbatim from settings
``smartproxy``  managed provider, credentialed URI built from host/port/user/pass
``proxy_list``  round-robin over the URIs in ``settings.proxy_list_file``

Selection never touches the network.  The only mutable state is the
:class:`ProxyPool` cursor, which is owned by the caller (the pipeline) rather
than living at module level.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Sequence
from urllib.parse import quote, urlsplit, urlunsplit

import httpx

from newsgrab.config import Settings
from newsgrab.exceptions import ConfigurationError
from newsgrab.scraper.models import NO_PROXY, ProxyDescriptor, ProxyKind

logger = logging.getLogger(__name__)

_STATIC_MODES = {
    "http": "http_proxy",
    "https": "https_proxy",
    "socks5": "socks_proxy",
}


# ---------------------------------------------------------------------------
# Proxy pool
# ---------------------------------------------------------------------------

def load_proxy_list(path: Path) -> List[str]:
    """Read proxy URIs from *path*, one per line.

    Blank lines, ``#`` comments and lines without a ``://`` scheme separator
    are skipped.  A missing or unreadable file yields an empty list.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("Proxy list file %s not found", path)
        return []
    except OSError as exc:
        logger.error("Error loading proxy list %s: %s", path, exc)
        return []

    proxies = [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#") and "://" in line
    ]
    if proxies:
        logger.info("Loaded %d proxies from %s", len(proxies), path)
    else:
        logger.warning("No valid proxies found in %s", path)
    return proxies


class ProxyPool:
    """Thread-safe round-robin cursor over an ordered list of proxy URIs."""

    def __init__(self, uris: Sequence[str]) -> None:
        self._uris: List[str] = list(uris)
        self._cursor = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._uris)

    def __bool__(self) -> bool:
        return bool(self._uris)

    @property
    def uris(self) -> List[str]:
        return list(self._uris)

    @property
    def cursor(self) -> int:
        return self._cursor

    def next(self) -> tuple[int, str]:
        """Return ``(index, uri)`` at the cursor and advance it by one.

        Raises:
            ConfigurationError: If the pool is empty.
        """
        with self._lock:
            if not self._uris:
                raise ConfigurationError("proxy pool is empty")
            index = self._cursor
            self._cursor = (self._cursor + 1) % len(self._uris)
            return index, self._uris[index]

    @classmethod
    def from_file(cls, path: Path) -> ProxyPool:
        return cls(load_proxy_list(path))


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _check_uri(uri: str) -> str:
    """Return *uri* unchanged if it parses with a scheme and host."""
    try:
        parts = urlsplit(uri)
        hostname = parts.hostname
        _ = parts.port  # raises ValueError for a non-numeric port
    except ValueError as exc:
        raise ConfigurationError(f"invalid proxy URI {mask_proxy_uri(uri)!r}: {exc}") from None
    if not parts.scheme or not hostname:
        raise ConfigurationError(f"invalid proxy URI {mask_proxy_uri(uri)!r}")
    return uri


def _managed_uri(settings: Settings) -> str:
    if not settings.smartproxy_user or not settings.smartproxy_pass:
        raise ConfigurationError(
            "smartproxy mode requires SMARTPROXY_USER and SMARTPROXY_PASS"
        )
    port = str(settings.smartproxy_port).strip()
    if not (port.isascii() and port.isdigit()) or not 0 < int(port) < 65536:
        raise ConfigurationError(f"SMARTPROXY_PORT must be a port number, got {port!r}")
    user = quote(settings.smartproxy_user, safe="")
    password = quote(settings.smartproxy_pass, safe="")
    return f"http://{user}:{password}@{settings.smartproxy_host}:{int(port)}"



def select_proxy(
    mode: str,
    pool: ProxyPool | None = None,
    settings: Settings | None = None,
) -> ProxyDescriptor:
    """Resolve the proxy for the next request.

    Args:
        mode: One of ``none``, ``http``, ``https``, ``socks5``, ``smartproxy``
            or ``proxy_list``.  Unknown modes behave like ``none``.
        pool: Rotation state, required for ``proxy_list``.
        settings: Source of static URIs and managed-proxy credentials.

    Returns:
        The resolved :class:`ProxyDescriptor`.  In ``proxy_list`` mode the
        pool cursor is advanced by exactly one.

    Raises:
        ConfigurationError: Missing credentials, empty pool or an unusable
            static URI.
    """
    mode = (mode or "none").lower()

    if mode == "proxy_list":
        if pool is None:
            raise ConfigurationError("proxy_list mode requires a loaded proxy pool")
        index, uri = pool.next()
        logger.info("Using proxy %d/%d: %s", index + 1, len(pool), mask_proxy_uri(uri))
        return ProxyDescriptor(kind=ProxyKind.POOLED, uri=uri, pool_index=index)

    if mode in _STATIC_MODES:
        if settings is None:
            raise ConfigurationError(f"{mode} proxy mode requires settings")
        uri = getattr(settings, _STATIC_MODES[mode])
        if not uri:
            raise ConfigurationError(f"{mode} proxy mode requires {_STATIC_MODES[mode].upper()}")
        return ProxyDescriptor(kind=ProxyKind.STATIC, uri=_check_uri(uri))

    if mode == "smartproxy":
        if settings is None:
            raise ConfigurationError("smartproxy mode requires settings")
        return ProxyDescriptor(kind=ProxyKind.MANAGED, uri=_managed_uri(settings))

    return NO_PROXY


def resolve_proxy(
    mode: str,
    pool: ProxyPool | None = None,
    settings: Settings | None = None,
) -> ProxyDescriptor:
    """Like :func:`select_proxy` but degrades configuration errors to a direct connection."""
    try:
        return select_proxy(mode, pool=pool, settings=settings)
    except ConfigurationError as exc:
        logger.warning("Proxy configuration error (%s); proceeding without proxy", exc)
        return NO_PROXY


# ---------------------------------------------------------------------------
# Transport translation
# ---------------------------------------------------------------------------

def client_options(proxy: ProxyDescriptor) -> Dict[str, Any]:
    """Translate *proxy* into keyword arguments for :class:`httpx.Client`.

    HTTP-style proxies use httpx's structured ``proxy=`` option.  SOCKS
    proxies always go through an explicit transport, which needs the
    ``httpx[socks]`` extra.
    """
    if proxy.is_direct:
        return {}
    if proxy.is_socks:
        return {"transport": httpx.HTTPTransport(proxy=proxy.uri)}
    return {"proxy": proxy.uri}


def mask_proxy_uri(uri: str) -> str:
    """Return *uri* with any password replaced by ``***`` for logging."""
    try:
        parts = urlsplit(uri)
    except ValueError:
        return "<unparseable proxy>"
    if parts.password is None:
        return uri
    userinfo = f"{parts.username}:***" if parts.username else "***"
    host = parts.hostname or ""
    try:
        port = parts.port
    except ValueError:
        port = None
    netloc = f"{userinfo}@{host}" + (f":{port}" if port else "")
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
