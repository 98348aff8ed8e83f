# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.net",
#   "purpose": "Provide the shared HTTPX client and the process-wide download timeout",
#   "sections": [
#     {"id": "constants", "name": "Constants & globals", "anchor": "CONST", "kind": "constants"},
#     {"id": "timeout", "name": "Process-wide timeout", "anchor": "TMO", "kind": "api"},
#     {"id": "helpers", "name": "Client construction helpers", "anchor": "HELP", "kind": "helpers"},
#     {"id": "api", "name": "Public API", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client and download timeout used by every fetch."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Callable, Iterator, Optional

import httpx

from .settings import FetchSettings, get_default_config

LOGGER = logging.getLogger("OncoSim.GenomicData.net")

# --- Constants & globals -------------------------------------------------------

DEFAULT_DOWNLOAD_TIMEOUT_SEC = 60.0

_CLIENT_LOCK = threading.RLock()
_HTTP_CLIENT: Optional[httpx.Client] = None
_CLIENT_FACTORY: Optional[Callable[[], httpx.Client]] = None

# Held for the whole of an elevated section so that concurrent fetches never
# observe or restore each other's value.
_TIMEOUT_LOCK = threading.RLock()
_DOWNLOAD_TIMEOUT_SEC = DEFAULT_DOWNLOAD_TIMEOUT_SEC

# --- Process-wide timeout ------------------------------------------------------


def get_download_timeout() -> float:
    """Return the current process-wide download timeout in seconds."""

    with _TIMEOUT_LOCK:
        return _DOWNLOAD_TIMEOUT_SEC


def set_download_timeout(value: float) -> None:
    """Set the process-wide download timeout in seconds."""

    global _DOWNLOAD_TIMEOUT_SEC
    if value <= 0:
        raise ValueError("download timeout must be positive")
    with _TIMEOUT_LOCK:
        _DOWNLOAD_TIMEOUT_SEC = float(value)


@contextlib.contextmanager
def elevated_timeout(minimum: float) -> Iterator[float]:
    """Raise the download timeout to at least ``minimum`` and restore it on exit.

    Yields the effective timeout.  The previous value is restored whether the
    body succeeds or raises.
    """

    global _DOWNLOAD_TIMEOUT_SEC
    with _TIMEOUT_LOCK:
        previous = _DOWNLOAD_TIMEOUT_SEC
        _DOWNLOAD_TIMEOUT_SEC = max(float(minimum), previous)
        try:
            yield _DOWNLOAD_TIMEOUT_SEC
        finally:
            _DOWNLOAD_TIMEOUT_SEC = previous


def timeout_for(settings: Optional[FetchSettings] = None) -> httpx.Timeout:
    """Return the HTTPX timeout derived from the current process-wide value."""

    cfg = settings or get_default_config().fetch
    read = get_download_timeout()
    return httpx.Timeout(connect=cfg.connect_timeout_sec, read=read, write=read, pool=read)


# --- Client construction helpers ----------------------------------------------


def build_http_client(settings: Optional[FetchSettings] = None, **overrides) -> httpx.Client:
    """Return a new HTTPX client configured from ``settings``."""

    cfg = settings or get_default_config().fetch
    kwargs = {
        "timeout": timeout_for(cfg),
        "follow_redirects": cfg.follow_redirects,
        "headers": {"User-Agent": cfg.user_agent},
        "trust_env": True,
    }
    kwargs.update(overrides)
    return httpx.Client(**kwargs)


def _close_client_unlocked() -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is not None:
        with contextlib.suppress(Exception):
            _HTTP_CLIENT.close()
    _HTTP_CLIENT = None


# --- Public API ----------------------------------------------------------------


def configure_http_client(
    client: Optional[httpx.Client] = None,
    *,
    factory: Optional[Callable[[], httpx.Client]] = None,
) -> None:
    """Override the shared HTTPX client or register a factory for tests."""

    global _HTTP_CLIENT, _CLIENT_FACTORY
    if client is not None and factory is not None:
        raise ValueError("provide either a client or factory, not both")

    with _CLIENT_LOCK:
        if client is None:
            _close_client_unlocked()
        elif _HTTP_CLIENT is not client:
            _close_client_unlocked()
            _HTTP_CLIENT = client
        _CLIENT_FACTORY = factory


def reset_http_client() -> None:
    """Drop the shared client and any registered factory."""

    global _CLIENT_FACTORY
    with _CLIENT_LOCK:
        _CLIENT_FACTORY = None
        _close_client_unlocked()


def get_http_client(settings: Optional[FetchSettings] = None) -> httpx.Client:
    """Return the shared HTTPX client, creating it if necessary."""

    global _HTTP_CLIENT
    with _CLIENT_LOCK:
        if _HTTP_CLIENT is not None:
            return _HTTP_CLIENT
        if _CLIENT_FACTORY is not None:
            client = _CLIENT_FACTORY()
            if not isinstance(client, httpx.Client):
                raise TypeError("client factory must return an httpx.Client")
            LOGGER.info(
                "using custom httpx client",
                extra={"factory": getattr(_CLIENT_FACTORY, "__qualname__", repr(_CLIENT_FACTORY))},
            )
        else:
            client = build_http_client(settings)
        _HTTP_CLIENT = client
        return client
