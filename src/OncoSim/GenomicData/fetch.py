# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.fetch",
#   "purpose": "Retrieve remote resources to local paths under an elevated, scoped timeout",
#   "sections": [
#     {"id": "transports", "name": "Scheme transports", "anchor": "TRN", "kind": "helpers"},
#     {"id": "fetcher", "name": "Fetcher", "anchor": "class-fetcher", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Remote retrieval for configured sources.

``http``/``https`` sources stream through the shared HTTPX client and ``ftp``
sources through :mod:`urllib`.  Every download lands in a temporary sibling
and is renamed onto the destination only when complete.  Each call raises the
process-wide download timeout to at least the configured floor and restores
the previous value afterwards.  Failures raise :class:`FetchError`; nothing is
retried.
"""

from __future__ import annotations

import logging
import shutil
import urllib.request
from pathlib import Path
from typing import Optional, Sequence
from urllib.error import URLError

import httpx

from .credentials import (
    CredentialedFetch,
    DownloadPair,
    PortalSessionFetch,
    batch_requires_credentials,
    requires_credentials,
)
from .errors import FetchError, InvalidSource, MissingCredential
from .io_safe import atomic_path, copy_stream
from .net import elevated_timeout, get_http_client, timeout_for
from .settings import Credential, GenomicDataSettings, get_default_config

__all__ = ["Fetcher"]

LOGGER = logging.getLogger("OncoSim.GenomicData.fetch")


class Fetcher:
    """Download remote sources, routing portal-hosted ones through a credentialed strategy."""

    def __init__(
        self,
        *,
        credential: Optional[Credential] = None,
        credentialed: Optional[CredentialedFetch] = None,
        settings: Optional[GenomicDataSettings] = None,
    ) -> None:
        self.settings = settings or get_default_config()
        self.credential = credential
        self.credentialed = credentialed or PortalSessionFetch(
            portal=self.settings.portal, fetch_settings=self.settings.fetch
        )

    def fetch(self, url: str, destination: Path) -> Path:
        """Retrieve ``url`` into ``destination`` and return the destination path."""

        destination = Path(destination)
        if requires_credentials(url, self.settings.portal):
            self.fetch_batch([(url, destination)])
            return destination

        destination.parent.mkdir(parents=True, exist_ok=True)
        with elevated_timeout(self.settings.fetch.timeout_floor_sec) as timeout:
            LOGGER.info(
                "fetching remote resource",
                extra={
                    "stage": "fetch",
                    "url": url,
                    "destination": str(destination),
                    "timeout_sec": timeout,
                },
            )
            if url.startswith("ftp://"):
                self._fetch_ftp(url, destination, timeout)
            elif url.startswith(("http://", "https://")):
                self._fetch_http(url, destination)
            else:
                raise InvalidSource(f'"{url}" is not a recognised remote locator', source=url)
        return destination

    def fetch_batch(self, pairs: Sequence[DownloadPair]) -> None:
        """Retrieve every ``(url, destination)`` pair.

        If any URL needs the authenticated portal, the entire batch goes
        through the credentialed strategy; otherwise each pair is fetched on
        its own.  A missing credential fails before any network I/O.
        """

        if not pairs:
            return
        if not batch_requires_credentials(pairs, self.settings.portal):
            for url, destination in pairs:
                self.fetch(url, destination)
            return
        if self.credential is None:
            raise MissingCredential(
                "The signature portal requires an account: create one and pass its "
                "credential, or download the signature files and configure their local paths",
                source=next(url for url, _ in pairs if requires_credentials(url, self.settings.portal)),
            )
        for _, destination in pairs:
            Path(destination).parent.mkdir(parents=True, exist_ok=True)
        with elevated_timeout(self.settings.fetch.timeout_floor_sec):
            self.credentialed.fetch_batch(self.credential, pairs)

    def _fetch_http(self, url: str, destination: Path) -> None:
        client = get_http_client(self.settings.fetch)
        try:
            with client.stream("GET", url, timeout=timeout_for(self.settings.fetch)) as response:
                if not response.is_success:
                    raise FetchError(
                        f'Cannot download "{url}": HTTP {response.status_code}',
                        url=url,
                        status_code=response.status_code,
                    )
                with atomic_path(destination) as tmp_path, tmp_path.open("wb") as target:
                    written = copy_stream(
                        response.iter_bytes(self.settings.fetch.chunk_size_bytes), target
                    )
        except httpx.TimeoutException as exc:
            raise FetchError(f'Timed out downloading "{url}"', url=url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f'Cannot download "{url}": {exc}', url=url) from exc
        LOGGER.debug(
            "download complete",
            extra={"stage": "fetch", "url": url, "bytes": written},
        )

    def _fetch_ftp(self, url: str, destination: Path, timeout: float) -> None:
        try:
            with urllib.request.urlopen(url, timeout=timeout) as response:  # nosec: ftp sources are user-configured
                with atomic_path(destination) as tmp_path, tmp_path.open("wb") as target:
                    shutil.copyfileobj(response, target, self.settings.fetch.chunk_size_bytes)
        except (URLError, OSError) as exc:
            raise FetchError(f'Cannot download "{url}": {exc}', url=url) from exc
