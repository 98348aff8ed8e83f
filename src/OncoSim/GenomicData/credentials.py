# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.credentials",
#   "purpose": "Detect sources behind an authenticated portal and fetch them through a logged-in session",
#   "sections": [
#     {"id": "detection", "name": "Portal detection", "anchor": "DET", "kind": "helpers"},
#     {"id": "protocol", "name": "CredentialedFetch", "anchor": "class-credentialedfetch", "kind": "class"},
#     {"id": "session", "name": "PortalSessionFetch", "anchor": "class-portalsessionfetch", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Credentialed retrieval for sources hosted behind a login portal.

The core only sees :class:`CredentialedFetch`; the concrete multi-step form
login lives in :class:`PortalSessionFetch`, which keeps cookies in a single
``httpx.Client`` for the login and every subsequent download.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Protocol, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup

from .errors import AuthError, FetchError, MissingCredential
from .io_safe import atomic_path, copy_stream
from .net import build_http_client, timeout_for
from .settings import Credential, FetchSettings, PortalSettings, get_default_config

__all__ = [
    "Credential",
    "CredentialedFetch",
    "DownloadPair",
    "PortalSessionFetch",
    "requires_credentials",
    "batch_requires_credentials",
]

LOGGER = logging.getLogger("OncoSim.GenomicData.credentials")

DownloadPair = Tuple[str, Path]


def requires_credentials(url: str, portal: Optional[PortalSettings] = None) -> bool:
    """Return ``True`` when ``url`` points at the authenticated portal host."""

    cfg = portal or get_default_config().portal
    return re.search(cfg.host_pattern, url) is not None


def batch_requires_credentials(
    pairs: Iterable[DownloadPair], portal: Optional[PortalSettings] = None
) -> bool:
    """Return ``True`` when any URL of the batch needs the authenticated path."""

    return any(requires_credentials(url, portal) for url, _ in pairs)


class CredentialedFetch(Protocol):
    """Strategy fetching a batch of URLs after authenticating once."""

    def fetch_batch(self, credential: Credential, pairs: Sequence[DownloadPair]) -> None:
        """Download every ``(url, destination)`` pair or raise on the first failure."""


class PortalSessionFetch:
    """Form-login strategy backed by one cookie-carrying HTTPX session."""

    def __init__(
        self,
        *,
        portal: Optional[PortalSettings] = None,
        fetch_settings: Optional[FetchSettings] = None,
        client_factory: Optional[Callable[[], httpx.Client]] = None,
    ) -> None:
        config = get_default_config()
        self.portal = portal or config.portal
        self.fetch_settings = fetch_settings or config.fetch
        self._client_factory = client_factory or (lambda: build_http_client(self.fetch_settings))

    def fetch_batch(self, credential: Credential, pairs: Sequence[DownloadPair]) -> None:
        if credential is None:
            raise MissingCredential(
                "The signature portal requires an account; supply a credential or "
                "pre-downloaded signature files",
                source=pairs[0][0] if pairs else None,
            )
        with self._client_factory() as client:
            self._login(client, credential)
            for url, destination in pairs:
                self._download(client, url, Path(destination))

    def _login_payload(self, page: httpx.Response, credential: Credential) -> Dict[str, str]:
        payload: Dict[str, str] = {}
        soup = BeautifulSoup(page.text, "html.parser")
        for form in soup.find_all("form"):
            if form.find("input", attrs={"name": self.portal.password_field}) is None:
                continue
            for field in form.find_all("input"):
                name = field.get("name")
                if name:
                    payload[name] = field.get("value") or ""
            break
        else:
            LOGGER.debug(
                "login form not found; posting credentials only",
                extra={"stage": "login", "url": self.portal.login_url},
            )
        payload[self.portal.username_field] = credential.username
        payload[self.portal.password_field] = credential.password.get_secret_value()
        return payload

    def _login(self, client: httpx.Client, credential: Credential) -> None:
        login_url = self.portal.login_url
        LOGGER.info("logging into signature portal", extra={"stage": "login", "url": login_url})
        try:
            page = client.get(login_url, timeout=timeout_for(self.fetch_settings))
            page.raise_for_status()
            response = client.post(
                login_url,
                data=self._login_payload(page, credential),
                timeout=timeout_for(self.fetch_settings),
            )
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Cannot reach the login page: HTTP {exc.response.status_code}",
                url=login_url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Cannot reach the login page: {exc}", url=login_url) from exc
        if not response.is_success or self.portal.login_error_marker in response.text:
            raise AuthError(
                f"Wrong portal username/password for {credential.username!r}", source=login_url
            )

    def _download(self, client: httpx.Client, url: str, destination: Path) -> None:
        LOGGER.info(
            "downloading through portal session",
            extra={"stage": "fetch", "url": url, "destination": str(destination)},
        )
        try:
            with client.stream("GET", url, timeout=timeout_for(self.fetch_settings)) as response:
                if response.status_code != 200:
                    raise FetchError(
                        f'Cannot download file at "{url}": HTTP {response.status_code}',
                        url=url,
                        status_code=response.status_code,
                    )
                with atomic_path(destination) as tmp_path, tmp_path.open("wb") as target:
                    copy_stream(response.iter_bytes(self.fetch_settings.chunk_size_bytes), target)
        except httpx.HTTPError as exc:
            raise FetchError(f'Cannot download file at "{url}": {exc}', url=url) from exc
