"""Testing utilities for exercising the resource store without network access.

Provides an in-memory HTTPX transport that serves canned responses and records
requests, a helper that installs it as the shared client, and a fetcher that
counts how often the store asked for network I/O.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

import httpx

from ..credentials import DownloadPair
from ..fetch import Fetcher
from ..net import configure_http_client, reset_http_client

__all__ = [
    "ResponseSpec",
    "RequestRecord",
    "StaticTransport",
    "CountingFetcher",
    "use_mock_http_client",
]


@contextlib.contextmanager
def use_mock_http_client(transport: httpx.BaseTransport, **client_kwargs) -> Iterator[httpx.Client]:
    """Temporarily install an HTTPX client backed by ``transport``."""

    client = httpx.Client(transport=transport, **client_kwargs)
    configure_http_client(client=client)
    try:
        yield client
    finally:
        reset_http_client()
        client.close()


@dataclass
class ResponseSpec:
    """Canned HTTP response served by :class:`StaticTransport`."""

    status: int = 200
    body: Union[bytes, str] = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def serialise_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")


@dataclass
class RequestRecord:
    """Captured HTTP request."""

    method: str
    url: str
    body: bytes


class StaticTransport(httpx.MockTransport):
    """Mock transport answering from a ``url -> ResponseSpec`` table.

    Lookups ignore the query string; unknown URLs answer 404.
    """

    def __init__(self, responses: Optional[Mapping[str, Union[ResponseSpec, bytes, str]]] = None) -> None:
        self.responses: Dict[str, ResponseSpec] = {}
        self.requests: List[RequestRecord] = []
        for url, spec in (responses or {}).items():
            self.add(url, spec)
        super().__init__(self._handle)

    def add(self, url: str, spec: Union[ResponseSpec, bytes, str]) -> None:
        if not isinstance(spec, ResponseSpec):
            spec = ResponseSpec(body=spec)
        self.responses[url] = spec

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(RequestRecord(request.method, str(request.url), request.read()))
        key = str(request.url).split("?", 1)[0]
        spec = self.responses.get(key)
        if spec is None:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(spec.status, content=spec.serialise_body(), headers=dict(spec.headers))


class CountingFetcher(Fetcher):
    """:class:`Fetcher` that records every single and batch request it receives."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fetched: List[str] = []
        self.batches: List[Sequence[DownloadPair]] = []

    def fetch(self, url: str, destination: Path) -> Path:
        self.fetched.append(url)
        return super().fetch(url, destination)

    def fetch_batch(self, pairs: Sequence[DownloadPair]) -> None:
        self.batches.append(list(pairs))
        super().fetch_batch(pairs)
