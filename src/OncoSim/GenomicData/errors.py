# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.errors",
#   "purpose": "Define the exception hierarchy used across resource resolution, fetching, and the germline catalog",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "sources", "name": "Source & Fetch Errors", "anchor": "SRC", "kind": "api"},
#     {"id": "catalog", "name": "Catalog Errors", "anchor": "CAT", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across resource acquisition and the germline catalog.

The store spans source resolution, HTTP/FTP retrieval, decompression, archive
extraction, and germline genotype caching.  Every failure derives from
:class:`GenomicDataError` so callers can catch the whole family, while the
subclasses let them react to a specific condition (for example, prompting for
portal credentials on :class:`MissingCredential`).  Each error embeds the
offending resource kind and source string in its message.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "GenomicDataError",
    "ConfigError",
    "InvalidSource",
    "NotFound",
    "FetchError",
    "AuthError",
    "MissingCredential",
    "UnsupportedFormat",
    "UnknownGender",
    "SubjectNotFound",
    "CorruptCache",
    "ChromosomeParseError",
]


class GenomicDataError(RuntimeError):
    """Base exception for resource acquisition and germline catalog failures."""

    def __init__(
        self,
        message: str,
        *,
        resource: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        self.message = message
        self.resource = resource
        self.source = source
        super().__init__(self._decorate(message))

    def with_context(self, *, resource: str, source: Optional[str] = None) -> "GenomicDataError":
        """Fill in a missing resource kind (and source) and return ``self``."""

        if self.resource is None:
            self.resource = resource
            self.source = self.source or source
            self.args = (self._decorate(self.message),)
        return self

    def _decorate(self, message: str) -> str:
        context = []
        if self.resource:
            context.append(f"resource={self.resource}")
        if self.source:
            context.append(f"source={self.source!r}")
        if not context:
            return message
        return f"{message} [{', '.join(context)}]"


class ConfigError(GenomicDataError):
    """Raised when configuration inputs or set-up codes are invalid."""


class InvalidSource(GenomicDataError):
    """Raised when a source is a malformed URL, an unusable path, or unreadable content."""


class NotFound(GenomicDataError):
    """Raised when a required local file or directory is absent."""


class FetchError(GenomicDataError):
    """Raised when a network retrieval fails, times out, or is not a success."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        resource: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, resource=resource, source=source or url)


class AuthError(GenomicDataError):
    """Raised when the authenticated portal rejects the supplied credential."""


class MissingCredential(GenomicDataError):
    """Raised when an authenticated source is requested without a credential."""


class UnsupportedFormat(GenomicDataError):
    """Raised when a fetched file carries an unrecognised compression suffix."""


class UnknownGender(GenomicDataError):
    """Raised when the allele table has no column for the requested gender."""


class SubjectNotFound(GenomicDataError):
    """Raised when no population row matches the requested subject name."""


class CorruptCache(GenomicDataError):
    """Raised when a binary germline cache fails format or version validation."""


class ChromosomeParseError(GenomicDataError, ValueError):
    """Raised when a chromosome name cannot be mapped to an identifier."""
