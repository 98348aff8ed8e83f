# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.resolvers",
#   "purpose": "Classify source strings as local paths or remote locators and derive storage destinations",
#   "sections": [
#     {"id": "constants", "name": "Recognised Schemes", "anchor": "SCH", "kind": "constants"},
#     {"id": "resolver", "name": "SourceResolver", "anchor": "class-sourceresolver", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Source resolution for configured resource sources.

A source string is either an existing local path, which is always used in
place, or a URL with a recognised scheme, which is fetched into the managed
directory.  Existence checks return ``Optional[Path]`` instead of raising so
that callers decide which absences are errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urlsplit

from .errors import InvalidSource
from .resources import ResourceKind

__all__ = ["REMOTE_SCHEMES", "SourceResolver"]

REMOTE_SCHEMES: Tuple[str, ...] = ("ftp://", "http://", "https://")

LOGGER = logging.getLogger("OncoSim.GenomicData.resolvers")

PathLike = Union[str, Path]


class SourceResolver:
    """Decide how each configured source string maps onto the filesystem."""

    schemes: Tuple[str, ...] = REMOTE_SCHEMES

    def is_remote(self, source: str) -> bool:
        """Return ``True`` iff ``source`` starts with a recognised scheme prefix."""

        return any(source.startswith(prefix) for prefix in self.schemes)

    def existing_local(self, source: str) -> Optional[Path]:
        """Return ``source`` as a path when it names an existing file or directory."""

        if not source:
            return None
        candidate = Path(source)
        try:
            if candidate.exists():
                return candidate
        except OSError:
            # e.g. names longer than the platform limit: not a usable local path
            return None
        return None

    def canonical_destination(self, managed_dir: PathLike, url: str) -> Path:
        """Return the managed-directory path named after the URL's last path segment.

        Any ``?``-prefixed query string is stripped.  A URL with no path
        segment (``https://host`` or ``https://host/``) raises
        :class:`InvalidSource`.
        """

        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise InvalidSource(f'"{url}" is not a valid URL', source=url) from exc
        if not parts.scheme or not parts.netloc:
            raise InvalidSource(f'"{url}" is not a valid URL', source=url)
        filename = parts.path.rsplit("/", 1)[-1]
        if filename in {"", ".", ".."}:
            raise InvalidSource(f'"{url}" has no file name in its path', source=url)
        return Path(managed_dir) / filename

    def storage_path(self, kind: ResourceKind, managed_dir: PathLike) -> Path:
        """Return the fixed canonical path of ``kind`` inside ``managed_dir``."""

        return Path(managed_dir) / kind.storage_name

    def resolve(self, kind: ResourceKind, source: str, managed_dir: PathLike) -> Path:
        """Return the effective path for ``kind``.

        Existing local sources are returned verbatim and never copied into the
        managed directory; everything else resolves to the canonical path.
        """

        local = self.existing_local(source)
        if local is not None:
            LOGGER.debug(
                "using local source",
                extra={"stage": "resolve", "resource": kind.value, "source": source},
            )
            return local
        return self.storage_path(kind, managed_dir)
