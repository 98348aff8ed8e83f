# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.archive",
#   "purpose": "Binary archive writer/reader for germline genotypes with format and version checks",
#   "sections": [
#     {"id": "errors", "name": "Archive errors", "anchor": "ERR", "kind": "api"},
#     {"id": "header", "name": "Header layout", "anchor": "HDR", "kind": "constants"},
#     {"id": "io", "name": "save_genotype / load_genotype", "anchor": "IO", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Binary persistence for :class:`~OncoSim.GenomicData.genotype.GermlineGenotype`.

Layout::

    b"OSBA" | uint16 descriptor length | descriptor (UTF-8) | uint16 version | gzip(JSON)

Readers distinguish a file that is not an archive of the expected kind
(:class:`WrongFileFormat`) from one written by another format revision
(:class:`WrongFileVersion`).
"""

from __future__ import annotations

import gzip
import json
import struct
import zlib
from pathlib import Path
from typing import BinaryIO

from tqdm import tqdm

from .genotype import GermlineGenotype
from .io_safe import atomic_path

__all__ = [
    "ARCHIVE_MAGIC",
    "ARCHIVE_VERSION",
    "GERMLINE_DESCRIPTOR",
    "ArchiveError",
    "WrongFileFormat",
    "WrongFileVersion",
    "save_genotype",
    "load_genotype",
]

ARCHIVE_MAGIC = b"OSBA"
ARCHIVE_VERSION = 1
GERMLINE_DESCRIPTOR = "germline"

_UINT16 = struct.Struct(">H")


class ArchiveError(Exception):
    """Base class for binary archive validation failures."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class WrongFileFormat(ArchiveError):
    """The file is not an archive of the expected kind, or its payload is unreadable."""


class WrongFileVersion(ArchiveError):
    """The archive was written by a different format version."""

    def __init__(self, message: str, path: Path, *, found: int, expected: int) -> None:
        super().__init__(message, path)
        self.found = found
        self.expected = expected


def _read_exact(stream: BinaryIO, size: int, path: Path) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise WrongFileFormat("Truncated archive header", path)
    return data


def save_genotype(
    genotype: GermlineGenotype,
    path: Path,
    *,
    descriptor: str = GERMLINE_DESCRIPTOR,
    quiet: bool = True,
) -> Path:
    """Write ``genotype`` to ``path`` atomically and return ``path``."""

    payload = json.dumps(genotype.to_payload(), separators=(",", ":")).encode("utf-8")
    encoded_descriptor = descriptor.encode("utf-8")
    with atomic_path(Path(path), suffix=".tmp") as tmp_path, tmp_path.open("wb") as stream:
        stream.write(ARCHIVE_MAGIC)
        stream.write(_UINT16.pack(len(encoded_descriptor)))
        stream.write(encoded_descriptor)
        stream.write(_UINT16.pack(ARCHIVE_VERSION))
        with gzip.GzipFile(filename="", fileobj=stream, mode="wb", mtime=0) as compressed:
            step = 1 << 20
            with tqdm(total=len(payload), desc=f"Saving {descriptor}", unit="B",
                      unit_scale=True, disable=quiet) as progress:
                for offset in range(0, len(payload), step):
                    chunk = payload[offset : offset + step]
                    compressed.write(chunk)
                    progress.update(len(chunk))
    return Path(path)


def load_genotype(
    path: Path,
    *,
    descriptor: str = GERMLINE_DESCRIPTOR,
    quiet: bool = True,
) -> GermlineGenotype:
    """Read a genotype archive, validating its magic, descriptor and version."""

    path = Path(path)
    with path.open("rb") as stream:
        if _read_exact(stream, len(ARCHIVE_MAGIC), path) != ARCHIVE_MAGIC:
            raise WrongFileFormat("Not a genotype archive", path)
        (length,) = _UINT16.unpack(_read_exact(stream, _UINT16.size, path))
        found_descriptor = _read_exact(stream, length, path).decode("utf-8", errors="replace")
        if found_descriptor != descriptor:
            raise WrongFileFormat(
                f'Archive holds "{found_descriptor}" data, expected "{descriptor}"', path
            )
        (version,) = _UINT16.unpack(_read_exact(stream, _UINT16.size, path))
        if version != ARCHIVE_VERSION:
            raise WrongFileVersion(
                f"Archive format version {version} is not supported (expected {ARCHIVE_VERSION})",
                path,
                found=version,
                expected=ARCHIVE_VERSION,
            )
        try:
            with gzip.GzipFile(fileobj=stream, mode="rb") as compressed:
                with tqdm(desc=f"Loading {descriptor}", unit="B", unit_scale=True,
                          disable=quiet) as progress:
                    chunks = []
                    for chunk in iter(lambda: compressed.read(1 << 20), b""):
                        chunks.append(chunk)
                        progress.update(len(chunk))
            return GermlineGenotype.from_payload(json.loads(b"".join(chunks)))
        except (OSError, EOFError, zlib.error, ValueError, KeyError, TypeError) as exc:
            raise WrongFileFormat(f"Unreadable archive payload ({exc})", path) from exc
