# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.decompress",
#   "purpose": "Materialise fetched files at their canonical path, decompressing by suffix",
#   "sections": [
#     {"id": "strategies", "name": "Decompression strategies", "anchor": "STR", "kind": "helpers"},
#     {"id": "decompressor", "name": "Decompressor", "anchor": "class-decompressor", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Turn a raw fetched file into the canonical resource file.

The action depends on the fetched file's last suffix: plain FASTA suffixes are
moved into place, suffixes registered in the decompression table are
decompressed into place (the compressed original is removed), and anything
else fails with :class:`UnsupportedFormat`.  Content that the registered
strategy cannot decode raises :class:`InvalidSource`.  The table is an instance
attribute so tests and callers can register extra formats.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import shutil
import zlib
from pathlib import Path
from typing import BinaryIO, Callable, Dict, FrozenSet, List, Mapping, Optional

from .errors import InvalidSource, UnsupportedFormat
from .io_safe import atomic_path, extract_tar_safe

__all__ = [
    "DEFAULT_DECOMPRESSORS",
    "PASSTHROUGH_SUFFIXES",
    "DecompressStrategy",
    "Decompressor",
    "suffix_of",
    "xz_strategy",
]

LOGGER = logging.getLogger("OncoSim.GenomicData.decompress")

DecompressStrategy = Callable[[Path], BinaryIO]

PASSTHROUGH_SUFFIXES: FrozenSet[str] = frozenset({"fa", "fasta"})

DEFAULT_DECOMPRESSORS: Mapping[str, DecompressStrategy] = {
    "gz": lambda path: gzip.open(path, "rb"),
    "bz2": lambda path: bz2.open(path, "rb"),
}


def suffix_of(path: Path) -> str:
    """Return the text after the last ``.`` of the file name, or ``""``."""

    name = Path(path).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1]


class Decompressor:
    """Suffix-driven materialisation with an injectable decompression table."""

    def __init__(
        self,
        decompressors: Optional[Mapping[str, DecompressStrategy]] = None,
        *,
        passthrough: FrozenSet[str] = PASSTHROUGH_SUFFIXES,
    ) -> None:
        self.decompressors: Dict[str, DecompressStrategy] = dict(
            DEFAULT_DECOMPRESSORS if decompressors is None else decompressors
        )
        self.passthrough = passthrough

    def register(self, suffix: str, strategy: DecompressStrategy) -> None:
        """Register ``strategy`` for files ending in ``.<suffix>``."""

        self.decompressors[suffix] = strategy

    def materialize(self, fetched_path: Path, canonical_path: Path) -> Path:
        """Place the content of ``fetched_path`` at ``canonical_path``."""

        fetched_path = Path(fetched_path)
        canonical_path = Path(canonical_path)
        suffix = suffix_of(fetched_path)
        if suffix in self.passthrough:
            if fetched_path.resolve() != canonical_path.resolve():
                canonical_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(fetched_path), str(canonical_path))
            LOGGER.debug(
                "moved fetched file into place",
                extra={"stage": "materialize", "path": str(canonical_path)},
            )
            return canonical_path

        strategy = self.decompressors.get(suffix)
        if strategy is None:
            raise UnsupportedFormat(f'Unknown suffix "{suffix}"', source=str(fetched_path))

        LOGGER.info(
            "decompressing fetched file",
            extra={"stage": "materialize", "archive": str(fetched_path), "suffix": suffix},
        )
        try:
            with strategy(fetched_path) as source, atomic_path(canonical_path) as tmp_path:
                with tmp_path.open("wb") as target:
                    shutil.copyfileobj(source, target)
        except (OSError, EOFError, zlib.error, lzma.LZMAError) as exc:
            raise InvalidSource(
                f'Cannot decompress "{fetched_path.name}" as {suffix}: {exc}',
                source=str(fetched_path),
            ) from exc
        fetched_path.unlink(missing_ok=True)
        return canonical_path

    def extract(self, archive_path: Path, destination: Path) -> List[Path]:
        """Extract a tarball below ``destination`` (used for the germline archive)."""

        return extract_tar_safe(Path(archive_path), Path(destination), logger=LOGGER)


def xz_strategy(path: Path) -> BinaryIO:
    """Decompression strategy for ``.xz`` files, for use with :meth:`Decompressor.register`."""

    return lzma.open(path, "rb")
