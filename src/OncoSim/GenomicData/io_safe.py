# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.io_safe",
#   "purpose": "IO safety helpers: atomic file placement and traversal-safe tar extraction",
#   "sections": [
#     {"id": "atomic-path", "name": "atomic_path", "anchor": "function-atomic-path", "kind": "function"},
#     {"id": "copy-stream", "name": "copy_stream", "anchor": "function-copy-stream", "kind": "function"},
#     {"id": "validate-member-path", "name": "_validate_member_path", "anchor": "function-validate-member-path", "kind": "function"},
#     {"id": "extract-tar-safe", "name": "extract_tar_safe", "anchor": "function-extract-tar-safe", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Filesystem helpers shared by fetching, decompression, and genotype caching.

Anything written under a canonical name goes through :func:`atomic_path`: the
payload is produced in a temporary sibling and renamed into place only when
complete, so an interrupted write never leaves a half-written file under the
canonical name.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, Iterator, List, Optional

from .errors import InvalidSource

__all__ = ["atomic_path", "copy_stream", "extract_tar_safe"]


@contextlib.contextmanager
def atomic_path(path: Path, *, suffix: str = ".part") -> Iterator[Path]:
    """Yield a temporary sibling of ``path`` and rename it onto ``path`` on success.

    The temporary file is removed when the body raises.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=suffix)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            with contextlib.suppress(OSError):
                tmp_path.unlink()


def copy_stream(chunks: Iterable[bytes], target: BinaryIO) -> int:
    """Write ``chunks`` into ``target`` and return the number of bytes written."""

    written = 0
    for chunk in chunks:
        if not chunk:
            continue
        target.write(chunk)
        written += len(chunk)
    return written


def _validate_member_path(member_name: str, archive: Path) -> Optional[Path]:
    """Return the safe relative path of an archive member, or ``None`` for the root entry."""

    normalized = member_name.replace("\\", "/")
    relative = PurePosixPath(normalized)
    if relative.is_absolute():
        raise InvalidSource(
            f"Unsafe absolute path detected in archive: {member_name}", source=str(archive)
        )
    parts = [part for part in relative.parts if part not in {"", "."}]
    if ".." in parts:
        raise InvalidSource(f"Unsafe path detected in archive: {member_name}", source=str(archive))
    if not parts:
        return None
    return Path(*parts)


def extract_tar_safe(
    tar_path: Path, destination: Path, *, logger: Optional[logging.Logger] = None
) -> List[Path]:
    """Safely extract a tar archive (plain or compressed) below ``destination``.

    Links, device nodes and members escaping ``destination`` are rejected
    before anything is written.
    """

    destination.mkdir(parents=True, exist_ok=True)
    extracted: List[Path] = []
    try:
        with tarfile.open(tar_path, mode="r:*") as archive:
            safe_members: List[tuple[tarfile.TarInfo, Path]] = []
            for member in archive.getmembers():
                member_path = _validate_member_path(member.name, tar_path)
                if member_path is None:
                    continue
                if member.islnk() or member.issym():
                    raise InvalidSource(
                        f"Unsafe link detected in archive: {member.name}", source=str(tar_path)
                    )
                if not (member.isdir() or member.isfile()):
                    raise InvalidSource(
                        f"Unsupported tar member type encountered: {member.name}",
                        source=str(tar_path),
                    )
                safe_members.append((member, member_path))
            for member, member_path in safe_members:
                target_path = destination / member_path
                if member.isdir():
                    target_path.mkdir(parents=True, exist_ok=True)
                    continue
                extracted_file = archive.extractfile(member)
                if extracted_file is None:
                    raise InvalidSource(
                        f"Failed to extract member: {member.name}", source=str(tar_path)
                    )
                with extracted_file as source, atomic_path(target_path) as tmp_path:
                    with tmp_path.open("wb") as target:
                        shutil.copyfileobj(source, target)
                extracted.append(target_path)
    except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
        raise InvalidSource(
            f"Failed to extract tar archive {tar_path}: {exc}", source=str(tar_path)
        ) from exc
    if logger:
        logger.info(
            "extracted tar archive",
            extra={"stage": "extract", "archive": str(tar_path), "files": len(extracted)},
        )
    return extracted
