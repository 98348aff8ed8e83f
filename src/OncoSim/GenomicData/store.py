# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.store",
#   "purpose": "Materialise every configured genomic resource in a managed directory exactly once",
#   "sections": [
#     {"id": "sources", "name": "sources.csv persistence", "anchor": "SRC", "kind": "helpers"},
#     {"id": "store", "name": "ResourceStore", "anchor": "class-resourcestore", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Resource store orchestration.

:class:`ResourceStore` owns a managed directory and, at construction, makes
sure each configured resource is available locally.  Steps run in a fixed
order and each one skips its work when its output is already present:

1. create the managed directory;
2. reference sequence (fetched, then decompressed or renamed);
3. SBS and indel signatures (one batch, possibly credentialed);
4. driver mutations;
5. passenger CNAs;
6. germline archive (fetched, then extracted);
7. population catalog over the germline directory.

Any failure aborts construction with an error naming the resource kind and
the offending source.  Existing local sources are used in place and never
copied into the managed directory.
"""

from __future__ import annotations

import csv
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Union

from .catalog import PopulationCatalog
from .credentials import DownloadPair
from .decompress import Decompressor
from .errors import ConfigError, GenomicDataError, InvalidSource, NotFound
from .fetch import Fetcher
from .resolvers import SourceResolver
from .resources import POPULATION_FILENAME, SOURCES_FILENAME, ResourceKind, SignatureKind
from .settings import Credential, GenomicDataSettings, get_default_config

__all__ = ["SOURCES_ORDER", "ResourceStore", "load_sources", "write_sources"]

LOGGER = logging.getLogger("OncoSim.GenomicData.store")

# Row order of sources.csv.
SOURCES_ORDER = (
    ResourceKind.REFERENCE,
    ResourceKind.INDEL_SIGNATURES,
    ResourceKind.SBS_SIGNATURES,
    ResourceKind.DRIVERS,
    ResourceKind.PASSENGER_CNAS,
    ResourceKind.GERMLINE,
)


def write_sources(directory: Path, sources: Mapping[ResourceKind, str]) -> Path:
    """Write the ``kind<TAB>source`` table to ``directory/sources.csv``."""

    path = Path(directory) / SOURCES_FILENAME
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, delimiter="\t", lineterminator="\n")
        for kind in SOURCES_ORDER:
            writer.writerow([kind.value, sources[kind]])
    return path


def load_sources(directory: Union[str, Path]) -> Dict[ResourceKind, str]:
    """Read back a ``sources.csv`` table written by :meth:`ResourceStore.save_sources`."""

    path = Path(directory) / SOURCES_FILENAME
    if not path.is_file():
        raise NotFound(f'No sources table in "{directory}"', source=str(path))
    sources: Dict[ResourceKind, str] = {}
    with path.open(newline="", encoding="utf-8") as handle:
        for row in csv.reader(handle, delimiter="\t"):
            if not row:
                continue
            if len(row) != 2:
                raise ConfigError(f"Malformed sources row {row!r}", source=str(path))
            try:
                kind = ResourceKind(row[0])
            except ValueError:
                raise ConfigError(
                    f'Unknown resource kind "{row[0]}" in sources table', source=str(path)
                ) from None
            sources[kind] = row[1]
    return sources


class ResourceStore:
    """Managed directory holding every genomic resource a simulation needs."""

    def __init__(
        self,
        directory: Union[str, Path],
        reference_source: str,
        sbs_signatures_source: str,
        indel_signatures_source: str,
        drivers_source: str,
        passenger_cnas_source: str,
        germline_source: str,
        *,
        credential: Optional[Credential] = None,
        fetcher: Optional[Fetcher] = None,
        decompressor: Optional[Decompressor] = None,
        resolver: Optional[SourceResolver] = None,
        settings: Optional[GenomicDataSettings] = None,
    ) -> None:
        self.settings = settings or get_default_config()
        self._directory = Path(directory).absolute()
        self._sources: Dict[ResourceKind, str] = {
            ResourceKind.REFERENCE: str(reference_source),
            ResourceKind.SBS_SIGNATURES: str(sbs_signatures_source),
            ResourceKind.INDEL_SIGNATURES: str(indel_signatures_source),
            ResourceKind.DRIVERS: str(drivers_source),
            ResourceKind.PASSENGER_CNAS: str(passenger_cnas_source),
            ResourceKind.GERMLINE: str(germline_source),
        }
        self.resolver = resolver or SourceResolver()
        self.fetcher = fetcher or Fetcher(credential=credential, settings=self.settings)
        if credential is not None and self.fetcher.credential is None:
            self.fetcher.credential = credential
        self.decompressor = decompressor or Decompressor()

        self._directory.mkdir(parents=True, exist_ok=True)
        LOGGER.info(
            "preparing resource store",
            extra={"stage": "store", "directory": str(self._directory)},
        )

        self._retrieve_reference()
        self._retrieve_signatures()
        self._retrieve_drivers()
        self._retrieve_passenger_cnas()
        self._retrieve_germline()

        self._catalog = PopulationCatalog(self.germline_path)

    @classmethod
    def from_setup(
        cls,
        code: str,
        *,
        directory: Optional[Union[str, Path]] = None,
        credential: Optional[Credential] = None,
        **overrides: object,
    ) -> "ResourceStore":
        """Build a store from a packaged set-up code.

        ``overrides`` replace individual sources by keyword, e.g.
        ``sbs_signatures_source="/data/SBS.txt"``.  ``directory`` defaults
        to the set-up's directory name below the configured data directory.
        """

        from .setups import get_setup

        setup = get_setup(code)
        sources = setup.source_arguments()
        unknown = set(overrides) - set(sources) - {"fetcher", "decompressor", "resolver", "settings"}
        if unknown:
            raise ConfigError(f"Unknown source override(s): {', '.join(sorted(unknown))}")
        kwargs: Dict[str, object] = {**sources, **overrides}
        settings = kwargs.get("settings") or get_default_config()
        if directory is None:
            directory = Path(settings.data_dir) / setup.directory
        LOGGER.info(
            "building resource store from set-up code",
            extra={"stage": "store", "setup": code, "directory": str(directory)},
        )
        return cls(directory, credential=credential, **kwargs)  # type: ignore[arg-type]

    # --- step helpers -----------------------------------------------------

    def _local(self, kind: ResourceKind) -> Optional[Path]:
        return self.resolver.existing_local(self._sources[kind])

    def _canonical(self, kind: ResourceKind) -> Path:
        return self.resolver.storage_path(kind, self._directory)

    @contextmanager
    def _step(self, *kinds: ResourceKind) -> Iterator[None]:
        """Attach the resource kind(s) and source to errors raised inside the block."""

        try:
            yield
        except GenomicDataError as exc:
            exc.with_context(
                resource="/".join(kind.value for kind in kinds),
                source=self._sources[kinds[0]],
            )
            raise

    def _require_remote(self, kind: ResourceKind, what: str) -> str:
        source = self._sources[kind]
        if not self.resolver.is_remote(source):
            raise NotFound(
                f'Designated {what} "{source}" does not exist and is not a remote locator',
                resource=kind.value,
                source=source,
            )
        return source

    def _retrieve_reference(self) -> None:
        kind = ResourceKind.REFERENCE
        if self._local(kind) is not None:
            return
        source = self._require_remote(kind, "reference genome file")
        canonical = self._canonical(kind)
        if canonical.exists():
            return

        LOGGER.info(
            "downloading reference genome", extra={"stage": "store", "resource": kind.value}
        )
        with self._step(kind):
            downloaded = self.fetcher.fetch(
                source, self.resolver.canonical_destination(self._directory, source)
            )
            self.decompressor.materialize(downloaded, canonical)

    def _signature_pair(self, signature: SignatureKind) -> Optional[DownloadPair]:
        kind = signature.resource
        canonical = self._canonical(kind)
        if canonical.exists() or self._local(kind) is not None:
            return None
        return (self._require_remote(kind, "signature file"), canonical)

    def _retrieve_signatures(self) -> None:
        kinds: List[ResourceKind] = []
        pairs: List[DownloadPair] = []
        for signature in (SignatureKind.SBS, SignatureKind.INDEL):
            pair = self._signature_pair(signature)
            if pair is not None:
                kinds.append(signature.resource)
                pairs.append(pair)
        if not pairs:
            return

        LOGGER.info(
            "downloading signature files",
            extra={"stage": "store", "resource": "signatures", "count": len(pairs)},
        )
        # The whole batch shares one routing decision, even when only one
        # URL belongs to the authenticated portal.
        with self._step(*kinds):
            self.fetcher.fetch_batch(pairs)

    def _retrieve_drivers(self) -> None:
        kind = ResourceKind.DRIVERS
        if self._local(kind) is not None:
            return
        source = self._require_remote(kind, "driver mutations file")
        canonical = self._canonical(kind)
        if canonical.exists():
            return
        LOGGER.info(
            "downloading driver mutations", extra={"stage": "store", "resource": kind.value}
        )
        with self._step(kind):
            self.fetcher.fetch(source, canonical)

    def _retrieve_passenger_cnas(self) -> None:
        kind = ResourceKind.PASSENGER_CNAS
        source = self._sources[kind]
        if self._local(kind) is not None:
            return
        if not self.resolver.is_remote(source):
            raise InvalidSource(
                f'Designated passenger CNAs file "{source}" must be a remote locator',
                resource=kind.value,
                source=source,
            )
        canonical = self._canonical(kind)
        if canonical.exists():
            return
        LOGGER.info(
            "downloading passenger CNAs", extra={"stage": "store", "resource": kind.value}
        )
        with self._step(kind):
            self.fetcher.fetch(source, canonical)

    def _retrieve_germline(self) -> None:
        kind = ResourceKind.GERMLINE
        if self._local(kind) is not None:
            return
        source = self._require_remote(kind, "germline directory")
        # Only the population table is checked; other germline files are trusted.
        if (self._canonical(kind) / POPULATION_FILENAME).exists():
            return

        LOGGER.info(
            "downloading germline archive", extra={"stage": "store", "resource": kind.value}
        )
        with self._step(kind):
            archive = self.fetcher.fetch(
                source, self.resolver.canonical_destination(self._directory, source)
            )
            self.decompressor.extract(archive, self._directory)

    # --- accessors --------------------------------------------------------

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def sources(self) -> Dict[ResourceKind, str]:
        """Configured source strings keyed by resource kind (a copy)."""

        return dict(self._sources)

    def effective_path(self, kind: ResourceKind) -> Path:
        """Return the configured source when it exists locally, else the canonical path."""

        return self.resolver.resolve(kind, self._sources[kind], self._directory)

    @property
    def reference_path(self) -> Path:
        return self.effective_path(ResourceKind.REFERENCE)

    def signatures_path(self, signature: Union[SignatureKind, str]) -> Path:
        return self.effective_path(SignatureKind(signature).resource)

    @property
    def sbs_signatures_path(self) -> Path:
        return self.signatures_path(SignatureKind.SBS)

    @property
    def indel_signatures_path(self) -> Path:
        return self.signatures_path(SignatureKind.INDEL)

    @property
    def drivers_path(self) -> Path:
        return self.effective_path(ResourceKind.DRIVERS)

    @property
    def passenger_cnas_path(self) -> Path:
        return self.effective_path(ResourceKind.PASSENGER_CNAS)

    @property
    def germline_path(self) -> Path:
        return self.effective_path(ResourceKind.GERMLINE)

    @property
    def germline_catalog(self) -> PopulationCatalog:
        return self._catalog

    def save_sources(self) -> Path:
        """Persist the configured (not resolved) sources to ``sources.csv``."""

        path = write_sources(self._directory, self._sources)
        LOGGER.debug("saved sources table", extra={"stage": "store", "path": str(path)})
        return path

    def is_cache_hit(self) -> bool:
        """Return ``True`` when ``sources.csv`` matches the configured sources and all paths exist."""

        try:
            saved = load_sources(self._directory)
        except (NotFound, ConfigError):
            return False
        if saved != self._sources:
            return False
        return all(self.effective_path(kind).exists() for kind in ResourceKind)

    def __repr__(self) -> str:
        return f"ResourceStore(directory={str(self._directory)!r})"
