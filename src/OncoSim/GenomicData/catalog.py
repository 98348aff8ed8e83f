# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.catalog",
#   "purpose": "Read-only germline population catalog with per-subject binary genotype caching",
#   "sections": [
#     {"id": "records", "name": "GermlineSubject / PopulationDescription", "anchor": "REC", "kind": "api"},
#     {"id": "catalog", "name": "PopulationCatalog", "anchor": "class-populationcatalog", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Germline population catalog.

The catalog directory holds four tab-delimited files (germline records,
population table, population descriptions, alleles per chromosome).  Every
query re-reads the backing file; nothing is cached in memory.  Genotypes are
the exception: they are expensive to build, so :meth:`PopulationCatalog.germline`
persists each one as ``germline_<subject>.dat`` and trusts that file on later
calls.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Union

from filelock import FileLock, Timeout

from .archive import ArchiveError, WrongFileVersion, load_genotype, save_genotype
from .chromosomes import ChromosomeId, parse_chromosome
from .errors import CorruptCache, GenomicDataError, InvalidSource, NotFound, SubjectNotFound, UnknownGender
from .genotype import GermlineGenotype, build_germline_genotype
from .resources import (
    ALLELES_FILENAME,
    GERMLINE_RECORDS_FILENAME,
    POPULATION_DESCRIPTIONS_FILENAME,
    POPULATION_FILENAME,
)

__all__ = ["GermlineSubject", "PopulationDescription", "PopulationCatalog"]

LOGGER = logging.getLogger("OncoSim.GenomicData.catalog")


@dataclass(frozen=True)
class GermlineSubject:
    """One row of the population table."""

    name: str
    population: str
    super_population: str
    gender: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "sample": self.name,
            "pop": self.population,
            "super_pop": self.super_population,
            "gender": self.gender,
        }


@dataclass(frozen=True)
class PopulationDescription:
    """One row of the population description table."""

    code: str
    description: str
    extra: Dict[str, str] = field(default_factory=dict, compare=False)


class PopulationCatalog:
    """Catalog of germline subjects backed by a fixed directory layout."""

    lock_timeout_sec: float = 3600.0

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        if not self.directory.exists():
            raise NotFound(
                f'Germline directory "{self.directory}" does not exist',
                resource="germline",
                source=str(self.directory),
            )
        if not self.directory.is_dir():
            raise NotFound(
                f'Germline path "{self.directory}" is not a directory',
                resource="germline",
                source=str(self.directory),
            )
        for required in (
            self.records_file,
            self.population_file,
            self.population_descriptions_file,
            self.alleles_file,
        ):
            if not required.is_file():
                raise NotFound(
                    f'Germline directory "{self.directory}" does not contain "{required.name}"',
                    resource="germline",
                    source=str(self.directory),
                )

    @property
    def records_file(self) -> Path:
        return self.directory / GERMLINE_RECORDS_FILENAME

    @property
    def population_file(self) -> Path:
        return self.directory / POPULATION_FILENAME

    @property
    def population_descriptions_file(self) -> Path:
        return self.directory / POPULATION_DESCRIPTIONS_FILENAME

    @property
    def alleles_file(self) -> Path:
        return self.directory / ALLELES_FILENAME

    def cache_path(self, subject_name: str) -> Path:
        """Return the binary genotype cache location for ``subject_name``."""

        unsafe = any(sep in subject_name for sep in ("/", "\\", ".."))
        if not subject_name or unsafe:
            raise InvalidSource(
                f"Subject name {subject_name!r} cannot name a cache file",
                resource="germline",
                source=str(self.directory),
            )
        return self.directory / f"germline_{subject_name}.dat"

    def _rows(self, path: Path) -> Iterator[List[str]]:
        """Yield the data rows of a tab-delimited file, header excluded."""

        with path.open(newline="", encoding="utf-8") as handle:
            reader = csv.reader(handle, delimiter="\t", quoting=csv.QUOTE_NONE)
            next(reader, None)
            for row in reader:
                if row:
                    yield row

    def _header(self, path: Path) -> List[str]:
        with path.open(newline="", encoding="utf-8") as handle:
            return next(csv.reader(handle, delimiter="\t", quoting=csv.QUOTE_NONE), [])

    @staticmethod
    def _subject_from(row: List[str], path: Path) -> GermlineSubject:
        if len(row) < 4:
            raise InvalidSource(
                f"Population row {row!r} has fewer than four fields", source=str(path)
            )
        return GermlineSubject(row[0], row[1], row[2], row[3])

    def list_population(self) -> List[GermlineSubject]:
        """Return every subject in file order."""

        return [self._subject_from(row, self.population_file) for row in self._rows(self.population_file)]

    def population_descriptions(self) -> List[PopulationDescription]:
        """Return the population description table in file order."""

        header = self._header(self.population_descriptions_file)
        descriptions = []
        for row in self._rows(self.population_descriptions_file):
            extra = {name: value for name, value in zip(header[2:], row[2:])}
            descriptions.append(
                PopulationDescription(row[0], row[1] if len(row) > 1 else "", extra)
            )
        return descriptions

    def alleles_per_chromosome(self, gender: str) -> Dict[ChromosomeId, int]:
        """Return the allele count of each chromosome for ``gender``."""

        header = self._header(self.alleles_file)
        try:
            index = header.index(gender, 1)
        except ValueError:
            raise UnknownGender(
                f'Unknown gender "{gender}"', resource="germline", source=str(self.alleles_file)
            ) from None

        counts: Dict[ChromosomeId, int] = {}
        for row in self._rows(self.alleles_file):
            try:
                counts[parse_chromosome(row[0])] = int(row[index])
            except (IndexError, ValueError) as exc:
                if isinstance(exc, GenomicDataError):
                    raise
                raise InvalidSource(
                    f"Malformed allele count row {row!r}", source=str(self.alleles_file)
                ) from exc
        return counts

    def subject(self, name: str) -> GermlineSubject:
        """Return the first population row whose sample name equals ``name``."""

        for row in self._rows(self.population_file):
            if row[0] == name:
                return self._subject_from(row, self.population_file)
        raise SubjectNotFound(
            f'Germline subject "{name}" not available',
            resource="germline",
            source=str(self.population_file),
        )

    def germline(self, subject_name: str, quiet: bool = False) -> GermlineGenotype:
        """Return the genotype of ``subject_name``, building and caching it on first use.

        An existing cache file is trusted; one that fails format or version
        validation raises :class:`CorruptCache` instead of being rebuilt.
        Building holds a lock next to the cache file so that at most one
        writer per subject exists at a time.
        """

        subject = self.subject(subject_name)
        cache_path = self.cache_path(subject.name)
        if cache_path.exists():
            return self._load_cached(subject_name, cache_path, quiet)

        lock = FileLock(str(cache_path.with_suffix(cache_path.suffix + ".lock")))
        try:
            with lock.acquire(timeout=self.lock_timeout_sec):
                if cache_path.exists():
                    return self._load_cached(subject_name, cache_path, quiet)
                return self._build(subject, cache_path, quiet)
        except Timeout as exc:
            raise TimeoutError(
                f"Could not acquire the germline lock for {subject_name!r} "
                f"after {self.lock_timeout_sec}s"
            ) from exc

    def _load_cached(self, subject_name: str, cache_path: Path, quiet: bool) -> GermlineGenotype:
        LOGGER.debug(
            "loading cached germline",
            extra={"stage": "germline", "subject": subject_name, "path": str(cache_path)},
        )
        try:
            return load_genotype(cache_path, quiet=quiet)
        except WrongFileVersion as exc:
            raise CorruptCache(
                f"Germline cache for {subject_name!r} has format version {exc.found}, "
                f"expected {exc.expected}; delete it to rebuild",
                resource="germline",
                source=str(cache_path),
            ) from exc
        except ArchiveError as exc:
            raise CorruptCache(
                f"Germline cache for {subject_name!r} is not a valid germline archive ({exc}); "
                "delete it to rebuild",
                resource="germline",
                source=str(cache_path),
            ) from exc

    def _build(self, subject: GermlineSubject, cache_path: Path, quiet: bool) -> GermlineGenotype:
        alleles = self.alleles_per_chromosome(subject.gender)
        LOGGER.info(
            "building germline genotype",
            extra={"stage": "germline", "subject": subject.name, "gender": subject.gender},
        )
        genotype = build_germline_genotype(
            self.records_file, alleles, subject.name, gender=subject.gender, quiet=quiet
        )
        save_genotype(genotype, cache_path, quiet=quiet)
        return genotype
