# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.genotype",
#   "purpose": "Germline genotype model and its construction from tab-delimited germline records",
#   "sections": [
#     {"id": "model", "name": "Genotype model", "anchor": "MOD", "kind": "api"},
#     {"id": "builder", "name": "Record parsing", "anchor": "BLD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Per-subject germline genotype.

A :class:`GermlineGenotype` stores, for every chromosome listed in the allele
table, one ordered tuple of :class:`GermlineVariant` per allele.  It is built
from ``germlines.csv``: a tab-delimited table with ``chr``, ``pos``, ``ref``
and ``alt`` columns followed by one genotype column per subject (``0|1``,
``1/1``, ``0``, ``.``).
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from tqdm import tqdm

from .chromosomes import ChromosomeId, chromosome_name, parse_chromosome
from .errors import InvalidSource, SubjectNotFound

__all__ = ["GermlineVariant", "GermlineGenotype", "build_germline_genotype"]

LOGGER = logging.getLogger("OncoSim.GenomicData.genotype")

_RECORD_COLUMNS = ("chr", "pos", "ref", "alt")
_GENOTYPE_SEPARATOR = re.compile(r"[|/]")


@dataclass(frozen=True, order=True)
class GermlineVariant:
    """A single germline SNV or indel placed on one allele."""

    chromosome: ChromosomeId
    position: int
    ref: str
    alt: str


@dataclass
class GermlineGenotype:
    """Germline variants of one subject, per chromosome and per allele."""

    subject: str
    gender: str = ""
    chromosomes: Dict[ChromosomeId, Tuple[Tuple[GermlineVariant, ...], ...]] = field(
        default_factory=dict
    )

    def num_of_alleles(self, chromosome: ChromosomeId) -> int:
        return len(self.chromosomes.get(chromosome, ()))

    def allele(self, chromosome: ChromosomeId, index: int) -> Tuple[GermlineVariant, ...]:
        return self.chromosomes[chromosome][index]

    def num_of_variants(self) -> int:
        return sum(len(allele) for alleles in self.chromosomes.values() for allele in alleles)

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-compatible representation used by the binary archive."""

        return {
            "subject": self.subject,
            "gender": self.gender,
            "chromosomes": {
                chromosome_name(chromosome): [
                    [[variant.position, variant.ref, variant.alt] for variant in allele]
                    for allele in alleles
                ]
                for chromosome, alleles in sorted(self.chromosomes.items())
            },
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GermlineGenotype":
        chromosomes: Dict[ChromosomeId, Tuple[Tuple[GermlineVariant, ...], ...]] = {}
        for name, alleles in payload["chromosomes"].items():
            chromosome = parse_chromosome(name)
            chromosomes[chromosome] = tuple(
                tuple(
                    GermlineVariant(chromosome, int(position), str(ref), str(alt))
                    for position, ref, alt in allele
                )
                for allele in alleles
            )
        return cls(
            subject=str(payload["subject"]),
            gender=str(payload.get("gender", "")),
            chromosomes=chromosomes,
        )


def _column_indexes(header: Sequence[str], records_path: Path) -> Dict[str, int]:
    indexes: Dict[str, int] = {}
    for column in _RECORD_COLUMNS:
        try:
            indexes[column] = header.index(column)
        except ValueError:
            raise InvalidSource(
                f'Germline records lack the "{column}" column', source=str(records_path)
            ) from None
    return indexes


def _allele_entries(genotype: str) -> List[str]:
    text = genotype.strip()
    if not text:
        return []
    return _GENOTYPE_SEPARATOR.split(text)


def build_germline_genotype(
    records_path: Path,
    alleles_per_chromosome: Mapping[ChromosomeId, int],
    subject: str,
    *,
    gender: str = "",
    quiet: bool = False,
) -> GermlineGenotype:
    """Parse ``records_path`` and return the genotype of ``subject``.

    Records on chromosomes missing from ``alleles_per_chromosome`` are
    skipped; genotype entries beyond a chromosome's allele count are ignored
    and missing ones count as reference.
    """

    alleles: Dict[ChromosomeId, List[List[GermlineVariant]]] = {
        chromosome: [[] for _ in range(count)]
        for chromosome, count in alleles_per_chromosome.items()
    }
    with Path(records_path).open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle, delimiter="\t")
        header = next(reader, None)
        if header is None:
            raise InvalidSource("Germline records file is empty", source=str(records_path))
        columns = _column_indexes(header, records_path)
        try:
            subject_index = header.index(subject, len(_RECORD_COLUMNS))
        except ValueError:
            raise SubjectNotFound(
                f'Germline subject "{subject}" has no column in the germline records',
                source=str(records_path),
            ) from None

        progress = tqdm(reader, desc=f"Building germline of {subject}", unit=" records", disable=quiet)
        for line_number, row in enumerate(progress, start=2):
            if len(row) <= subject_index:
                continue
            chromosome = parse_chromosome(row[columns["chr"]])
            chromosome_alleles = alleles.get(chromosome)
            if chromosome_alleles is None:
                continue
            alts = row[columns["alt"]].split(",")
            entries = _allele_entries(row[subject_index])
            for allele_index, entry in enumerate(entries[: len(chromosome_alleles)]):
                if entry in {"0", "."}:
                    continue
                try:
                    alt_index = int(entry)
                    position = int(row[columns["pos"]])
                except ValueError:
                    raise InvalidSource(
                        f"Malformed germline record at line {line_number}",
                        source=str(records_path),
                    ) from None
                if not 1 <= alt_index <= len(alts):
                    raise InvalidSource(
                        f"Genotype {entry!r} at line {line_number} has no matching alt allele",
                        source=str(records_path),
                    )
                chromosome_alleles[allele_index].append(
                    GermlineVariant(chromosome, position, row[columns["ref"]], alts[alt_index - 1])
                )

    genotype = GermlineGenotype(
        subject=subject,
        gender=gender,
        chromosomes={
            chromosome: tuple(tuple(sorted(allele)) for allele in chromosome_alleles)
            for chromosome, chromosome_alleles in alleles.items()
        },
    )
    LOGGER.debug(
        "germline genotype built",
        extra={"stage": "germline", "subject": subject, "variants": genotype.num_of_variants()},
    )
    return genotype
