# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.resources",
#   "purpose": "Enumerate managed resource kinds and their canonical storage names",
#   "sections": [
#     {"id": "kinds", "name": "Resource Kinds", "anchor": "KND", "kind": "api"},
#     {"id": "signatures", "name": "Signature Kinds", "anchor": "SIG", "kind": "api"},
#     {"id": "layout", "name": "Managed Directory Layout", "anchor": "LAY", "kind": "constants"}
#   ]
# }
# === /NAVMAP ===

"""Resource kinds managed by :class:`~OncoSim.GenomicData.store.ResourceStore`.

Each kind maps to a fixed name inside the managed directory and to the key
used when persisting configured sources to ``sources.csv``.
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ResourceKind",
    "SignatureKind",
    "SOURCES_FILENAME",
    "GERMLINE_RECORDS_FILENAME",
    "POPULATION_FILENAME",
    "POPULATION_DESCRIPTIONS_FILENAME",
    "ALLELES_FILENAME",
]

SOURCES_FILENAME = "sources.csv"

GERMLINE_RECORDS_FILENAME = "germlines.csv"
POPULATION_FILENAME = "population.csv"
POPULATION_DESCRIPTIONS_FILENAME = "population_descriptions.csv"
ALLELES_FILENAME = "alleles_per_chr.csv"


class ResourceKind(str, Enum):
    """External dataset categories acquired into the managed directory."""

    REFERENCE = "reference"
    SBS_SIGNATURES = "SBS"
    INDEL_SIGNATURES = "indel"
    DRIVERS = "drivers"
    PASSENGER_CNAS = "passenger_CNAs"
    GERMLINE = "germline"

    @property
    def storage_name(self) -> str:
        """Return the canonical file or directory name inside the managed directory."""

        return _STORAGE_NAMES[self]

    @property
    def label(self) -> str:
        """Return a human readable name used in log lines and CLI output."""

        return _LABELS[self]


_STORAGE_NAMES = {
    ResourceKind.REFERENCE: "reference.fasta",
    ResourceKind.SBS_SIGNATURES: "SBS_signatures.txt",
    ResourceKind.INDEL_SIGNATURES: "indel_signatures.txt",
    ResourceKind.DRIVERS: "drivers.txt",
    ResourceKind.PASSENGER_CNAS: "passenger_CNAs.txt",
    ResourceKind.GERMLINE: "germline_data",
}

_LABELS = {
    ResourceKind.REFERENCE: "reference genome",
    ResourceKind.SBS_SIGNATURES: "SBS signatures",
    ResourceKind.INDEL_SIGNATURES: "indel signatures",
    ResourceKind.DRIVERS: "driver mutations",
    ResourceKind.PASSENGER_CNAS: "passenger CNAs",
    ResourceKind.GERMLINE: "germline data",
}


class SignatureKind(str, Enum):
    """Mutational signature families; each selects one source and one canonical file."""

    SBS = "SBS"
    INDEL = "indel"

    @property
    def resource(self) -> ResourceKind:
        if self is SignatureKind.SBS:
            return ResourceKind.SBS_SIGNATURES
        return ResourceKind.INDEL_SIGNATURES
