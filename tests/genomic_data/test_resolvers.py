# === NAVMAP v1 ===
# {
#   "module": "tests.genomic_data.test_resolvers",
#   "purpose": "Source classification, destination derivation, and effective path resolution",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Source classification, destination derivation, and effective path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from OncoSim.GenomicData.errors import InvalidSource
from OncoSim.GenomicData.resolvers import SourceResolver
from OncoSim.GenomicData.resources import ResourceKind


@pytest.mark.parametrize(
    "source, expected",
    [
        ("ftp://ftp.ensembl.org/pub/ref.fa.gz", True),
        ("http://example.org/drivers.txt", True),
        ("https://example.org/drivers.txt", True),
        ("file:///tmp/drivers.txt", False),
        ("/tmp/drivers.txt", False),
        ("relative/drivers.txt", False),
        ("HTTPS://example.org/upper", False),
    ],
)
def test_is_remote_recognises_scheme_prefixes(source, expected):
    assert SourceResolver().is_remote(source) is expected


def test_canonical_destination_strips_query(tmp_path: Path):
    destination = SourceResolver().canonical_destination(
        tmp_path, "https://host/path/file.fa.gz?token=abc"
    )
    assert destination == tmp_path / "file.fa.gz"


@pytest.mark.parametrize("url", ["https://host", "https://host/", "not a url", "https://host/dir/.."])
def test_canonical_destination_rejects_urls_without_file_name(tmp_path: Path, url):
    with pytest.raises(InvalidSource) as excinfo:
        SourceResolver().canonical_destination(tmp_path, url)
    assert url in str(excinfo.value)


def test_storage_paths_are_fixed_per_kind(tmp_path: Path):
    resolver = SourceResolver()
    names = {kind: resolver.storage_path(kind, tmp_path).name for kind in ResourceKind}
    assert names == {
        ResourceKind.REFERENCE: "reference.fasta",
        ResourceKind.SBS_SIGNATURES: "SBS_signatures.txt",
        ResourceKind.INDEL_SIGNATURES: "indel_signatures.txt",
        ResourceKind.DRIVERS: "drivers.txt",
        ResourceKind.PASSENGER_CNAS: "passenger_CNAs.txt",
        ResourceKind.GERMLINE: "germline_data",
    }


def test_resolve_prefers_existing_local_source(tmp_path: Path):
    local = tmp_path / "elsewhere" / "my_drivers.txt"
    local.parent.mkdir()
    local.write_text("gene\n", encoding="utf-8")
    managed = tmp_path / "managed"

    resolver = SourceResolver()
    assert resolver.resolve(ResourceKind.DRIVERS, str(local), managed) == local
    assert resolver.resolve(ResourceKind.DRIVERS, "https://example.org/d.txt", managed) == (
        managed / "drivers.txt"
    )


def test_existing_local_returns_none_for_missing_or_empty(tmp_path: Path):
    resolver = SourceResolver()
    assert resolver.existing_local("") is None
    assert resolver.existing_local(str(tmp_path / "missing.txt")) is None
    assert resolver.existing_local(str(tmp_path)) == tmp_path
