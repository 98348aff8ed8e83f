# === NAVMAP v1 ===
# {
#   "module": "tests.genomic_data.conftest",
#   "purpose": "Fixtures building germline catalogs, tarballs, and isolated settings for genomic data tests",
#   "sections": [
#     {"id": "state", "name": "Global state reset", "anchor": "STA", "kind": "fixtures"},
#     {"id": "germline", "name": "Germline fixtures", "anchor": "GER", "kind": "fixtures"}
#   ]
# }
# === /NAVMAP ===

"""Fixtures building germline catalogs, tarballs, and isolated settings."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

import pytest

from OncoSim.GenomicData import net
from OncoSim.GenomicData.settings import GenomicDataSettings, invalidate_default_config_cache

POPULATION_ROWS = [
    ["sample", "pop", "super_pop", "gender"],
    ["S1", "GBR", "EUR", "female"],
    ["S3", "YRI", "AFR", "male"],
]

DESCRIPTION_ROWS = [
    ["code", "description", "super_pop"],
    ["GBR", "British in England and Scotland", "EUR"],
    ["YRI", "Yoruba in Ibadan, Nigeria", "AFR"],
]

ALLELE_ROWS = [
    ["chromosome", "male", "female"],
    ["1", "2", "2"],
    ["22", "2", "2"],
    ["X", "1", "2"],
    ["Y", "1", "0"],
]

RECORD_ROWS = [
    ["chr", "pos", "ref", "alt", "S1", "S3"],
    ["1", "100", "A", "G", "0|1", "1|1"],
    ["1", "200", "C", "T,G", "2|0", "0|0"],
    ["22", "50", "G", "A", "1/1", "0/1"],
    ["X", "10", "T", "C", "1|0", "1"],
    ["Y", "5", "A", "T", ".", "1"],
    ["5", "77", "C", "A", "1|1", "1|1"],
]


def write_table(path: Path, rows: Iterable[List[str]]) -> Path:
    path.write_text("".join("\t".join(row) + "\n" for row in rows), encoding="utf-8")
    return path


def make_germline_dir(root: Path, name: str = "germline_data") -> Path:
    directory = root / name
    directory.mkdir(parents=True, exist_ok=True)
    write_table(directory / "population.csv", POPULATION_ROWS)
    write_table(directory / "population_descriptions.csv", DESCRIPTION_ROWS)
    write_table(directory / "alleles_per_chr.csv", ALLELE_ROWS)
    write_table(directory / "germlines.csv", RECORD_ROWS)
    return directory


def tar_bytes(files: Dict[str, bytes]) -> bytes:
    """Return a gzip-compressed tarball holding ``files`` (name -> content)."""

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    for variable in (
        "GENOMICDATA_DATA_DIR",
        "GENOMICDATA_LOG_LEVEL",
        "GENOMICDATA_LOG_DIR",
        "GENOMICDATA_TIMEOUT_FLOOR_SEC",
        "GENOMICDATA_COSMIC_USERNAME",
        "GENOMICDATA_COSMIC_PASSWORD",
    ):
        monkeypatch.delenv(variable, raising=False)
    invalidate_default_config_cache()
    net.reset_http_client()
    net.set_download_timeout(net.DEFAULT_DOWNLOAD_TIMEOUT_SEC)
    yield
    net.reset_http_client()
    net.set_download_timeout(net.DEFAULT_DOWNLOAD_TIMEOUT_SEC)
    invalidate_default_config_cache()


@pytest.fixture
def settings(tmp_path: Path) -> GenomicDataSettings:
    return GenomicDataSettings(data_dir=tmp_path / "data")


@pytest.fixture
def germline_dir(tmp_path: Path) -> Path:
    return make_germline_dir(tmp_path / "catalog")


@pytest.fixture
def germline_tarball(tmp_path: Path) -> bytes:
    source = make_germline_dir(tmp_path / "tarball-source")
    return tar_bytes(
        {f"germline_data/{path.name}": path.read_bytes() for path in sorted(source.iterdir())}
    )
