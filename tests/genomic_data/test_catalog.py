# === NAVMAP v1 ===
# {
#   "module": "tests.genomic_data.test_catalog",
#   "purpose": "Population catalog validation, queries, genotype building, and binary cache reuse",
#   "sections": [
#     {"id": "construction", "name": "Construction", "anchor": "CON", "kind": "tests"},
#     {"id": "queries", "name": "Queries", "anchor": "QRY", "kind": "tests"},
#     {"id": "germline", "name": "Germline genotype cache", "anchor": "GER", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Population catalog validation, queries, genotype building, and binary cache reuse."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from OncoSim.GenomicData import catalog as catalog_mod
from OncoSim.GenomicData.catalog import GermlineSubject, PopulationCatalog
from OncoSim.GenomicData.chromosomes import ChromosomeId, parse_chromosome
from OncoSim.GenomicData.errors import (
    CorruptCache,
    InvalidSource,
    NotFound,
    SubjectNotFound,
    UnknownGender,
)
from OncoSim.GenomicData.genotype import GermlineVariant, build_germline_genotype
from tests.genomic_data.conftest import write_table

CHR1, CHR22, CHRX, CHRY = (ChromosomeId(value) for value in (1, 22, 23, 24))


# --- Construction ---


def test_missing_directory_is_not_found(tmp_path: Path):
    with pytest.raises(NotFound, match="does not exist"):
        PopulationCatalog(tmp_path / "absent")


def test_file_instead_of_directory_is_not_found(tmp_path: Path):
    path = tmp_path / "germline_data"
    path.write_text("", encoding="utf-8")
    with pytest.raises(NotFound, match="not a directory"):
        PopulationCatalog(path)


@pytest.mark.parametrize(
    "missing",
    ["germlines.csv", "population.csv", "population_descriptions.csv", "alleles_per_chr.csv"],
)
def test_each_backing_file_is_required(germline_dir: Path, missing):
    (germline_dir / missing).unlink()
    with pytest.raises(NotFound, match=missing):
        PopulationCatalog(germline_dir)


# --- Queries ---


def test_list_population_keeps_file_order(germline_dir: Path):
    subjects = PopulationCatalog(germline_dir).list_population()
    assert subjects == [
        GermlineSubject("S1", "GBR", "EUR", "female"),
        GermlineSubject("S3", "YRI", "AFR", "male"),
    ]
    assert subjects[0].as_dict() == {
        "sample": "S1",
        "pop": "GBR",
        "super_pop": "EUR",
        "gender": "female",
    }


def test_list_population_rereads_backing_file(germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    assert len(catalog.list_population()) == 2
    with (germline_dir / "population.csv").open("a", encoding="utf-8") as handle:
        handle.write("S4\tGBR\tEUR\tmale\n")
    assert [subject.name for subject in catalog.list_population()] == ["S1", "S3", "S4"]


def test_population_descriptions_keep_extra_columns(germline_dir: Path):
    descriptions = PopulationCatalog(germline_dir).population_descriptions()
    assert [(row.code, row.description) for row in descriptions] == [
        ("GBR", "British in England and Scotland"),
        ("YRI", "Yoruba in Ibadan, Nigeria"),
    ]
    assert descriptions[1].extra == {"super_pop": "AFR"}


def test_alleles_per_chromosome_reads_only_requested_column(germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    assert catalog.alleles_per_chromosome("male") == {CHR1: 2, CHR22: 2, CHRX: 1, CHRY: 1}
    assert catalog.alleles_per_chromosome("female") == {CHR1: 2, CHR22: 2, CHRX: 2, CHRY: 0}


@pytest.mark.parametrize("gender", ["other", "chromosome", ""])
def test_alleles_per_chromosome_unknown_gender(germline_dir: Path, gender):
    with pytest.raises(UnknownGender):
        PopulationCatalog(germline_dir).alleles_per_chromosome(gender)


def test_alleles_per_chromosome_rejects_bad_rows(germline_dir: Path):
    write_table(germline_dir / "alleles_per_chr.csv", [["chromosome", "male"], ["1", "two"]])
    with pytest.raises(InvalidSource):
        PopulationCatalog(germline_dir).alleles_per_chromosome("male")


def test_subject_lookup(germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    assert catalog.subject("S1") == GermlineSubject("S1", "GBR", "EUR", "female")
    with pytest.raises(SubjectNotFound, match="S2"):
        catalog.subject("S2")


@pytest.mark.parametrize(
    "name, expected",
    [("1", 1), ("chr22", 22), ("X", 23), ("chrY", 24), ("MT", 25), ("M", 25)],
)
def test_parse_chromosome(name, expected):
    assert parse_chromosome(name) == expected


@pytest.mark.parametrize("name", ["0", "23", "chrZ", ""])
def test_parse_chromosome_rejects_unknown(name):
    with pytest.raises(ValueError):
        parse_chromosome(name)


# --- Germline genotype cache ---


def test_build_germline_genotype_for_female_subject(germline_dir: Path):
    genotype = build_germline_genotype(
        germline_dir / "germlines.csv",
        {CHR1: 2, CHR22: 2, CHRX: 2, CHRY: 0},
        "S1",
        gender="female",
        quiet=True,
    )
    assert genotype.allele(CHR1, 0) == (GermlineVariant(CHR1, 200, "C", "G"),)
    assert genotype.allele(CHR1, 1) == (GermlineVariant(CHR1, 100, "A", "G"),)
    assert genotype.allele(CHR22, 0) == genotype.allele(CHR22, 1) == (
        GermlineVariant(CHR22, 50, "G", "A"),
    )
    assert genotype.allele(CHRX, 0) == (GermlineVariant(CHRX, 10, "T", "C"),)
    assert genotype.allele(CHRX, 1) == ()
    assert genotype.num_of_alleles(CHRY) == 0
    assert ChromosomeId(5) not in genotype.chromosomes
    assert genotype.num_of_variants() == 5


def test_build_germline_genotype_for_male_subject(germline_dir: Path):
    genotype = build_germline_genotype(
        germline_dir / "germlines.csv", {CHR1: 2, CHR22: 2, CHRX: 1, CHRY: 1}, "S3", quiet=True
    )
    assert [len(genotype.allele(CHR1, index)) for index in range(2)] == [1, 1]
    assert genotype.allele(CHR22, 0) == ()
    assert genotype.allele(CHRX, 0) == (GermlineVariant(CHRX, 10, "T", "C"),)
    assert genotype.allele(CHRY, 0) == (GermlineVariant(CHRY, 5, "A", "T"),)


def test_build_germline_genotype_subject_without_column(germline_dir: Path):
    with pytest.raises(SubjectNotFound):
        build_germline_genotype(germline_dir / "germlines.csv", {CHR1: 2}, "S9", quiet=True)


def test_germline_builds_then_reuses_cache(monkeypatch, germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    built = []
    original = catalog_mod.build_germline_genotype

    def counting_builder(*args, **kwargs):
        built.append(args[2])
        return original(*args, **kwargs)

    monkeypatch.setattr(catalog_mod, "build_germline_genotype", counting_builder)

    first = catalog.germline("S1", quiet=True)
    cache = catalog.cache_path("S1")
    assert cache == germline_dir / "germline_S1.dat"
    assert cache.is_file()
    cached_bytes = cache.read_bytes()

    second = catalog.germline("S1", quiet=True)
    assert built == ["S1"]
    assert second == first
    assert cache.read_bytes() == cached_bytes
    assert first.gender == "female"


def test_germline_unknown_subject_leaves_no_cache(germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    with pytest.raises(SubjectNotFound):
        catalog.germline("S2", quiet=True)
    assert not catalog.cache_path("S2").exists()


def test_concurrent_germline_requests_build_once(monkeypatch, germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    built = []
    original = catalog_mod.build_germline_genotype
    start = threading.Barrier(2)

    def slow_builder(*args, **kwargs):
        built.append(args[2])
        time.sleep(0.2)
        return original(*args, **kwargs)

    monkeypatch.setattr(catalog_mod, "build_germline_genotype", slow_builder)

    def request():
        start.wait(timeout=5)
        return catalog.germline("S1", quiet=True)

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(request) for _ in range(2)]
        first, second = (future.result(timeout=30) for future in futures)

    assert built == ["S1"]
    assert first == second
    assert catalog.cache_path("S1").is_file()


@pytest.mark.parametrize("name", ["NA/12878", "../escape", "a\\b"])
def test_germline_rejects_path_like_subject_without_touching_disk(germline_dir: Path, name):
    catalog = PopulationCatalog(germline_dir)
    before = sorted(path.name for path in germline_dir.iterdir())
    with pytest.raises(SubjectNotFound):
        catalog.germline(name, quiet=True)
    assert sorted(path.name for path in germline_dir.iterdir()) == before


@pytest.mark.parametrize("name", ["", "NA/12878", "..", "a\\b"])
def test_cache_path_rejects_path_like_names(germline_dir: Path, name):
    with pytest.raises(InvalidSource):
        PopulationCatalog(germline_dir).cache_path(name)


def test_corrupt_cache_is_reported_not_rebuilt(monkeypatch, germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    catalog.cache_path("S1").write_bytes(b"garbage")

    def fail(*args, **kwargs):
        raise AssertionError("the cache must not be rebuilt")

    monkeypatch.setattr(catalog_mod, "build_germline_genotype", fail)
    with pytest.raises(CorruptCache) as excinfo:
        catalog.germline("S1", quiet=True)
    assert "germline_S1.dat" in str(excinfo.value)
    assert catalog.cache_path("S1").read_bytes() == b"garbage"


def test_cache_from_other_version_is_corrupt(germline_dir: Path):
    catalog = PopulationCatalog(germline_dir)
    catalog.germline("S3", quiet=True)
    path = catalog.cache_path("S3")
    data = bytearray(path.read_bytes())
    offset = 4 + 2 + len(b"germline")
    data[offset : offset + 2] = b"\x00\x07"
    path.write_bytes(bytes(data))
    with pytest.raises(CorruptCache, match="version 7"):
        catalog.germline("S3", quiet=True)
