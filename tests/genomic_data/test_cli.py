# === NAVMAP v1 ===
# {
#   "module": "tests.genomic_data.test_cli",
#   "purpose": "genomic-data command line: catalog queries, set-up, and error exits",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""genomic-data command line: catalog queries, set-up, and error exits."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from OncoSim.GenomicData import __version__
from OncoSim.GenomicData.cli import app
from OncoSim.GenomicData.logging_utils import LOGGER_NAME
from OncoSim.GenomicData.testing import StaticTransport, use_mock_http_client
from tests.genomic_data.conftest import make_germline_dir

runner = CliRunner()


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_genomicdata_managed", False):
            logger.removeHandler(handler)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_codes_lists_demo():
    result = runner.invoke(app, ["codes"])
    assert result.exit_code == 0, result.output
    assert "demo" in result.output


def test_population(germline_dir: Path):
    result = runner.invoke(app, ["population", str(germline_dir)])
    assert result.exit_code == 0, result.output
    assert "S1" in result.output
    assert "YRI" in result.output


def test_descriptions(germline_dir: Path):
    result = runner.invoke(app, ["descriptions", str(germline_dir)])
    assert result.exit_code == 0, result.output
    assert "GBR" in result.output


def test_subject_found_and_missing(germline_dir: Path):
    found = runner.invoke(app, ["subject", str(germline_dir), "S3"])
    assert found.exit_code == 0, found.output
    assert "AFR" in found.output

    missing = runner.invoke(app, ["subject", str(germline_dir), "S2"])
    assert missing.exit_code == 1
    assert "S2" in missing.output


def test_alleles_unknown_gender_exits_with_error(germline_dir: Path):
    ok = runner.invoke(app, ["alleles", str(germline_dir), "male"])
    assert ok.exit_code == 0, ok.output
    assert "X" in ok.output

    bad = runner.invoke(app, ["alleles", str(germline_dir), "other"])
    assert bad.exit_code == 1
    assert "Unknown gender" in bad.output


def test_germline_builds_cache(germline_dir: Path):
    result = runner.invoke(app, ["germline", str(germline_dir), "S1", "--quiet"])
    assert result.exit_code == 0, result.output
    assert (germline_dir / "germline_S1.dat").is_file()


def test_missing_catalog_directory_exits_with_error(tmp_path: Path):
    result = runner.invoke(app, ["population", str(tmp_path / "absent")])
    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_setup_requires_sources_without_code(tmp_path: Path):
    result = runner.invoke(app, ["setup", "--directory", str(tmp_path / "managed")])
    assert result.exit_code == 1
    assert "missing" in result.output


def test_setup_with_code_and_local_overrides(tmp_path: Path):
    local = tmp_path / "local"
    local.mkdir()
    arguments = ["setup", "--setup-code", "demo", "--directory", str(tmp_path / "managed")]
    for option, name in (
        ("--reference", "genome.fa"),
        ("--sbs-signatures", "sbs.txt"),
        ("--indel-signatures", "indel.txt"),
        ("--drivers", "drivers.txt"),
        ("--passenger-cnas", "cnas.txt"),
    ):
        (local / name).write_bytes(b"x")
        arguments += [option, str(local / name)]
    arguments += ["--germline", str(make_germline_dir(local))]

    transport = StaticTransport()
    with use_mock_http_client(transport):
        result = runner.invoke(app, arguments)
    assert result.exit_code == 0, result.output
    assert transport.requests == []
    sources = (tmp_path / "managed" / "sources.csv").read_text(encoding="utf-8")
    assert f"drivers\t{local / 'drivers.txt'}" in sources


def test_invalid_log_level_exits_with_error(germline_dir: Path):
    result = runner.invoke(app, ["--log-level", "LOUD", "population", str(germline_dir)])
    assert result.exit_code == 1
