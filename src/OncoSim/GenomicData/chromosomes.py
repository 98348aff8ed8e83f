"""Chromosome identifiers and their canonical names."""

from __future__ import annotations

from typing import NewType

from .errors import ChromosomeParseError

__all__ = ["ChromosomeId", "parse_chromosome", "chromosome_name"]

ChromosomeId = NewType("ChromosomeId", int)

_NAMED = {"X": 23, "Y": 24, "MT": 25, "M": 25}
_NAMES = {23: "X", 24: "Y", 25: "MT"}
_MAX_AUTOSOME = 22


def parse_chromosome(name: str) -> ChromosomeId:
    """Map ``"1"``..``"22"``, ``"X"``, ``"Y"`` and ``"MT"`` (optionally ``chr``-prefixed) to an id."""

    text = name.strip()
    if text.lower().startswith("chr"):
        text = text[3:]
    upper = text.upper()
    if upper in _NAMED:
        return ChromosomeId(_NAMED[upper])
    if text.isdigit() and 1 <= int(text) <= _MAX_AUTOSOME:
        return ChromosomeId(int(text))
    raise ChromosomeParseError(f'Unknown chromosome "{name}"')


def chromosome_name(chromosome: ChromosomeId) -> str:
    """Return the canonical name of ``chromosome`` (inverse of :func:`parse_chromosome`)."""

    if chromosome in _NAMES:
        return _NAMES[chromosome]
    if 1 <= chromosome <= _MAX_AUTOSOME:
        return str(chromosome)
    raise ChromosomeParseError(f"Unknown chromosome id {chromosome}")
