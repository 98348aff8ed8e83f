# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.setups",
#   "purpose": "Registry of packaged set-up codes mapping to preset resource sources",
#   "sections": [
#     {"id": "model", "name": "Setup", "anchor": "class-setup", "kind": "class"},
#     {"id": "registry", "name": "Registry lookups", "anchor": "REG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Preset resource source bundles keyed by a short set-up code."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, ValidationError

from .errors import ConfigError

__all__ = ["SETUPS_FILE", "Setup", "available_setup_codes", "get_setup", "load_setups"]

SETUPS_FILE = Path(__file__).parent / "setups.json"


class Setup(BaseModel):
    """Source strings for every resource kind plus the managed directory name."""

    code: str
    description: str = ""
    directory: str
    reference_source: str
    sbs_signatures_source: str
    indel_signatures_source: str
    drivers_source: str
    passenger_cnas_source: str
    germline_source: str

    model_config = {"frozen": True}

    def source_arguments(self) -> Dict[str, str]:
        """Return the sources as :class:`~OncoSim.GenomicData.store.ResourceStore` keyword arguments."""

        return self.model_dump(exclude={"code", "description", "directory"})


@lru_cache(maxsize=None)
def load_setups(path: Path = SETUPS_FILE) -> Dict[str, Setup]:
    """Parse the registry at ``path``."""

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read set-up registry: {exc}", source=str(path)) from exc
    try:
        return {code: Setup(code=code, **entry) for code, entry in raw.items()}
    except (ValidationError, TypeError, AttributeError) as exc:
        raise ConfigError(f"Invalid set-up registry: {exc}", source=str(path)) from exc


def available_setup_codes() -> List[str]:
    return sorted(load_setups())


def get_setup(code: str) -> Setup:
    """Return the set-up registered under ``code``."""

    setups = load_setups()
    try:
        return setups[code]
    except KeyError:
        raise ConfigError(
            f'Unknown set-up code "{code}"; available codes: {", ".join(sorted(setups))}'
        ) from None
