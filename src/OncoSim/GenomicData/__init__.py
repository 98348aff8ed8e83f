# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData",
#   "purpose": "Package initialization for OncoSim.GenomicData",
#   "sections": [
#     {"id": "getattr", "name": "__getattr__", "anchor": "function-getattr", "kind": "function"},
#     {"id": "dir", "name": "__dir__", "anchor": "function-dir", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Public API for the OncoSim genomic resource store.

This facade exposes the resource store that fetches, decompresses and caches
reference genomes, mutational signatures, driver and passenger CNA tables,
and germline population data, together with the germline catalog built on
top of it.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict

__version__ = "0.1.0"

_EXPORTS: Dict[str, str] = {
    "ResourceStore": ".store",
    "load_sources": ".store",
    "PopulationCatalog": ".catalog",
    "GermlineSubject": ".catalog",
    "PopulationDescription": ".catalog",
    "GermlineGenotype": ".genotype",
    "GermlineVariant": ".genotype",
    "ResourceKind": ".resources",
    "SignatureKind": ".resources",
    "SourceResolver": ".resolvers",
    "Fetcher": ".fetch",
    "CredentialedFetch": ".credentials",
    "PortalSessionFetch": ".credentials",
    "Decompressor": ".decompress",
    "Credential": ".settings",
    "GenomicDataSettings": ".settings",
    "get_default_config": ".settings",
    "setup_logging": ".logging_utils",
    "available_setup_codes": ".setups",
    "GenomicDataError": ".errors",
    "ConfigError": ".errors",
    "InvalidSource": ".errors",
    "NotFound": ".errors",
    "FetchError": ".errors",
    "AuthError": ".errors",
    "MissingCredential": ".errors",
    "UnsupportedFormat": ".errors",
    "UnknownGender": ".errors",
    "SubjectNotFound": ".errors",
    "CorruptCache": ".errors",
}

__all__ = ["__version__", *_EXPORTS]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .catalog import GermlineSubject, PopulationCatalog, PopulationDescription
    from .credentials import CredentialedFetch, PortalSessionFetch
    from .decompress import Decompressor
    from .errors import (
        AuthError,
        ConfigError,
        CorruptCache,
        FetchError,
        GenomicDataError,
        InvalidSource,
        MissingCredential,
        NotFound,
        SubjectNotFound,
        UnknownGender,
        UnsupportedFormat,
    )
    from .fetch import Fetcher
    from .genotype import GermlineGenotype, GermlineVariant
    from .logging_utils import setup_logging
    from .resolvers import SourceResolver
    from .resources import ResourceKind, SignatureKind
    from .settings import Credential, GenomicDataSettings, get_default_config
    from .setups import available_setup_codes
    from .store import ResourceStore, load_sources


def __getattr__(name: str) -> Any:
    """Lazily import exports so that importing the package stays cheap."""

    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))
