# === NAVMAP v1 ===
# {
#   "module": "OncoSim.GenomicData.settings",
#   "purpose": "Define configuration models, environment overrides, and credentials for genomic resource acquisition",
#   "sections": [
#     {"id": "fetchsettings", "name": "FetchSettings", "anchor": "class-fetchsettings", "kind": "class"},
#     {"id": "portalsettings", "name": "PortalSettings", "anchor": "class-portalsettings", "kind": "class"},
#     {"id": "loggingsettings", "name": "LoggingSettings", "anchor": "class-loggingsettings", "kind": "class"},
#     {"id": "genomicdatasettings", "name": "GenomicDataSettings", "anchor": "class-genomicdatasettings", "kind": "class"},
#     {"id": "credential", "name": "Credential", "anchor": "class-credential", "kind": "class"},
#     {"id": "environmentoverrides", "name": "EnvironmentOverrides", "anchor": "class-environmentoverrides", "kind": "class"},
#     {"id": "get-default-config", "name": "get_default_config", "anchor": "function-get-default-config", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models for the genomic resource store.

Defaults live in typed :mod:`pydantic` sections aggregated by
:class:`GenomicDataSettings`.  Environment variables prefixed with
``GENOMICDATA_`` are read through :class:`EnvironmentOverrides` and layered
on top when :func:`get_default_config` builds the memoised instance.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "DEFAULT_DATA_DIR",
    "FetchSettings",
    "PortalSettings",
    "LoggingSettings",
    "GenomicDataSettings",
    "Credential",
    "EnvironmentOverrides",
    "get_default_config",
    "invalidate_default_config_cache",
]

DEFAULT_DATA_DIR = Path.home() / ".data" / "oncosim-genomic-data"


class FetchSettings(BaseModel):
    """HTTP/FTP retrieval settings."""

    timeout_floor_sec: float = Field(
        default=1000.0,
        gt=0,
        description="Minimum download timeout enforced for the duration of each fetch",
    )
    connect_timeout_sec: float = Field(default=30.0, gt=0.0, le=600.0)
    chunk_size_bytes: int = Field(default=1 << 20, ge=1024)
    user_agent: str = Field(default="OncoSim-GenomicData/0.1 (+https://github.com/oncosim)")
    follow_redirects: bool = True

    model_config = {"validate_assignment": True}


class PortalSettings(BaseModel):
    """Authenticated signature portal that needs a login before downloads."""

    host_pattern: str = Field(default=r"^https://([a-zA-Z0-9_-]*).sanger.ac.uk")
    login_url: str = Field(default="https://cancer.sanger.ac.uk/cosmic/login")
    username_field: str = "email"
    password_field: str = "pass"
    login_error_marker: str = "error while logging"

    model_config = {"validate_assignment": True}


class LoggingSettings(BaseModel):
    """Logging-related configuration."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_dir: Optional[Path] = None
    max_log_size_mb: int = Field(default=100, gt=0)
    retention_days: int = Field(default=30, ge=1)

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class GenomicDataSettings(BaseModel):
    """Root configuration for the resource store."""

    data_dir: Path = DEFAULT_DATA_DIR
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    portal: PortalSettings = Field(default_factory=PortalSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"validate_assignment": True}


class Credential(BaseModel):
    """Username/password pair for the authenticated signature portal."""

    username: str
    password: SecretStr

    model_config = {"frozen": True}

    @classmethod
    def from_environment(cls) -> Optional["Credential"]:
        """Build a credential from ``GENOMICDATA_COSMIC_*`` variables, if both are set."""

        env = EnvironmentOverrides()
        if env.cosmic_username and env.cosmic_password:
            return cls(username=env.cosmic_username, password=env.cosmic_password)
        return None


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    data_dir: Optional[Path] = None
    log_level: Optional[str] = None
    log_dir: Optional[Path] = None
    timeout_floor_sec: Optional[float] = None
    cosmic_username: Optional[str] = None
    cosmic_password: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_prefix="GENOMICDATA_", case_sensitive=False, extra="ignore"
    )


_DEFAULT_CONFIG_LOCK = threading.RLock()
_DEFAULT_CONFIG_CACHE: Optional[GenomicDataSettings] = None


def _apply_env_overrides(settings: GenomicDataSettings) -> None:
    """Mutate ``settings`` in-place using values from :class:`EnvironmentOverrides`."""

    env = EnvironmentOverrides()
    logger = logging.getLogger("OncoSim.GenomicData")
    if env.data_dir is not None:
        settings.data_dir = env.data_dir
    if env.log_level is not None:
        settings.logging.level = env.log_level
    if env.log_dir is not None:
        settings.logging.log_dir = env.log_dir
    if env.timeout_floor_sec is not None:
        settings.fetch.timeout_floor_sec = env.timeout_floor_sec
    overrides = env.model_dump(exclude_none=True, exclude={"cosmic_username", "cosmic_password"})
    if overrides:
        logger.debug(
            "applied environment overrides",
            extra={"stage": "config", "overrides": sorted(overrides)},
        )


def get_default_config(*, copy: bool = False) -> GenomicDataSettings:
    """Return a memoised :class:`GenomicDataSettings` built from defaults and environment."""

    global _DEFAULT_CONFIG_CACHE  # noqa: PLW0603

    with _DEFAULT_CONFIG_LOCK:
        if _DEFAULT_CONFIG_CACHE is None:
            settings = GenomicDataSettings()
            _apply_env_overrides(settings)
            _DEFAULT_CONFIG_CACHE = settings
        cached = _DEFAULT_CONFIG_CACHE
    if copy:
        return cached.model_copy(deep=True)
    return cached


def invalidate_default_config_cache() -> None:
    """Invalidate the cached default configuration."""

    global _DEFAULT_CONFIG_CACHE  # noqa: PLW0603

    with _DEFAULT_CONFIG_LOCK:
        _DEFAULT_CONFIG_CACHE = None
