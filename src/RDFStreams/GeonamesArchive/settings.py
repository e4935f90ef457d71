"""Settings models, YAML loading, and environment overrides for the archive decoder."""

from __future__ import annotations

import codecs
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

try:  # pragma: no cover - dependency check
    import yaml  # type: ignore
except ModuleNotFoundError as exc:  # pragma: no cover - explicit guidance for users
    raise ImportError(
        "PyYAML is required for settings parsing. Install it with: pip install pyyaml"
    ) from exc

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError, UserConfigError

__all__ = [
    "ArchiveSettings",
    "PayloadSettings",
    "LoggingConfiguration",
    "DecoderSettings",
    "EnvironmentOverrides",
    "DEFAULT_TRUNCATION_SIGNATURES",
    "get_default_settings",
    "invalidate_default_settings_cache",
    "get_env_overrides",
    "load_raw_yaml",
    "load_settings",
]

# The truncated last entry of GeoNames dumps declares a size its data does not
# match. libarchive's ZIP reader reports it as "invalid entry size" while
# reading headers and as "ZIP (un)compressed data is wrong size" at the end of
# the member's data. A deflate stream cut mid-block fails as "ZIP decompression
# failed" instead and stays fatal.
DEFAULT_TRUNCATION_SIGNATURES = (
    "invalid entry size",
    "uncompressed data is wrong size",
    "compressed data is wrong size",
)


class ArchiveSettings(BaseModel):
    """How the compressed container is opened and its entries decoded."""

    format_name: str = Field(default="all", description="libarchive format to enable")
    filter_name: str = Field(default="all", description="libarchive filter to enable")
    encoding: str = Field(default="utf-8")
    encoding_errors: str = Field(default="replace")
    truncation_signatures: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TRUNCATION_SIGNATURES), min_length=1
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding '{value}'") from exc
        return value

    @field_validator("encoding_errors")
    @classmethod
    def validate_encoding_errors(cls, value: str) -> str:
        try:
            codecs.lookup_error(value)
        except LookupError as exc:
            raise ValueError(f"unknown codec error handler '{value}'") from exc
        return value

    @field_validator("truncation_signatures")
    @classmethod
    def validate_signatures(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("truncation_signatures must contain at least one entry")
        return cleaned

    model_config = {"validate_assignment": True}


class PayloadSettings(BaseModel):
    """Parser options applied to every embedded document."""

    payload_format: str = Field(default="xml", description="rdflib parser plugin name")
    preserve_bnode_ids: bool = Field(default=True)

    model_config = {"validate_assignment": True}


class LoggingConfiguration(BaseModel):
    """Logging-related configuration for archive decoding."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    progress_every: int = Field(default=100_000, gt=0)
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class DecoderSettings(BaseModel):
    """Root settings object consumed by the decoder and its collaborators."""

    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)
    payload: PayloadSettings = Field(default_factory=PayloadSettings)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    model_config = {"validate_assignment": True}

    @classmethod
    def from_defaults(cls) -> "DecoderSettings":
        """Construct settings from built-in defaults plus environment overrides."""

        settings = cls()
        _apply_env_overrides(settings)
        return settings


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    log_level: Optional[str] = Field(default=None, alias="GEOARCHIVE_LOG_LEVEL")
    encoding: Optional[str] = Field(default=None, alias="GEOARCHIVE_ENCODING")
    payload_format: Optional[str] = Field(default=None, alias="GEOARCHIVE_PAYLOAD_FORMAT")
    format_name: Optional[str] = Field(default=None, alias="GEOARCHIVE_FORMAT_NAME")

    model_config = SettingsConfigDict(
        env_prefix="GEOARCHIVE_", case_sensitive=False, extra="ignore"
    )


def get_env_overrides() -> Dict[str, str]:
    """Return environment-derived overrides as stringified key/value pairs."""

    env = EnvironmentOverrides()
    return {
        key: str(value) for key, value in env.model_dump(by_alias=False, exclude_none=True).items()
    }


def _apply_env_overrides(settings: DecoderSettings) -> None:
    """Mutate ``settings`` in-place using values from :class:`EnvironmentOverrides`."""

    env = EnvironmentOverrides()
    logger = logging.getLogger("RDFStreams.GeonamesArchive")
    try:
        if env.log_level is not None:
            settings.logging.level = env.log_level
        if env.encoding is not None:
            settings.archive.encoding = env.encoding
        if env.payload_format is not None:
            settings.payload.payload_format = env.payload_format
        if env.format_name is not None:
            settings.archive.format_name = env.format_name
    except PydanticValidationError as exc:
        raise UserConfigError(f"Invalid environment override: {exc}") from exc
    overrides = env.model_dump(exclude_none=True)
    if overrides:
        logger.info(
            "applied environment overrides",
            extra={"stage": "config", "overrides": sorted(overrides)},
        )


_DEFAULT_SETTINGS_LOCK = threading.RLock()
_DEFAULT_SETTINGS_CACHE: Optional[DecoderSettings] = None


def get_default_settings(*, copy: bool = False) -> DecoderSettings:
    """Return memoised :class:`DecoderSettings` constructed from defaults."""

    global _DEFAULT_SETTINGS_CACHE  # noqa: PLW0603

    with _DEFAULT_SETTINGS_LOCK:
        if _DEFAULT_SETTINGS_CACHE is None:
            _DEFAULT_SETTINGS_CACHE = DecoderSettings.from_defaults()
        cached = _DEFAULT_SETTINGS_CACHE
    if copy:
        return cached.model_copy(deep=True)
    return cached


def invalidate_default_settings_cache() -> None:
    """Invalidate the cached default settings."""

    global _DEFAULT_SETTINGS_CACHE  # noqa: PLW0603

    with _DEFAULT_SETTINGS_LOCK:
        _DEFAULT_SETTINGS_CACHE = None


def load_raw_yaml(config_path: Union[str, Path]) -> Mapping[str, Any]:
    """Read a YAML settings file and return its top-level mapping."""

    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserConfigError(f"Settings file '{path}' contains invalid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise UserConfigError("Settings file must contain a mapping at the root")
    return data


def load_settings(config_path: Optional[Union[str, Path]] = None) -> DecoderSettings:
    """Load settings from ``config_path`` (if given) and apply environment overrides."""

    if config_path is None:
        return DecoderSettings.from_defaults()
    raw = load_raw_yaml(config_path)
    try:
        settings = DecoderSettings.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise UserConfigError(f"Settings file '{config_path}' is invalid: {exc}") from exc
    _apply_env_overrides(settings)
    return settings
