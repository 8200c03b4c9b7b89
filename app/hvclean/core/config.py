"""Cleaner configuration and settings.

This module provides the configuration model and I/O functions for
hvclean. Every value here can be overridden on the command line; values
missing from both are collected interactively.

Configuration is stored in ~/.config/hvclean/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hvclean.core.paths import get_config_path

logger = logging.getLogger(__name__)


class CleanerConfig(BaseModel):
    """Configuration for an orphan scan.

    Attributes:
        primary_config_path: Directory holding VM configuration files.
        snapshot_config_path: Directory holding snapshot configuration files.
        disk_scan_paths: Directories scanned for virtual disks and ISOs.
        include_isos: Also scan for .iso files.
        dry_run: List orphans without offering to delete them.
    """

    model_config = ConfigDict(extra="forbid")

    primary_config_path: Annotated[
        str | None,
        Field(description="Directory scanned for VM configuration files"),
    ] = None
    snapshot_config_path: Annotated[
        str | None,
        Field(description="Directory scanned for snapshot configuration files"),
    ] = None
    disk_scan_paths: Annotated[
        list[str],
        Field(default_factory=list, description="Directories scanned for disk and ISO files"),
    ]
    include_isos: Annotated[
        bool,
        Field(description="Add .iso to the scanned extensions"),
    ] = False
    dry_run: Annotated[
        bool,
        Field(description="Only list orphans, never delete"),
    ] = True

    @field_validator("primary_config_path", "snapshot_config_path", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        """Treat empty path strings as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("disk_scan_paths")
    @classmethod
    def _strip_blank_paths(cls, v: list[str]) -> list[str]:
        """Drop empty entries from the disk scan list."""
        return [p for p in v if p.strip()]


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> CleanerConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated CleanerConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return CleanerConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> CleanerConfig:
    """Load configuration, falling back to defaults.

    A missing file is normal and silent. A broken file is logged and
    ignored so that a scan can still run with command-line values.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Loaded CleanerConfig, or a default one.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return CleanerConfig()
    except ConfigError as e:
        logger.warning("Ignoring configuration file: %s", e)
        return CleanerConfig()


def save_config(config: CleanerConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The CleanerConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: CleanerConfig) -> dict[str, object]:
    """Convert CleanerConfig to a dictionary for TOML serialization.

    TOML has no null, so unset paths are left out.

    Args:
        config: The CleanerConfig to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {}

    if config.primary_config_path is not None:
        result["primary_config_path"] = config.primary_config_path

    if config.snapshot_config_path is not None:
        result["snapshot_config_path"] = config.snapshot_config_path

    result["disk_scan_paths"] = list(config.disk_scan_paths)
    result["include_isos"] = config.include_isos
    result["dry_run"] = config.dry_run

    return result
