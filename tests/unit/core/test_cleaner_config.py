"""Unit tests for cleaner configuration."""

import tomllib
from pathlib import Path

import pytest
from hvclean.core.config import (
    CleanerConfig,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    config_to_dict,
    load_config,
    load_config_or_default,
    save_config,
)
from hvclean.core.paths import get_config_path
from pydantic import ValidationError


class TestCleanerConfig:
    """Tests for the CleanerConfig model."""

    def test_defaults(self) -> None:
        """Defaults are safe: dry run, no ISOs, nothing configured."""
        config = CleanerConfig()

        assert config.dry_run is True
        assert config.include_isos is False
        assert config.primary_config_path is None
        assert config.disk_scan_paths == []

    def test_blank_values_cleared(self) -> None:
        """Blank paths are treated as unset."""
        config = CleanerConfig(primary_config_path="  ", disk_scan_paths=["D:\\VMs", ""])

        assert config.primary_config_path is None
        assert config.disk_scan_paths == ["D:\\VMs"]

    def test_unknown_key_rejected(self) -> None:
        """Unknown keys are an error."""
        with pytest.raises(ValidationError):
            CleanerConfig(scan_paths=["D:\\"])  # type: ignore[call-arg]


class TestLoadConfig:
    """Tests for load_config and load_config_or_default."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "config.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises ConfigParseError."""
        path = tmp_path / "config.toml"
        path.write_text("dry_run = [")

        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """Wrong types raise ConfigError."""
        path = tmp_path / "config.toml"
        path.write_text('disk_scan_paths = "D:\\\\VMs"\n')

        with pytest.raises(ConfigError, match="Invalid config content"):
            load_config(path)

    def test_loads_values(self, tmp_path: Path) -> None:
        """Values from the file are loaded."""
        path = tmp_path / "config.toml"
        path.write_text(
            "primary_config_path = 'D:\\Hyper-V\\Virtual Machines'\n"
            "disk_scan_paths = ['D:\\VMs', 'E:\\VMs']\n"
            "include_isos = true\n"
            "dry_run = false\n"
        )

        config = load_config(path)

        assert config.primary_config_path == "D:\\Hyper-V\\Virtual Machines"
        assert config.disk_scan_paths == ["D:\\VMs", "E:\\VMs"]
        assert config.include_isos is True
        assert config.dry_run is False

    def test_default_when_missing(self) -> None:
        """Without a config file the defaults are used."""
        assert load_config_or_default() == CleanerConfig()

    def test_default_when_broken(self, caplog: pytest.LogCaptureFixture) -> None:
        """A broken file is ignored with a warning."""
        path = get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("not = valid = toml")

        config = load_config_or_default()

        assert config == CleanerConfig()
        assert "Ignoring configuration file" in caplog.text


class TestSaveConfig:
    """Tests for save_config and config_to_dict."""

    def test_save_and_reload(self) -> None:
        """A saved config loads back unchanged."""
        config = CleanerConfig(
            primary_config_path="C:\\Hyper-V\\Virtual Machines",
            disk_scan_paths=["D:\\VMs"],
            include_isos=True,
        )

        path = save_config(config)

        assert path == get_config_path()
        assert load_config() == config

    def test_unset_paths_omitted(self, tmp_path: Path) -> None:
        """TOML has no null, so unset paths are left out."""
        path = save_config(CleanerConfig(), tmp_path / "config.toml")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        assert "primary_config_path" not in data
        assert data["dry_run"] is True
        assert config_to_dict(CleanerConfig()) == data

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        """The atomic write leaves no temporary files behind."""
        save_config(CleanerConfig(), tmp_path / "config.toml")

        assert [p.name for p in tmp_path.iterdir()] == ["config.toml"]
