"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os

# Wide console so Rich does not wrap paths in CLI output
os.environ["COLUMNS"] = "300"

from pathlib import Path  # noqa: E402

import pytest  # noqa: E402

from tests.fakes import FakeHost  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory."""
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def fake_host() -> FakeHost:
    """Empty in-memory virtualization host."""
    return FakeHost()


@pytest.fixture
def hyperv_layout(tmp_path: Path) -> dict[str, Path]:
    """Directory layout resembling a Hyper-V host.

    Returns:
        Mapping with "config", "snapshots" and "disks" directories.
    """
    root = tmp_path / "hyperv"
    layout = {
        "config": root / "Virtual Machines",
        "snapshots": root / "Snapshots",
        "disks": root / "Disks",
    }
    for path in layout.values():
        path.mkdir(parents=True)
    return layout
