"""XDG-compliant path management for hvclean.

hvclean keeps no state between runs. The only files it reads from the
user's profile are its configuration file and an optional theme override,
both under the configuration directory:

- Config: ~/.config/hvclean/ (or XDG_CONFIG_HOME/hvclean/)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "hvclean"

# Stock Hyper-V locations, used as prompt defaults
DEFAULT_PRIMARY_CONFIG_PATH = r"C:\ProgramData\Microsoft\Windows\Hyper-V\Virtual Machines"
DEFAULT_SNAPSHOT_CONFIG_PATH = r"C:\ProgramData\Microsoft\Windows\Hyper-V\Snapshots"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/hvclean/ (or XDG_CONFIG_HOME/hvclean/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns:
        Path to ~/.config/hvclean/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_user_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/hvclean/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    path = get_config_dir()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create config directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create config directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
