"""Platform-aware path utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

__all__ = [
    "home",
    "user_config_dir",
    "default_config_path",
]

# Application name used for directory naming
APP_NAME = "helmtree"


@lru_cache(maxsize=1)
def home() -> Path:
    """Get user's home directory.

    Checks HOME/USERPROFILE first for CI/container scenarios.
    """
    env_key = "USERPROFILE" if os.name == "nt" else "HOME"
    home_env = os.environ.get(env_key)
    if home_env:
        return Path(home_env)
    return Path.home()


@lru_cache(maxsize=1)
def user_config_dir() -> Path:
    """Get the user-level configuration directory.

    Location: $XDG_CONFIG_HOME/helmtree or ~/.config/helmtree (Linux/macOS),
    %APPDATA%/helmtree (Windows).
    """
    if os.name == "nt":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return home() / "AppData" / "Roaming" / APP_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return home() / ".config" / APP_NAME


def default_config_path() -> Path:
    return user_config_dir() / "config.toml"


def clear_caches() -> None:
    """Clear all cached paths.

    Useful for testing when environment variables change.
    """
    home.cache_clear()
    user_config_dir.cache_clear()
