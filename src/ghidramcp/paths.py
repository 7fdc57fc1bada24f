"""Platform-aware path helpers for ghidramcp storage and environments."""

from __future__ import annotations

import os
import platform
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from platformdirs import user_cache_dir, user_config_dir, user_data_dir

from ghidramcp.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

APP_NAME = "ghidramcp"


class PlatformKey(StrEnum):
    """Keys accepted in per-platform configuration tables."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    DEFAULT = "default"


type PlatformValue = str | Mapping[str, object] | None

_OS_MAP = {"Linux": PlatformKey.LINUX, "Darwin": PlatformKey.MACOS, "Windows": PlatformKey.WINDOWS}
CURRENT_PLATFORM: PlatformKey = _OS_MAP.get(platform.system(), PlatformKey.LINUX)

# Tried in this order when neither the current platform nor "default" is set.
_FALLBACK_ORDER = (PlatformKey.WINDOWS, PlatformKey.MACOS, PlatformKey.LINUX)


def _usable(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def resolve_platform_value(
    value: PlatformValue,
    current: str = CURRENT_PLATFORM,
    *,
    setting: str = "path",
) -> str | None:
    """Resolve a configured value that may vary per platform.

    Args:
        value: A plain string, a mapping of platform key to string, or None.
        current: The platform key to prefer.
        setting: Setting name used in error messages.

    Returns:
        The resolved string, or None when the value is absent.

    Raises:
        ConfigurationError: If a mapping is given but holds no usable string.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value

    for key in (current, PlatformKey.DEFAULT, *_FALLBACK_ORDER):
        resolved = _usable(value.get(str(key)))
        if resolved is not None:
            return resolved

    msg = f"Setting '{setting}' has no usable value for platform '{current}'"
    raise ConfigurationError(msg)


def venv_python_path(env_root: Path, current: str = CURRENT_PLATFORM) -> Path:
    """Return the interpreter executable inside a virtual environment."""
    if current == PlatformKey.WINDOWS:
        return env_root / "Scripts" / "python.exe"
    return env_root / "bin" / "python3"


def venv_pip_path(env_root: Path, current: str = CURRENT_PLATFORM) -> Path:
    """Return the package installer executable inside a virtual environment."""
    if current == PlatformKey.WINDOWS:
        return env_root / "Scripts" / "pip.exe"
    return env_root / "bin" / "pip"


def get_data_dir() -> Path:
    """Get the private storage directory (fallback environment lives here)."""
    override = os.environ.get("GHIDRAMCP_DATA_DIR")
    if override:
        return Path(override)
    return Path(user_data_dir(APP_NAME))


def get_config_dir() -> Path:
    """Get the config directory (config.toml)."""
    override = os.environ.get("GHIDRAMCP_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(user_config_dir(APP_NAME))


def get_cache_dir() -> Path:
    override = os.environ.get("GHIDRAMCP_CACHE_DIR")
    if override:
        return Path(override)
    return Path(user_cache_dir(APP_NAME))


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.toml"


def get_default_venv_dir() -> Path:
    """Get the default root of the fallback virtual environment."""
    return get_data_dir() / "venv"

