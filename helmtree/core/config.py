"""Typed configuration loading and access.

This module provides dataclasses for the config.toml structure with
validation, plus the defaults used when no file is present.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_int, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "ResolveConfig",
    "ToolsConfig",
    "load_config",
    "load_config_or_default",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_FETCH_TIMEOUT",
    "DEFAULT_COMMAND_TIMEOUT",
]

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

# Nested chart expansion stops below this depth unless unlimited is requested
DEFAULT_MAX_DEPTH = 10

# Seconds allowed for one `helm pull` attempt
DEFAULT_FETCH_TIMEOUT = 60.0

# Seconds allowed for cluster reads (helm list/history, kubectl get secret)
DEFAULT_COMMAND_TIMEOUT = 30.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ResolveConfig:
    """Dependency resolution settings.

    Attributes:
        recursive: Pull dependency charts and expand their own dependencies.
        max_depth: Deepest dependency level that is expanded (direct
            dependencies are level 1). None means unlimited.
        fetch_timeout: Seconds per chart pull attempt.
    """

    recursive: bool = False
    max_depth: int | None = DEFAULT_MAX_DEPTH
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT


@dataclass(frozen=True, slots=True)
class ToolsConfig:
    """External binaries and their timeout."""

    helm: str = "helm"
    kubectl: str = "kubectl"
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    resolve: ResolveConfig = field(default_factory=ResolveConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On out-of-range values.
        """
        resolve: StrDict = get_table(data, "resolve") or {}
        tools: StrDict = get_table(data, "tools") or {}

        max_depth: int | None = get_int(resolve, "max_depth")
        if max_depth is None:
            max_depth = DEFAULT_MAX_DEPTH
        if max_depth < 0:
            raise ValueError(f"resolve.max_depth must be >= 0, got {max_depth}")
        if get_bool(resolve, "unlimited"):
            max_depth = None

        fetch_timeout = get_float(resolve, "fetch_timeout") or DEFAULT_FETCH_TIMEOUT
        command_timeout = get_float(tools, "command_timeout") or DEFAULT_COMMAND_TIMEOUT
        if fetch_timeout <= 0 or command_timeout <= 0:
            raise ValueError("timeouts must be positive")

        return cls(
            resolve=ResolveConfig(
                recursive=bool(get_bool(resolve, "recursive")),
                max_depth=max_depth,
                fetch_timeout=fetch_timeout,
            ),
            tools=ToolsConfig(
                helm=get_str(tools, "helm") or "helm",
                kubectl=get_str(tools, "kubectl") or "kubectl",
                command_timeout=command_timeout,
            ),
        )

    def with_overrides(
        self,
        *,
        recursive: bool | None = None,
        max_depth: int | None = None,
        unlimited: bool = False,
        fetch_timeout: float | None = None,
    ) -> Config:
        """Return a copy with CLI-provided values applied (None = keep)."""
        resolve = self.resolve
        if recursive is not None:
            resolve = replace(resolve, recursive=recursive)
        if max_depth is not None:
            resolve = replace(resolve, max_depth=max_depth)
        if unlimited:
            resolve = replace(resolve, max_depth=None)
        if fetch_timeout is not None:
            resolve = replace(resolve, fetch_timeout=fetch_timeout)
        return replace(self, resolve=resolve)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from an optional file.

    A missing file yields the defaults; an existing but broken file is
    still reported.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
