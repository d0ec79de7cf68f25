"""Typed configuration loading.

An optional `.ripple.toml` in the working directory overrides the branch
layout, the manifest location and the per-command timeout:

    manifest = "package.json"
    command_timeout = 300

    [branches]
    trunk = "master"
    develop = "develop"
    release_prefix = "release-"
    hotfix_prefix = "hotfix-"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_MANIFEST",
    "BranchesConfig",
    "Config",
    "ConfigError",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = ".ripple.toml"
DEFAULT_MANIFEST = "package.json"
DEFAULT_COMMAND_TIMEOUT = 300.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BranchesConfig:
    """Names of the long-lived branches and prefixes of short-lived ones."""

    trunk: str = "master"
    develop: str = "develop"
    release_prefix: str = "release-"
    hotfix_prefix: str = "hotfix-"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    manifest: str = DEFAULT_MANIFEST
    command_timeout: float | None = DEFAULT_COMMAND_TIMEOUT
    branches: BranchesConfig = field(default_factory=BranchesConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        branches: StrDict = get_table(data, "branches") or {}
        defaults = BranchesConfig()

        timeout = get_float(data, "command_timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("command_timeout must be positive")

        return cls(
            manifest=get_str(data, "manifest") or DEFAULT_MANIFEST,
            command_timeout=timeout if timeout is not None else DEFAULT_COMMAND_TIMEOUT,
            branches=BranchesConfig(
                trunk=get_str(branches, "trunk") or defaults.trunk,
                develop=get_str(branches, "develop") or defaults.develop,
                release_prefix=get_str(branches, "release_prefix") or defaults.release_prefix,
                hotfix_prefix=get_str(branches, "hotfix_prefix") or defaults.hotfix_prefix,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to the .ripple.toml file

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


def load_config_or_default(directory: Path) -> Result[Config, ConfigError]:
    """Load `.ripple.toml` from directory, or defaults if there is none.

    A present but broken file is still an error.
    """
    path = directory / CONFIG_FILENAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
