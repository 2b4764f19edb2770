"""
Configuration management for bookmark stores.

The configuration is stored as a TOML file in the store directory.
It selects the storage backend and the cache security policy.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from .errors import ConfigurationError


CONFIG_FILENAME = "cryptmarks.toml"
CONFIG_VERSION = 1

DEFAULT_BACKEND = "encrypted"
DEFAULT_IDLE_SECONDS = 300

# Data file names used when the config doesn't name one
DEFAULT_FILENAMES = {
    "encrypted": "bookmarks.json.gpg",
    "plain": "bookmarks.json",
}


def get_config_dir() -> Path:
    """Store directory: $CRYPTMARKS_HOME or ~/.cryptmarks."""
    env = os.environ.get("CRYPTMARKS_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".cryptmarks"


@dataclass
class SecurityConfig:
    """When to drop decrypted bookmarks from memory."""
    clear_cache_on_idle: bool = True
    idle_seconds: int = DEFAULT_IDLE_SECONDS


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    backend: str = DEFAULT_BACKEND
    file: Optional[str] = None       # data file, relative to path unless absolute
    recipient: Optional[str] = None  # gpg identity; symmetric when None
    gpg: str = "gpg"
    security: SecurityConfig = field(default_factory=SecurityConfig)

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def data_path(self) -> Path:
        """Path to the persisted bookmarks file."""
        name = self.file or DEFAULT_FILENAMES.get(self.backend, "bookmarks.json")
        data = Path(name).expanduser()
        if data.is_absolute():
            return data
        return self.path / data

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{name}] must be a table, got {section!r}")
    return section


def _optional_str(section: dict[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(f"{key} must be a string, got {value!r}")
    return value


def _parse_security(section: dict[str, Any]) -> SecurityConfig:
    clear = section.get("clear_cache_on_idle", True)
    idle = section.get("idle_seconds", DEFAULT_IDLE_SECONDS)
    if not isinstance(clear, bool):
        raise ConfigurationError(f"clear_cache_on_idle must be a boolean, got {clear!r}")
    if not isinstance(idle, int) or isinstance(idle, bool) or idle <= 0:
        raise ConfigurationError(f"idle_seconds must be a positive integer, got {idle!r}")
    return SecurityConfig(clear_cache_on_idle=clear, idle_seconds=idle)


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ConfigurationError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config {config_path}: {e}") from e

    store = _section(data, "store")
    version = store.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        raise ConfigurationError(f"Config version must be an integer, got {version!r}")
    if version > CONFIG_VERSION:
        raise ConfigurationError(
            f"Config version {version} is newer than supported ({CONFIG_VERSION})"
        )

    return StoreConfig(
        path=store_path,
        version=version,
        backend=_optional_str(store, "backend") or "",
        file=_optional_str(store, "path"),
        recipient=_optional_str(store, "recipient") or None,
        gpg=_optional_str(store, "gpg") or "gpg",
        security=_parse_security(_section(data, "security")),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    # TOML has no null: optional keys are omitted
    store: dict[str, Any] = {
        "version": config.version,
        "backend": config.backend,
    }
    if config.file:
        store["path"] = config.file
    if config.recipient:
        store["recipient"] = config.recipient
    if config.gpg != "gpg":
        store["gpg"] = config.gpg

    data = {
        "store": store,
        "security": {
            "clear_cache_on_idle": config.security.clear_cache_on_idle,
            "idle_seconds": config.security.idle_seconds,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = StoreConfig(path=store_path)
        save_config(config)
        return config
