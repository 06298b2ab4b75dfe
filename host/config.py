"""Configuration management for the extension host.

Loads configuration from:
1. config.toml (defaults)
2. Environment variables (overrides)
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LINK_STRATEGIES = ("auto", "link", "copy")


@dataclass
class HostConfig:
    """Host application configuration."""

    base_dir: str = "."  # Host application root


@dataclass
class ExtensionsConfig:
    """Extension engine configuration."""

    # Directory holding extension packages (default: <base_dir>/extensions)
    extensions_dir: str = ""

    # "auto" probes for symlink support, "link" forces symlinks,
    # "copy" uses tracked copies
    link_strategy: str = "auto"

    # importlib.metadata group scanned for controller factories
    entry_point_group: str = "panelext.controllers"


@dataclass
class StorageConfig:
    """Ledger and database locations."""

    ledger_file: str = ""  # default: <base_dir>/storage/extensions.json
    database: str = ""  # default: <base_dir>/storage/database.sqlite


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""

    host: HostConfig = field(default_factory=HostConfig)
    extensions: ExtensionsConfig = field(default_factory=ExtensionsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        extensions = ExtensionsConfig(**data.get("extensions", {}))
        if extensions.link_strategy not in LINK_STRATEGIES:
            raise ValueError(
                f"Invalid link_strategy: {extensions.link_strategy}. "
                f"Use one of: {', '.join(LINK_STRATEGIES)}"
            )

        return cls(
            host=HostConfig(**data.get("host", {})),
            extensions=extensions,
            storage=StorageConfig(**data.get("storage", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )


def find_config_file() -> Path | None:
    """Find config.toml in current or parent directories.

    Returns:
        Path to config.toml or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / "config.toml"
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to config.toml

    Returns:
        Config object with merged settings.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    env_overrides = {
        "host": {
            "base_dir": os.getenv("PANEL_BASE_DIR"),
        },
        "extensions": {
            "extensions_dir": os.getenv("EXTENSIONS_DIR"),
            "link_strategy": os.getenv("EXTENSIONS_LINK_STRATEGY"),
        },
        "storage": {
            "ledger_file": os.getenv("EXTENSIONS_LEDGER"),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Path | str | None = None) -> Config:
    """Force reload of configuration.

    Returns:
        Fresh Config object.
    """
    global _config
    _config = load_config(config_path)
    return _config
