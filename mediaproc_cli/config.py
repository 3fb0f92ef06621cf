"""
mediaproc Configuration Management.

Handles loading and saving configuration from:
- Default values
- Configuration file (TOML)
- Environment variables

The ``plugins.installed_plugins`` list is the ledger of plugins installed
by earlier runs. It is written only after an install completes.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w

from mediaproc_cli.cli.error_handler import ConfigurationError

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "mediaproc"
DEFAULT_CONFIG_FILE = "config.toml"

INSTALL_SCOPES = ("auto", "global", "local")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PluginConfig:
    """Configuration for plugin provisioning."""

    # Ledger of plugins installed by previous runs
    installed_plugins: list[str] = field(default_factory=list)

    # Package manager to try first (uv, pip); auto-detect if None
    package_manager: Optional[str] = None

    # auto, global or local
    install_scope: str = "auto"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "WARNING"
    file: Optional[Path] = None


@dataclass
class MediaprocConfig:
    """Main configuration container for mediaproc."""

    config_dir: Path = DEFAULT_CONFIG_DIR

    plugins: PluginConfig = field(default_factory=PluginConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        """Path of the config file inside config_dir."""
        return self.config_dir / DEFAULT_CONFIG_FILE


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "MEDIAPROC_",
) -> MediaprocConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/mediaproc/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the config file exists but cannot be parsed
    """
    config = MediaprocConfig()

    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config_path = Path(env_config_dir) / DEFAULT_CONFIG_FILE
        else:
            config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    config.config_dir = config_path.parent

    if config_path.exists():
        config = _load_from_file(config_path, config)

    return _load_from_env(config, env_prefix)


def _load_from_file(path: Path, config: MediaprocConfig) -> MediaprocConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load config from {path}: {e}",
            hint=f"fix or delete {path}",
        ) from e

    plugins = _table(data, "plugins", path)
    installed = plugins.get("installed_plugins", [])
    if not isinstance(installed, list) or not all(isinstance(p, str) for p in installed):
        raise ConfigurationError(
            f"plugins.installed_plugins in {path} must be a list of package names",
            hint=f"fix or delete {path}",
        )
    config.plugins.installed_plugins = list(installed)
    if "package_manager" in plugins:
        config.plugins.package_manager = _string(plugins, "plugins", "package_manager", path).lower()
    if "install_scope" in plugins:
        config.plugins.install_scope = _string(plugins, "plugins", "install_scope", path).lower()

    logging_section = _table(data, "logging", path)
    if "level" in logging_section:
        config.logging.level = _string(logging_section, "logging", "level", path).upper()
    if logging_section.get("file"):
        config.logging.file = Path(_string(logging_section, "logging", "file", path))

    return config


def _table(data: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{name}] in {path} must be a table", hint=f"fix or delete {path}")
    return section


def _string(section: dict[str, Any], table: str, key: str, path: Path) -> str:
    value = section[key]
    if not isinstance(value, str):
        raise ConfigurationError(
            f"{table}.{key} in {path} must be a string, got {value!r}",
            hint=f"fix or delete {path}",
        )
    return value


def _load_from_env(config: MediaprocConfig, prefix: str) -> MediaprocConfig:
    """Load configuration from environment variables."""
    if env_val := os.environ.get(f"{prefix}PACKAGE_MANAGER"):
        config.plugins.package_manager = env_val.lower()
    if env_val := os.environ.get(f"{prefix}INSTALL_SCOPE"):
        config.plugins.install_scope = env_val.lower()

    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()
    if env_val := os.environ.get(f"{prefix}LOG_FILE"):
        config.logging.file = Path(env_val)

    return config


def _config_to_dict(config: MediaprocConfig) -> dict[str, Any]:
    """Convert configuration to a TOML-serializable dictionary."""
    plugins: dict[str, Any] = {
        "installed_plugins": list(config.plugins.installed_plugins),
        "install_scope": config.plugins.install_scope,
    }
    if config.plugins.package_manager:
        plugins["package_manager"] = config.plugins.package_manager

    logging_section: dict[str, Any] = {"level": config.logging.level}
    if config.logging.file:
        logging_section["file"] = str(config.logging.file)

    return {"plugins": plugins, "logging": logging_section}


def save_config(config: MediaprocConfig, path: Optional[Path] = None) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)
    """
    if path is None:
        path = config.config_path

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        tomli_w.dump(_config_to_dict(config), f)


def validate_config(config: MediaprocConfig) -> list[str]:
    """Return a list of problems with the configuration (empty if valid)."""
    errors: list[str] = []

    if config.plugins.install_scope not in INSTALL_SCOPES:
        errors.append(
            f"plugins.install_scope must be one of {', '.join(INSTALL_SCOPES)}, "
            f"got {config.plugins.install_scope!r}"
        )
    if config.plugins.package_manager and config.plugins.package_manager not in ("uv", "pip"):
        errors.append(f"plugins.package_manager is not supported: {config.plugins.package_manager}")
    if config.logging.level.upper() not in LOG_LEVELS:
        errors.append(f"logging.level is not a valid level: {config.logging.level}")

    return errors


def _write_ledger(config: MediaprocConfig) -> None:
    """Rewrite ``plugins.installed_plugins`` in the config file.

    The file is re-read so other keys stay as the user wrote them and
    environment overrides are never persisted.

    Raises:
        ConfigurationError: If the existing file cannot be parsed
        OSError: If the file cannot be written
    """
    path = config.config_path
    data: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Failed to load config from {path}: {e}",
                hint=f"fix or delete {path}",
            ) from e

    plugins = _table(data, "plugins", path)
    plugins["installed_plugins"] = list(config.plugins.installed_plugins)
    data["plugins"] = plugins

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def record_installed(config: MediaprocConfig, package_id: str, persist: bool = True) -> bool:
    """Add a plugin to the installed ledger.

    Returns:
        True if the ledger changed
    """
    if package_id in config.plugins.installed_plugins:
        return False
    config.plugins.installed_plugins.append(package_id)
    if persist:
        _write_ledger(config)
    return True


def forget_installed(config: MediaprocConfig, package_id: str, persist: bool = True) -> bool:
    """Remove a plugin from the installed ledger.

    Returns:
        True if the ledger changed
    """
    if package_id not in config.plugins.installed_plugins:
        return False
    config.plugins.installed_plugins.remove(package_id)
    if persist:
        _write_ledger(config)
    return True


# Global configuration instance (lazy-loaded)
_global_config: Optional[MediaprocConfig] = None


def get_config() -> MediaprocConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: MediaprocConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def clear_config_cache() -> None:
    """Clear the global configuration cache."""
    global _global_config
    _global_config = None
