"""Configuration management for the session watcher service.

Loads configuration from environment variables, optionally overridden by the
TOML config file, with validation and defaults.
"""

import json
import logging
import os
import sys
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "smtc2web"
CONFIG_FILE_NAME = "config.toml"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_PROBES = ("auto", "windows", "null")

# TOML keys read from the config file and the type each must have
FILE_KEY_TYPES = {
    "server_port": int,
    "address": str,
    "theme_path": str,
    "log_level": str,
}


def default_config_path() -> Path:
    """Per-user config file location, e.g. %APPDATA%/smtc2web/config.toml."""
    if sys.platform == "win32" and os.getenv("APPDATA"):
        base = Path(os.environ["APPDATA"])
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_DIR_NAME / CONFIG_FILE_NAME


@dataclass
class Config:
    """Configuration for the session watcher service."""

    # Listener
    listen_address: str = "127.0.0.1"
    listen_port: int = 3030

    # Static assets (None = bundled viewer only)
    asset_root: Optional[Path] = None

    # Media session provider
    probe: str = "auto"

    # Service settings
    log_level: str = "INFO"
    log_path: Optional[Path] = None
    environment: str = "production"
    debug: bool = False

    # Config file and live reload
    config_file: Optional[Path] = None
    config_refresh_interval: float = 2.0

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration instance with values from environment.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.
        """
        asset_root = os.getenv("ASSET_ROOT", "")
        log_path = os.getenv("LOG_PATH", "")
        config_file = os.getenv("CONFIG_FILE", "")

        try:
            return cls(
                # Listener
                listen_address=os.getenv("LISTEN_ADDRESS", "127.0.0.1"),
                listen_port=int(os.getenv("LISTEN_PORT", "3030")),
                # Assets
                asset_root=Path(asset_root) if asset_root else None,
                # Provider
                probe=os.getenv("PROBE", "auto").lower(),
                # Service
                log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
                log_path=Path(log_path) if log_path else None,
                environment=os.getenv("ENVIRONMENT", "production"),
                debug=os.getenv("DEBUG", "false").lower() == "true",
                # Config file
                config_file=Path(config_file) if config_file else default_config_path(),
                config_refresh_interval=float(os.getenv("CONFIG_REFRESH_INTERVAL", "2.0")),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

    @classmethod
    def from_file(cls, path: Path, base: Optional["Config"] = None) -> "Config":
        """Layer the TOML config file over a base configuration.

        Recognized keys: server_port, address, theme_path, log_level. Other
        keys are ignored.

        Args:
            path: Path to the TOML file.
            base: Configuration to override; defaults are used when None.

        Raises:
            ConfigError: If the file cannot be read or parsed, or a known key
                holds a value of the wrong type.
        """
        base = base or cls()

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e

        for key, expected in FILE_KEY_TYPES.items():
            if key in data and not isinstance(data[key], expected):
                raise ConfigError(
                    f"Invalid value for '{key}' in {path}: expected {expected.__name__}, "
                    f"got {type(data[key]).__name__}"
                )
        # bool is an int subclass
        if isinstance(data.get("server_port"), bool):
            raise ConfigError(f"Invalid value for 'server_port' in {path}: expected int, got bool")

        overrides = {"config_file": Path(path)}

        if "server_port" in data:
            overrides["listen_port"] = data["server_port"]
        if "address" in data:
            overrides["listen_address"] = data["address"]
        if "theme_path" in data:
            theme_path = data["theme_path"]
            overrides["asset_root"] = Path(theme_path) if theme_path else None
        if "log_level" in data:
            overrides["log_level"] = data["log_level"].upper()

        return replace(base, **overrides)

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Config":
        """Environment first, then the config file when it exists."""
        config = cls.from_env()
        if config_file:
            config = replace(config, config_file=Path(config_file))
        path = config.config_file

        if path and path.exists():
            config = cls.from_file(path, base=config)
            logger.info(f"Configuration loaded from {path}")
        else:
            logger.info("No config file found, using environment configuration")

        return config

    @property
    def base_url(self) -> str:
        return f"http://{self.listen_address}:{self.listen_port}"

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If configuration values are invalid.
        """
        if not isinstance(self.listen_port, int) or not 1 <= self.listen_port <= 65535:
            raise ConfigError(f"Listen port must be between 1 and 65535, got {self.listen_port!r}")

        if not self.listen_address or not str(self.listen_address).strip():
            raise ConfigError("Listen address must not be empty")

        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level '{self.log_level}'. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

        if self.probe not in VALID_PROBES:
            raise ConfigError(
                f"Invalid probe '{self.probe}'. Must be one of: {', '.join(VALID_PROBES)}"
            )

        if self.asset_root is not None and not self.asset_root.is_dir():
            raise ConfigError(f"Asset root is not a directory: {self.asset_root}")

        if self.config_refresh_interval <= 0:
            raise ConfigError("Config refresh interval must be positive")


def write_default_config(config: Config) -> bool:
    """Create the per-user config file on first run.

    Only the default location is created; an explicit CONFIG_FILE or --config
    path that does not exist is left alone.

    Args:
        config: Effective configuration whose values seed the file.

    Returns:
        bool: True if a file was written.
    """
    path = config.config_file
    if path is None or path != default_config_path() or path.exists():
        return False

    theme_path = config.asset_root.as_posix() if config.asset_root else ""
    # json.dumps yields valid TOML basic strings
    content = (
        f"server_port = {config.listen_port}\n"
        f"address = {json.dumps(config.listen_address)}\n"
        f"theme_path = {json.dumps(theme_path)}\n"
        f"log_level = {json.dumps(config.log_level)}\n"
    )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to save default config to {path}: {e}")
        return False

    logger.info(f"Default configuration written to {path}")
    return True
