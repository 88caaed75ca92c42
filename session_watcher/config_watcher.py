"""Hot-reloadable configuration cell.

Watches the TOML config file and swaps in a new Config when it changes.
"""

import asyncio
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from .config import Config
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

# Keys that only take effect after the listener is restarted
RESTART_KEYS = {"listen_address", "listen_port"}

ChangeCallback = Callable[[Config, List[str]], Awaitable[None]]


class ConfigWatcher:
    """Loads configuration and reloads it when the config file changes."""

    def __init__(self, config_file: Optional[Path] = None, refresh_interval: Optional[float] = None):
        """Initialize config watcher.

        Args:
            config_file: Explicit config file path; defaults to the one in the environment config.
            refresh_interval: How often to check the file (seconds); defaults to the config value.
        """
        self.config_file = Path(config_file) if config_file else None
        self.refresh_interval = refresh_interval
        self.current_config: Optional[Config] = None
        self._last_mtime: Optional[float] = None

    def load(self) -> Config:
        """Load and validate configuration.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        config = Config.load(self.config_file)
        config.validate()

        self.config_file = config.config_file
        if self.refresh_interval is None:
            self.refresh_interval = config.config_refresh_interval
        self._last_mtime = self._file_mtime()
        self.current_config = config
        return config

    def current(self) -> Config:
        """Get the active configuration, loading it on first use."""
        if self.current_config is None:
            return self.load()
        return self.current_config

    def _file_mtime(self) -> Optional[float]:
        if not self.config_file:
            return None
        try:
            return self.config_file.stat().st_mtime
        except OSError:
            return None

    def check_for_changes(self) -> List[str]:
        """Reload if the config file changed since the last load.

        Returns:
            List[str]: Names of changed settings, empty if nothing changed or
            the new file is invalid.
        """
        mtime = self._file_mtime()
        if mtime == self._last_mtime:
            return []
        self._last_mtime = mtime

        old_config_dict = asdict(self.current_config) if self.current_config else {}

        try:
            new_config = Config.load(self.config_file)
            new_config.validate()
        except ConfigError as e:
            logger.error(f"Failed to reload config, keeping previous settings: {e}")
            return []

        changed_keys = [
            key for key, value in asdict(new_config).items() if old_config_dict.get(key) != value
        ]
        self.current_config = new_config

        if changed_keys:
            logger.info(f"Configuration changed: {', '.join(changed_keys)}")
        return changed_keys

    async def start_auto_refresh(self, callback: Optional[ChangeCallback] = None) -> None:
        """Start automatic configuration refresh loop.

        Args:
            callback: Optional coroutine function called with (new_config, changed_keys).
        """
        interval = self.refresh_interval or self.current().config_refresh_interval
        logger.info(f"Starting config auto-refresh for {self.config_file} (interval: {interval}s)")

        while True:
            try:
                changed_keys = self.check_for_changes()
                if changed_keys and callback:
                    await callback(self.current_config, changed_keys)

                await asyncio.sleep(interval)

            except asyncio.CancelledError:
                logger.info("Config auto-refresh cancelled")
                break
            except Exception as e:
                logger.error(f"Error in config auto-refresh: {e}", exc_info=True)
                await asyncio.sleep(interval)
