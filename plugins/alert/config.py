"""
plugins/alert/config.py

Configuration for the alert plugin.

Provides:
- ConfigStore: YAML (or in-memory) backing store with typed accessors
- AlertSettings: immutable snapshot of the display parameters
- AlertConfig: reload-replaceable holder of the current snapshot
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the backing configuration store cannot be read."""


# =============================================================================
# Backing Store
# =============================================================================

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


class ConfigStore:
    """
    Key/value store backed by a YAML file or a plain dict.

    Keys use dot notation. A key is looked up as a flat key first
    ("event.title.seconds": 10) and then as a nested path
    ({"event": {"title": {"seconds": 10}}}), so both styles of config
    file work.

    Args:
        path: Optional YAML file to (re)load from.
        data: Initial data, used as-is when no path is given.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        data: Optional[Dict[str, Any]] = None
    ):
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = dict(data or {})

    def load(self) -> None:
        """
        Re-read the backing file.

        Does nothing for dict-backed stores.

        Raises:
            ConfigError: If the file is missing, unreadable or not a mapping.
        """
        if self.path is None:
            return

        try:
            with open(self.path, "r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.path} must contain a mapping at top level")

        self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw value by dot-notation key."""
        if key in self._data:
            return self._data[key]

        value: Any = self._data
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            return False
        if isinstance(value, int):
            return value != 0

        logger.warning(f"Config {key}={value!r} is not a boolean, using {default}")
        return default

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            logger.warning(f"Config {key}={value!r} is not an integer, using {default}")
            return default

        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Config {key}={value!r} is not an integer, using {default}")
            return default

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get(key)
        if value is None or isinstance(value, (dict, list)):
            return default
        return str(value)


# =============================================================================
# Alert Settings
# =============================================================================

@dataclass(frozen=True)
class AlertSettings:
    """
    One fully-loaded set of display parameters.

    Attributes:
        broadcast_show: Whether event broadcasts are sent to chat.
        title_show: Whether the title countdown is shown.
        title_seconds: At or below this many seconds, every second is shown.
        fade_in_ticks: Title fade-in time in ticks.
        display_ticks: Title hold time in ticks.
        fade_out_ticks: Title fade-out time in ticks.
        early_ms: Milliseconds added to the elapsed time so each second
                  is shown slightly before it is due.
    """

    broadcast_show: bool = True
    title_show: bool = True
    title_seconds: int = 10
    fade_in_ticks: int = 10
    display_ticks: int = 70
    fade_out_ticks: int = 20
    early_ms: int = 0

    @classmethod
    def from_store(cls, store: ConfigStore) -> "AlertSettings":
        defaults = cls()
        return cls(
            broadcast_show=store.get_bool("event.broadcast.show", defaults.broadcast_show),
            title_show=store.get_bool("event.title.show", defaults.title_show),
            title_seconds=store.get_int("event.title.seconds", defaults.title_seconds),
            fade_in_ticks=store.get_int("event.title.fade_in_ticks", defaults.fade_in_ticks),
            display_ticks=store.get_int("event.title.display_ticks", defaults.display_ticks),
            fade_out_ticks=store.get_int("event.title.fade_out_ticks", defaults.fade_out_ticks),
            early_ms=store.get_int("event.title.early_ms", defaults.early_ms),
        )


class AlertConfig:
    """
    Access to the plugin configuration.

    Settings are read from a single AlertSettings snapshot that reload()
    swaps out wholesale, so readers never see a half-updated set of values.

    Example:
        config = AlertConfig(ConfigStore("alert.yaml"))
        config.reload()
        if config.title_show:
            ...
    """

    def __init__(self, store: ConfigStore):
        self.store = store
        self._settings = AlertSettings()

    @property
    def settings(self) -> AlertSettings:
        """The current snapshot."""
        return self._settings

    def reload(self) -> AlertSettings:
        """
        Reload the configuration from the backing store.

        Returns:
            The new snapshot.

        Raises:
            ConfigError: If the backing store cannot be read. The previous
                         snapshot stays in effect.
        """
        self.store.load()
        self._settings = AlertSettings.from_store(self.store)
        logger.debug(f"Configuration reloaded: {self._settings}")
        return self._settings

    def message(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a message template string."""
        return self.store.get_string(key, default)

    # Attribute-style access to the current snapshot

    @property
    def broadcast_show(self) -> bool:
        return self._settings.broadcast_show

    @property
    def title_show(self) -> bool:
        return self._settings.title_show

    @property
    def title_seconds(self) -> int:
        return self._settings.title_seconds

    @property
    def fade_in_ticks(self) -> int:
        return self._settings.fade_in_ticks

    @property
    def display_ticks(self) -> int:
        return self._settings.display_ticks

    @property
    def fade_out_ticks(self) -> int:
        return self._settings.fade_out_ticks

    @property
    def early_ms(self) -> int:
        return self._settings.early_ms
