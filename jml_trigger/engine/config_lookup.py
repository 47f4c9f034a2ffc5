"""
Configuration Lookup for the JML Trigger Engine.

Resolves nested business-process options such as
``businessProcesses -> joiner -> requireCorrelated`` from an in-memory
mapping or a YAML configuration file.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import yaml

from ..models import ConfigurationError

logger = logging.getLogger(__name__)

BUSINESS_PROCESSES = "businessProcesses"

REQUIRE_CORRELATED = "requireCorrelated"
AUTO_JOIN_NEW_EMPTY = "autoJoinNewEmpty"
REPROCESS_SKIPPED = "reprocessSkipped"
PROCESS_ENABLED = "enabled"
TRIGGER_FILTER = "triggerFilter"

ConfigPath = Union[str, Sequence[str]]


def business_process_path(process: str, option: str) -> List[str]:
    """Build the configuration path of an option for a business process."""
    return [BUSINESS_PROCESSES, process, option]


def split_path(path: ConfigPath) -> List[str]:
    """
    Normalize a configuration path into a list of keys.

    Args:
        path: Sequence of keys, or a comma-separated string of keys

    Returns:
        List of non-empty, stripped keys
    """
    if isinstance(path, str):
        parts = path.split(",")
    else:
        parts = list(path)
    return [str(part).strip() for part in parts if str(part).strip()]


def to_bool(value: Any) -> bool:
    """Coerce a stored configuration value to a boolean; only true/"true" count."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


class ConfigurationLookup(ABC):
    """
    Read-only access to hierarchical lifecycle configuration.

    Subclasses only supply the root document; navigation and coercion
    are shared. Missing keys never raise.
    """

    @abstractmethod
    def _document(self) -> Mapping[str, Any]:
        """Return the current root configuration mapping."""

    def get_value(self, path: ConfigPath) -> Any:
        """
        Return the raw value at the given path.

        Args:
            path: Keys to navigate through; the last one names the value

        Returns:
            The stored value, or None if any part of the path is missing
        """
        keys = split_path(path)
        if not keys:
            return None

        current: Any = self._document()
        for key in keys:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
            if current is None:
                return None
        return current

    def get_bool(self, path: ConfigPath) -> bool:
        """Return the boolean at the given path, False when unset."""
        return to_bool(self.get_value(path))

    def get_string(self, path: ConfigPath) -> str:
        """Return the string at the given path, "" when unset."""
        value = self.get_value(path)
        if value is None or isinstance(value, (Mapping, list)):
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def has_value(self, path: ConfigPath) -> bool:
        """Whether a non-null value is stored at the given path."""
        return self.get_value(path) is not None

    def get_process_option(self, process: str, option: str) -> bool:
        """Shortcut for a boolean option of a business process."""
        return self.get_bool(business_process_path(process, option))


class DictConfigurationLookup(ConfigurationLookup):
    """Configuration backed by an in-memory nested mapping."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self.data: Mapping[str, Any] = data if data is not None else {}

    def _document(self) -> Mapping[str, Any]:
        return self.data


class YamlConfigurationLookup(ConfigurationLookup):
    """
    Configuration backed by a YAML file.

    The file's modification time is checked on every read and the document
    is reloaded when it changed, so edits are picked up without a restart.
    """

    def __init__(self, config_file: Union[str, Path]):
        """
        Initialize the lookup.

        Args:
            config_file: Path to the lifecycle YAML configuration

        Raises:
            ConfigurationError: If the file exists but cannot be parsed
        """
        self.config_file = Path(config_file)
        self._data: Dict[str, Any] = {}
        self._loaded_mtime: Optional[float] = None
        self._lock = threading.Lock()

        self._load_configuration()

    def _document(self) -> Mapping[str, Any]:
        with self._lock:
            if self._current_mtime() != self._loaded_mtime:
                self._load_configuration_locked()
            return self._data

    def reload_config(self):
        """Reload the configuration file unconditionally."""
        logger.info(f"Reloading lifecycle configuration from {self.config_file}")
        self._load_configuration()

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.config_file.stat().st_mtime
        except FileNotFoundError:
            return None

    def _load_configuration(self):
        with self._lock:
            self._load_configuration_locked()

    def _load_configuration_locked(self):
        mtime = self._current_mtime()
        if mtime is None:
            logger.warning(f"Lifecycle configuration file not found: {self.config_file}")
            self._data = {}
            self._loaded_mtime = None
            return

        try:
            with open(self.config_file, encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse lifecycle configuration {self.config_file}: {e}")
            raise ConfigurationError(f"Invalid YAML in {self.config_file}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.error(f"Lifecycle configuration root must be a mapping: {self.config_file}")
            raise ConfigurationError(f"Configuration root must be a mapping in {self.config_file}")

        self._data = data
        self._loaded_mtime = mtime
        logger.info(f"Loaded lifecycle configuration from {self.config_file}")
