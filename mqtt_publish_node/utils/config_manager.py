"""
Configuration file manager for the MQTT publish node.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict

from .exceptions import ConfigurationError
from .migration import CURRENT_VERSION, migrate

logger = logging.getLogger(__name__)

VERSION_KEY = 'configurationVersion'
CONFIGURATION_KEY = 'configuration'


class ConfigManager:
    """Loads, upgrades and saves a versioned node configuration file.

    The file holds {"configurationVersion": <int>, "configuration": {...}}.
    A bare configuration object without the envelope is treated as version 0.
    """

    def __init__(self, config_file):
        self.config_file = Path(config_file)
        self.version = CURRENT_VERSION
        self.config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """Load the configuration, upgrading it to the current version."""
        if not self.config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_file}")

        try:
            data = json.loads(self.config_file.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {self.config_file} must be a JSON object")

        if CONFIGURATION_KEY in data:
            version = data.get(VERSION_KEY, 0)
            config = data[CONFIGURATION_KEY]
        else:
            version = 0
            config = data

        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise ConfigurationError(f"Invalid configuration version: {version!r}")

        changed, config = migrate(version, config)
        self.version = max(version, CURRENT_VERSION)
        self.config = config
        if changed:
            logger.info(f"Configuration {self.config_file} upgraded from version {version} to {self.version}")
        return self.config

    def upgrade(self) -> bool:
        """Upgrade the configuration file in place. Returns True if it was rewritten."""
        original = self.config_file.read_text() if self.config_file.exists() else None
        self.load()
        updated = self._serialize()
        if original is not None and json.loads(original) == json.loads(updated):
            return False
        self.config_file.write_text(updated)
        return True

    def save(self):
        """Save configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(self._serialize())

    def _serialize(self) -> str:
        return json.dumps({VERSION_KEY: self.version, CONFIGURATION_KEY: self.config}, indent=2)
