import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "server": {
            "host": "0.0.0.0",
            "port": 3000,
            "debug": False,
        },
        "upload": {
            "max_size_mb": 500,
        },
        "ingestion": {
            "workers": 4,
        },
        "query": {
            "default_per_page": 100,
            "max_per_page": 1000,
        },
        "timeline": {
            "default_interval": "1s",
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s [%(name)s] %(levelname)s %(message)s",
        },
    }

    def __init__(self, config_path=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
                logger.info("Loaded config from %s", config_path)
            except FileNotFoundError:
                logger.warning("Config file %s not found, using defaults", config_path)
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

        port = os.environ.get("PORT")
        if port:
            self._config["server"]["port"] = int(port)

    @classmethod
    def from_env(cls):
        """Load from CONFIG_PATH, falling back to ./config.yaml."""
        return cls(os.environ.get("CONFIG_PATH", "config.yaml"))

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config
