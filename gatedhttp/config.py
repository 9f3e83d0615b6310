"""
load the config from config.yaml and .env
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any

from dotenv import find_dotenv, load_dotenv


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable mapping
    ENV_MAPPINGS = {
        'GATEDHTTP_SUCCESS_DELAY': ('requester', 'success_delay'),
        'GATEDHTTP_FAILURE_DELAY': ('requester', 'failure_delay'),
        'GATEDHTTP_MAX_TRIES': ('requester', 'max_tries'),
        'GATEDHTTP_TIMEOUT': ('transport', 'timeout'),
        'GATEDHTTP_MAX_REDIRECTS': ('transport', 'max_redirects'),
        'GATEDHTTP_USER_AGENT': ('transport', 'user_agent'),
        'LOG_LEVEL': ('logging', 'level'),
    }

    def __init__(self, config_path: str = None, env_file: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses the config.yaml
                        shipped next to this module.
            env_file: Optional .env file loaded before environment overrides are
                      applied. If None, python-dotenv searches from the working
                      directory upwards.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self.env_file = env_file
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        load_dotenv(self.env_file or find_dotenv(usecwd=True), override=False)
        config = self._apply_env_overrides(config)

        return config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Navigate to the nested config location
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value using dot notation.

        Args:
            *keys: Configuration keys (e.g., 'requester', 'success_delay')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def requester(self) -> Dict[str, Any]:
        """Get delay and retry configuration."""
        return self.get('requester', default={})

    @property
    def transport(self) -> Dict[str, Any]:
        """Get HTTP transport configuration."""
        return self.get('transport', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})
