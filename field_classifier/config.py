"""Configuration module for the field classifier."""

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from field_classifier.tools.constants import (
    AGREEMENT_CAP,
    AGREEMENT_STEP,
    CONTEXT_BOOST,
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
    SOURCE_WEIGHTS,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FIELD_CLASSIFIER_CONFIG"
LOG_LEVEL_ENV_VAR = "FIELD_CLASSIFIER_LOG_LEVEL"


class Config:
    """
    Configuration manager for the field classifier.
    """

    # Default configuration values
    DEFAULTS = {
        "scoring": {
            "weights": dict(SOURCE_WEIGHTS),
            "min_confidence": MIN_CONFIDENCE,
            "max_confidence": MAX_CONFIDENCE,
            "agreement_step": AGREEMENT_STEP,
            "agreement_cap": AGREEMENT_CAP,
            "context_boost": CONTEXT_BOOST
        },
        "cache": {
            "ttl": {
                "visibility": 0.1,
                "computed_style": 0.1,
                "label_text": 5.0,
                "signals": 5.0
            }
        },
        "locale": {
            "default": None
        },
        "catalog": {
            "path": None
        },
        "browser": {
            "headless": True,
            "timeout": 30000
        },
        "diagnostics": {
            "enabled": True,
            "output_dir": None,
            "max_failures": 500
        },
        "logging": {
            "level": "INFO",
            "log_file": None,
            "console_output": True
        }
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to a JSON configuration file. If None, the
                FIELD_CLASSIFIER_CONFIG environment variable is used; without
                either, defaults apply.
        """
        load_dotenv()
        self.config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, falling back to defaults.

        Returns:
            Dictionary with configuration
        """
        if not self.config_path:
            return copy.deepcopy(self.DEFAULTS)
        if not os.path.exists(self.config_path):
            logger.warning(f"Configuration file not found at {self.config_path}. Using defaults.")
            return copy.deepcopy(self.DEFAULTS)
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
            merged_config = self._merge_with_defaults(config)
            logger.info(f"Loaded configuration from {self.config_path}")
            return merged_config
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading configuration from {self.config_path}: {e}")
            return copy.deepcopy(self.DEFAULTS)

    def _merge_with_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge user configuration with defaults to ensure all required fields exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration
        """
        merged = copy.deepcopy(self.DEFAULTS)

        def deep_merge(target, source):
            for key, value in source.items():
                if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                    deep_merge(target[key], value)
                else:
                    target[key] = value

        if isinstance(config, dict):
            deep_merge(merged, config)
        return merged

    def save(self, config_path: Optional[str] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config_path: Where to write; defaults to the loaded path

        Returns:
            True if successful, False otherwise
        """
        path = config_path or self.config_path
        if not path:
            logger.warning("No configuration path to save to")
            return False
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2)
            self.config_path = path
            logger.info(f"Saved configuration to {path}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (dotted notation, e.g. 'scoring.min_confidence')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value in memory; call save() to persist it.

        Args:
            key: Configuration key (dotted notation, e.g. 'cache.ttl.signals')
            value: Value to set
        """
        parts = key.split('.')
        config = self.config
        for part in parts[:-1]:
            if not isinstance(config.get(part), dict):
                config[part] = {}
            config = config[part]
        config[parts[-1]] = value

    def get_cache_ttls(self) -> Dict[str, float]:
        return dict(self.get('cache.ttl', {}))

    def get_browser_options(self) -> Dict[str, Any]:
        """
        Get browser configuration options.

        Returns:
            Dictionary with browser options
        """
        return {
            'headless': self.get('browser.headless', True),
            'timeout': self.get('browser.timeout', 30000)
        }

    def configure_logging(self, level: Optional[str] = None):
        """Configure logging based on configuration and FIELD_CLASSIFIER_LOG_LEVEL."""
        level_name = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or self.get('logging.level', 'INFO')).upper()
        log_level = getattr(logging, level_name, logging.INFO)
        log_file = self.get('logging.log_file')
        console_output = self.get('logging.console_output', True)

        handlers = []

        # File handler
        if log_file:
            handlers.append(logging.FileHandler(log_file))

        # Console handler
        if console_output:
            handlers.append(logging.StreamHandler())

        # Configure logging
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers or None,
            force=True
        )
