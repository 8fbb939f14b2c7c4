"""
Configuration Loader for the geosample Pipeline

Provides a centralized way to load pipeline settings from a YAML file, with
built-in defaults for everything so the library works without any file.

Usage:
    from geosample.config_loader import Config

    config = Config()
    batch_size = config.get("parsing.batch_size")
    max_points = config.get_optimization_setting("max_points")
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

CONFIG_ENV_VAR = "GEOSAMPLE_CONFIG_PATH"
DEFAULT_CONFIG_NAME = "geosample.yaml"


class Config:
    """Configuration manager for the ingestion and reduction pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "parsing": {
            "max_points": 50000,
            "batch_size": 10000,
        },
        "optimization": {
            "max_points": 50000,
            "sampling_method": "uniform",
            "clustering_enabled": True,
            "cluster_radius": 0.5,
        },
        "logging": {"level": "INFO"},
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable GEOSAMPLE_CONFIG_PATH
                        2. geosample.yaml in current directory
                        and falls back to built-in defaults when neither exists.
        """
        self.config_path: Optional[Path] = None
        self.data: Dict[str, Any] = {}

        if config_file is None:
            env_config = os.environ.get(CONFIG_ENV_VAR)
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path(DEFAULT_CONFIG_NAME).exists():
                config_file = DEFAULT_CONFIG_NAME
            else:
                logger.debug("No config file found, using built-in defaults")
                return
        elif not Path(config_file).exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        self.config_path = Path(config_file).resolve()
        logger.debug(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r") as f:
            self.data = yaml.safe_load(f) or {}

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # Try to get from config first
        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def get_parsing_setting(self, setting_key: str) -> Any:
        """Get parsing setting with intelligent defaults."""
        return self.get(f"parsing.{setting_key}")

    def get_optimization_setting(self, setting_key: str) -> Any:
        """Get optimization setting with intelligent defaults."""
        return self.get(f"optimization.{setting_key}")

    def print_config_summary(self) -> None:
        """Log a summary of the active configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Config file: {self.config_path or 'built-in defaults'}")
        for section in ("parsing", "optimization", "logging"):
            logger.debug(f"⚙️ {section}:")
            for key in self.DEFAULTS[section]:
                logger.debug(f"  {key}: {self.get(f'{section}.{key}')}")


# Convenience function for easy importing
def load_config(config_file: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from file.

    Args:
        config_file: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_file)
