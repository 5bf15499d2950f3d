"""
Configuration management for rpi_usb.

Loads monitor settings (delays, device globs, udev subsystems, log level)
from a YAML file.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import ValidationError

from .models import MonitorConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "RPI_USB_CONFIG"
LOG_LEVEL_ENV_VAR = "RPI_USB_LOG_LEVEL"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "rpi-usb" / "config.yaml"


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


class ConfigManager:
    """Manages monitor configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._config: Optional[MonitorConfig] = None

    @property
    def config(self) -> MonitorConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        return self._config  # type: ignore

    def load(self) -> MonitorConfig:
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                with open(self.config_path) as f:
                    data = yaml.safe_load(f) or {}

                if not isinstance(data, dict):
                    raise ValueError("top level must be a mapping")

                self._config = MonitorConfig(**data)
                logger.info(f"Loaded configuration from {self.config_path}")

            except (OSError, yaml.YAMLError, ValueError, ValidationError) as e:
                logger.error(f"Error loading config from {self.config_path}: {e}")
                self._config = MonitorConfig()
        else:
            logger.debug(f"No config file found at {self.config_path}, using defaults")
            self._config = MonitorConfig()

        level = os.environ.get(LOG_LEVEL_ENV_VAR)
        if level:
            self._config.log_level = level.upper()

        return self._config

