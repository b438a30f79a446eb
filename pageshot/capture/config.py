"""Configuration system for pageshot.

This module provides configuration management for browser, engine and
filter settings, including YAML loading, validation, and
environment-specific overrides selected through ``PAGESHOT_ENV``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .browser_factory import BrowserConfig
from .engine import CaptureEngineConfig
from .page_setup import PageSetupConfig

logger = logging.getLogger(__name__)

ENV_VAR = 'PAGESHOT_ENV'
# Installed as package data alongside the modules
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "pageshot.yaml"


class PageshotConfig(BaseModel):
    """Root configuration for pageshot."""

    environment: str = Field(default="production", description="Environment name")
    browser: Dict[str, Any] = Field(default_factory=dict, description="Browser configuration")
    engine: Dict[str, Any] = Field(default_factory=dict, description="Engine configuration")
    filters: Dict[str, Any] = Field(default_factory=dict, description="Request filter configuration")
    page: Dict[str, Any] = Field(default_factory=dict, description="Per-page setup configuration")
    environments: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Environment-specific overrides"
    )

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_environments = {'production', 'staging', 'development', 'test'}
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    def section(self, name: str) -> Dict[str, Any]:
        """A config section with the current environment's overrides applied."""
        config = dict(getattr(self, name))
        env_config = self.environments.get(self.environment, {})
        if name in env_config:
            config.update(env_config[name])
        return config

    def get_browser_config(self) -> BrowserConfig:
        """Get browser configuration with environment overrides applied."""
        config = self.section('browser')
        return BrowserConfig(
            headless=config.get('headless', True),
            constrained=config.get('constrained'),
            launch_timeout_ms=config.get('launch_timeout_ms', 30000),
            close_timeout_ms=config.get('close_timeout_ms', 5000),
            viewport={'width': config.get('window_width', 1920), 'height': config.get('window_height', 1080)},
            device_scale_factor=config.get('device_scale_factor', 2),
            user_agent=config.get('user_agent') or BrowserConfig().user_agent,
            ignore_https_errors=config.get('ignore_https_errors', True),
            locale=config.get('locale', 'en-US'),
            timezone=config.get('timezone'),
            executable_path=config.get('executable_path'),
            extra_args=config.get('extra_args'),
        )

    def get_page_setup_config(self) -> PageSetupConfig:
        """Get page setup configuration with environment overrides applied."""
        config = self.section('page')
        return PageSetupConfig(
            color_scheme=config.get('color_scheme', 'dark'),
            reduced_motion=config.get('reduced_motion', 'reduce'),
            stealth=config.get('stealth', True),
            capture_console=config.get('capture_console', True),
            filter_console_noise=config.get('filter_console_noise', True),
        )

    def get_engine_config(self) -> CaptureEngineConfig:
        """Get engine configuration with environment overrides applied."""
        config = self.section('engine')
        filters = self.section('filters')
        return CaptureEngineConfig(
            browser_config=self.get_browser_config(),
            page_setup=self.get_page_setup_config(),
            nav_timeout_ms=config.get('nav_timeout_ms', 30000),
            font_timeout_ms=config.get('font_timeout_ms', 30000),
            challenge_timeout_ms=config.get('challenge_timeout_ms', 10000),
            retry_attempts=config.get('retry_attempts', 2),
            retry_base_delay=config.get('retry_base_delay', 1.0),
            probe_content_type=config.get('probe_content_type', True),
            filters_enabled=filters.get('enabled', True),
            filter_lists=filters.get('lists'),
        )


class ConfigManager:
    """Manager for configuration loading and caching."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config YAML file. Defaults to the bundled pageshot/config/pageshot.yaml;
                when the default file is missing the built-in defaults are used
        """
        self.explicit_path = config_path is not None
        self.config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        self._config: Optional[PageshotConfig] = None
        self._loaded_env = None

    def load_config(self, force_reload: bool = False) -> PageshotConfig:
        """Load configuration from YAML file.

        Args:
            force_reload: Force reload even if already cached

        Returns:
            Loaded and validated configuration

        Raises:
            FileNotFoundError: If an explicitly given config file doesn't exist
            yaml.YAMLError: If YAML is invalid
            ValueError: If configuration validation fails
        """
        current_env = os.environ.get(ENV_VAR, 'production')

        if self._config is not None and not force_reload and current_env == self._loaded_env:
            return self._config

        if not self.config_path.exists():
            if self.explicit_path:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            logger.debug(f"No config file at {self.config_path}, using defaults")
            config_data: Dict[str, Any] = {}
        else:
            try:
                with open(self.config_path, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise yaml.YAMLError(f"Invalid YAML in {self.config_path}: {e}")

        # Override environment from env var if set
        if current_env != 'production':
            config_data['environment'] = current_env

        try:
            self._config = PageshotConfig(**config_data)
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}")

        self._loaded_env = current_env
        logger.debug(f"Loaded configuration (environment={self._config.environment})")
        return self._config

    @property
    def config(self) -> PageshotConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    @property
    def environment(self) -> str:
        return self.config.environment

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'


def load_engine_config(config_path: Optional[Union[str, Path]] = None) -> CaptureEngineConfig:
    """Create engine configuration from a YAML file (or the defaults)."""
    return ConfigManager(config_path).config.get_engine_config()
