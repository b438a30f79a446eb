"""Unit tests for YAML configuration loading."""

from pathlib import Path

import pytest

import pageshot
from pageshot.capture.config import DEFAULT_CONFIG_PATH, ENV_VAR, ConfigManager, PageshotConfig, load_engine_config

CONFIG_YAML = """
environment: production
browser:
  headless: true
  window_width: 1280
  window_height: 720
engine:
  retry_attempts: 3
  nav_timeout_ms: 15000
filters:
  enabled: true
  lists:
    - https://lists.example.com/ads.txt
environments:
  development:
    browser:
      headless: false
    filters:
      enabled: false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "pageshot.yaml"
    path.write_text(CONFIG_YAML)
    return path


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_production(self, config_file):
        config = ConfigManager(config_file).load_config()

        assert config.environment == "production"
        engine_config = config.get_engine_config()
        assert engine_config.retry_attempts == 3
        assert engine_config.nav_timeout_ms == 15000
        assert engine_config.filters_enabled is True
        assert engine_config.filter_lists == ["https://lists.example.com/ads.txt"]
        assert engine_config.browser_config.viewport == {'width': 1280, 'height': 720}
        assert engine_config.browser_config.headless is True

    def test_environment_overrides(self, config_file, monkeypatch):
        """Test that PAGESHOT_ENV selects an override block."""
        monkeypatch.setenv(ENV_VAR, "development")

        manager = ConfigManager(config_file)
        engine_config = manager.config.get_engine_config()

        assert manager.environment == "development"
        assert not manager.is_production
        assert engine_config.browser_config.headless is False
        assert engine_config.filters_enabled is False
        # Values without overrides are kept
        assert engine_config.retry_attempts == 3

    def test_reload_on_environment_change(self, config_file, monkeypatch):
        manager = ConfigManager(config_file)
        assert manager.load_config().environment == "production"

        monkeypatch.setenv(ENV_VAR, "test")
        assert manager.load_config().environment == "test"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(tmp_path / "missing.yaml").load_config()

    def test_invalid_environment(self, config_file, monkeypatch):
        monkeypatch.setenv(ENV_VAR, "qa")
        with pytest.raises(ValueError):
            ConfigManager(config_file).load_config()

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        engine_config = load_engine_config(path)

        assert engine_config.retry_attempts == 2
        assert engine_config.challenge_timeout_ms == 10000
        assert engine_config.filter_lists

    def test_bundled_config_is_valid(self):
        assert DEFAULT_CONFIG_PATH.exists()
        config = ConfigManager().load_config()
        assert config.get_page_setup_config().color_scheme == "dark"

    def test_bundled_config_lives_in_package(self):
        """Test that the default config resolves inside the installed package."""
        package_dir = Path(pageshot.__file__).parent
        assert DEFAULT_CONFIG_PATH.resolve().is_relative_to(package_dir.resolve())


def test_section_without_overrides():
    config = PageshotConfig(engine={'retry_attempts': 4})
    assert config.section('engine') == {'retry_attempts': 4}
    assert config.section('browser') == {}
