"""
Tests for configuration system.
"""

import os

import pytest

from agent_browser.config import (
    BrowserSettings,
    ConfigLoader,
    ProviderSettings,
    ScreencastSettings,
    Settings,
    get_settings,
    load_config,
    reset_settings,
)
from agent_browser.exceptions import ConfigurationError


class TestSettings:
    """Test the Settings classes."""
    
    def test_default_settings(self):
        """Test default settings are created correctly."""
        settings = Settings()
        
        assert settings.browser.browser_type == "chromium"
        assert settings.browser.headless is True
        assert settings.browser.local_timeout_ms == 60000
        assert settings.browser.attach_timeout_ms == 10000
        assert settings.discovery.probe_ports == [9222, 9229]
        assert settings.screencast.quality == 80
        assert settings.provider.name is None
    
    def test_override_settings(self):
        """Test overriding settings."""
        settings = Settings(
            browser=BrowserSettings(browser_type="firefox", headless=False),
            provider=ProviderSettings(name="kernel"),
        )
        
        assert settings.browser.browser_type == "firefox"
        assert settings.browser.headless is False
        assert settings.provider.name == "kernel"
    
    def test_merge_with_overrides(self):
        """Test merging settings with overrides."""
        settings = Settings()
        new_settings = settings.merge_with({
            "browser": {"headless": False},
            "recording": {"viewport_width": 1920},
        })
        
        assert new_settings.browser.headless is False
        assert new_settings.recording.viewport_width == 1920
        # Other settings should remain default
        assert new_settings.browser.browser_type == "chromium"
    
    def test_env_overrides(self, monkeypatch):
        """Nested values can be set with AGENT_BROWSER__SECTION__FIELD."""
        monkeypatch.setenv("AGENT_BROWSER__BROWSER__HEADLESS", "false")
        monkeypatch.setenv("AGENT_BROWSER__PROVIDER__NAME", "browserbase")
        
        settings = Settings()
        
        assert settings.browser.headless is False
        assert settings.provider.name == "browserbase"
    
    def test_validation(self):
        """Test validation of settings."""
        with pytest.raises(ValueError):
            BrowserSettings(local_timeout_ms=100)
        with pytest.raises(ValueError):
            ScreencastSettings(quality=101)
        with pytest.raises(ValueError):
            ProviderSettings(name="acme")


class TestConfigLoader:
    """Test YAML/.env loading."""
    
    def test_load_yaml_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = tmp_path / "custom.yaml"
        config.write_text("browser:\n  headless: false\nscreencast:\n  format: png\n")
        
        settings = load_config(config_path=config)
        
        assert settings.browser.headless is False
        assert settings.screencast.format == "png"
    
    def test_overrides_win_over_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = tmp_path / "agent-browser.yaml"
        config.write_text("browser:\n  viewport_width: 1024\n")
        
        settings = load_config(browser={"viewport_width": 800})
        
        assert settings.browser.viewport_width == 800
    
    def test_empty_yaml(self, tmp_path):
        config = tmp_path / "empty.yaml"
        config.write_text("")
        
        assert ConfigLoader(config).load_yaml_config(config) == {}
    
    def test_missing_explicit_file_is_an_error(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config(config_path=tmp_path / "nope.yaml")
    
    def test_non_mapping_yaml_is_rejected(self, tmp_path):
        config = tmp_path / "list.yaml"
        config.write_text("- headless\n- true\n")
        
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            ConfigLoader(config).load_yaml_config(config)
    
    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = tmp_path / "ci.yaml"
        config.write_text("screencast:\n  quality: 55\n")
        monkeypatch.setenv("AGENT_BROWSER_CONFIG", str(config))
        
        assert load_config().screencast.quality == 55
    
    def test_environment_wins_over_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "agent-browser.yaml").write_text("browser:\n  viewport_width: 1024\n  viewport_height: 600\n")
        monkeypatch.setenv("AGENT_BROWSER__BROWSER__VIEWPORT_WIDTH", "1600")
        
        settings = load_config()
        
        assert settings.browser.viewport_width == 1600
        assert settings.browser.viewport_height == 600
    
    def test_provider_secrets_in_file_are_ignored(self, tmp_path, monkeypatch, caplog):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "agent-browser.yaml").write_text(
            "provider:\n  name: kernel\n  kernel_api_key: sk-live\n"
        )
        
        settings = load_config()
        
        assert settings.provider.name == "kernel"
        assert "kernel_api_key" in caplog.text
    
    def test_dotenv_does_not_override_environment(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("KERNEL_API_KEY=from-file\n")
        monkeypatch.setenv("KERNEL_API_KEY", "from-env")
        
        ConfigLoader().load_env_file()
        
        assert os.environ["KERNEL_API_KEY"] == "from-env"
    
    def test_global_settings_are_cached(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        reset_settings()
        try:
            assert get_settings() is get_settings()
        finally:
            reset_settings()
    
    def test_explicit_path_reloads_global_settings(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = tmp_path / "headful.yaml"
        config.write_text("browser:\n  headless: false\n")
        reset_settings()
        try:
            cached = get_settings()
            reloaded = get_settings(config)
            
            assert reloaded is not cached
            assert reloaded.browser.headless is False
            assert get_settings() is reloaded
        finally:
            reset_settings()
