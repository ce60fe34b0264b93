"""
Configuration module.

Settings come from (lowest to highest) defaults, an agent-browser.yaml
file, AGENT_BROWSER__* environment variables and explicit overrides.
Provider credentials are never part of Settings; providers read their
own environment variables at connect time.

    AGENT_BROWSER_CONFIG=~/ci/agent-browser.yaml   (config file location)
    AGENT_BROWSER__BROWSER__HEADLESS=false
    AGENT_BROWSER__SCREENCAST__FORMAT=png
    AGENT_BROWSER_PROVIDER=kernel                  (provider opt-in, read at launch)
    AGENT_BROWSER_SESSION=work                     (session name)
    KERNEL_API_KEY=...
"""

from pathlib import Path
from typing import Optional, Union

from agent_browser.config.settings import (
    Settings,
    BrowserSettings,
    DiscoverySettings,
    ScreencastSettings,
    RecordingSettings,
    ProviderSettings,
    LoggingSettings,
)
from agent_browser.config.loader import CONFIG_ENV_VAR, ConfigLoader, load_config

_settings: Optional[Settings] = None


def get_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Process-wide Settings, loaded on first use.

    Passing ``config_path`` reloads from that file and replaces the
    cached instance; without it the cached instance is returned.
    """
    global _settings
    if _settings is None or config_path is not None:
        _settings = load_config(config_path=config_path)
    return _settings


def reset_settings() -> None:
    """Drop the cached Settings so the next get_settings() reloads."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "BrowserSettings",
    "DiscoverySettings",
    "ScreencastSettings",
    "RecordingSettings",
    "ProviderSettings",
    "LoggingSettings",
    "CONFIG_ENV_VAR",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
