"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Agent Browser,
providing clear error types for configuration, connectivity and
stale-state failures.
"""

from agent_browser.exceptions.base import (
    AgentBrowserError,
    ConfigurationError,
    LaunchConfigurationError,
    ProviderConfigurationError,
)
from agent_browser.exceptions.browser import (
    BrowserError,
    BrowserLaunchError,
    BrowserConnectionError,
    BrowserNotLaunchedError,
    RemoteProviderError,
    TabStateError,
    TabIndexError,
    LastTabError,
    ScreencastError,
    RecordingError,
    PageError,
    NavigationError,
    FrameNotFoundError,
)

__all__ = [
    # Base exceptions
    "AgentBrowserError",
    "ConfigurationError",
    "LaunchConfigurationError",
    "ProviderConfigurationError",
    # Browser exceptions
    "BrowserError",
    "BrowserLaunchError",
    "BrowserConnectionError",
    "BrowserNotLaunchedError",
    "RemoteProviderError",
    "TabStateError",
    "TabIndexError",
    "LastTabError",
    "ScreencastError",
    "RecordingError",
    "PageError",
    "NavigationError",
    "FrameNotFoundError",
]
