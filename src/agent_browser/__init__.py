"""
Agent Browser - Browser session & resource lifecycle for automation agents.

This package owns a browser for an automation agent: it launches or
attaches one (local, persistent profile, CDP endpoint, or a cloud
provider), tracks its tabs and windows, streams and records it, and
tears everything down in one place.

Example:
    >>> from agent_browser import BrowserManager, LaunchOptions
    >>> manager = BrowserManager()
    >>> await manager.launch(LaunchOptions(cdp_port=9222))
    >>> await manager.list_tabs()
"""

__version__ = "0.1.0"

# Public API exports
from agent_browser.session.manager import BrowserManager
from agent_browser.session.connection import LaunchOptions
from agent_browser.config.settings import Settings

__all__ = [
    "BrowserManager",
    "LaunchOptions",
    "Settings",
    "__version__",
]
