"""
Providers module - Remote browser-hosting services.

Importing this package registers the built-in providers.
"""

from agent_browser.providers.base import RemoteProvider, RemoteSession, RemoteConnection
from agent_browser.providers.registry import register_provider, create_provider, list_providers
from agent_browser.providers.browserbase import BrowserbaseProvider
from agent_browser.providers.browser_use import BrowserUseProvider
from agent_browser.providers.kernel import KernelProvider

__all__ = [
    "RemoteProvider",
    "RemoteSession",
    "RemoteConnection",
    "register_provider",
    "create_provider",
    "list_providers",
    "BrowserbaseProvider",
    "BrowserUseProvider",
    "KernelProvider",
]
