"""
Utilities module - Common utility functions.
"""

from agent_browser.utils.logging import setup_logging, get_logger, JsonFormatter

__all__ = [
    "setup_logging",
    "get_logger",
    "JsonFormatter",
]
