"""
Scoped Header Router - Per-origin HTTP header injection.

Headers set here are only added to requests whose URL matches the
origin they were registered for, using Playwright request interception.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING
from urllib.parse import urlsplit

from agent_browser.session.routes import PageRouteTable

if TYPE_CHECKING:
    from playwright.async_api import Page, Route

logger = logging.getLogger(__name__)


def safe_header_merge(base: Dict[str, str], extra: Dict[str, str]) -> Dict[str, str]:
    """
    Merge headers, letting ``extra`` win on conflicts.
    
    Header names are case-insensitive: an existing "content-type" is
    replaced by an extra "Content-Type" rather than sent twice.
    """
    merged = dict(base)
    for name, value in extra.items():
        for existing in [key for key in merged if key.lower() == name.lower()]:
            del merged[existing]
        merged[name] = value
    return merged


def origin_to_pattern(origin: str) -> str:
    """
    Build a URL glob for an origin.
    
    "api.example.com" and "https://api.example.com/v1" both become
    "**://api.example.com/**". Ports are kept.
    """
    candidate = origin if origin.startswith("http") else f"https://{origin}"
    try:
        host = urlsplit(candidate).netloc
    except ValueError:
        host = ""
    if not host:
        return f"**://{origin}/**"
    return f"**://{host}/**"


class ScopedHeaderRouter:
    """
    Keeps at most one header-injection route per origin pattern.
    
    A rule stays bound to the tab it was registered on; replacing or
    clearing it after a tab switch still unroutes that tab.
    
    Example:
        >>> router = ScopedHeaderRouter()
        >>> await router.set(page, "api.example.com", {"Authorization": "Bearer x"})
        >>> await router.clear()
    """
    
    def __init__(self) -> None:
        self._table = PageRouteTable()
    
    @property
    def patterns(self) -> list[str]:
        return self._table.patterns
    
    async def set(self, page: "Page", origin: str, headers: Dict[str, str]) -> str:
        """
        Register headers for an origin, replacing any previous rule.
        
        Returns:
            The URL pattern the rule was registered under
        """
        pattern = origin_to_pattern(origin)
        
        async def handler(route: "Route") -> None:
            request_headers = route.request.headers
            await route.continue_(headers=safe_header_merge(request_headers, headers))
        
        await self._table.install(page, pattern, handler)
        logger.debug(f"Scoped headers registered for {pattern}: {sorted(headers)}")
        return pattern
    
    async def clear(self, origin: Optional[str] = None) -> None:
        """Remove the rule for one origin, or every rule when origin is None."""
        if origin is None:
            await self._table.remove_all()
        else:
            await self._table.remove(origin_to_pattern(origin))
    
    def reset(self) -> None:
        """Forget all rules without touching a page (used on session close)."""
        self._table.reset()
