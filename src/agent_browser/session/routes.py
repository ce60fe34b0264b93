"""
Request Routes - Page-level interception rules that survive tab switches.

Every rule remembers the page it was installed on. Replacing or removing
a rule unroutes it from that page, not from whichever tab happens to be
active when the call is made.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page, Route

logger = logging.getLogger(__name__)

RouteHandler = Callable[["Route"], Awaitable[None]]


class PageRouteTable:
    """At most one handler per URL pattern, each bound to its page."""
    
    def __init__(self) -> None:
        self._routes: Dict[str, Tuple["Page", RouteHandler]] = {}
    
    @property
    def patterns(self) -> List[str]:
        return list(self._routes)
    
    async def install(self, page: "Page", pattern: str, handler: RouteHandler) -> None:
        """Route ``pattern`` on ``page``, dropping the previous rule first."""
        await self.remove(pattern)
        self._routes[pattern] = (page, handler)
        await page.route(pattern, handler)
    
    async def remove(self, pattern: str) -> bool:
        """
        Unroute one pattern from the page it was installed on.
        
        Returns:
            True if a rule existed
        """
        entry = self._routes.pop(pattern, None)
        if entry is None:
            return False
        page, handler = entry
        # A closed page took its routes with it
        if not page.is_closed():
            await page.unroute(pattern, handler)
        return True
    
    async def remove_all(self) -> None:
        for pattern in list(self._routes):
            await self.remove(pattern)
    
    def reset(self) -> None:
        """Forget all rules without touching any page (used on session close)."""
        self._routes.clear()


@dataclass
class MockResponse:
    """Canned response for a mocked route."""
    status: int = 200
    body: str = ""
    content_type: str = "text/plain"
    headers: Optional[Dict[str, str]] = None


class RouteMocker:
    """
    Mock, abort or pass through requests by URL pattern.
    
    Example:
        >>> mocker = RouteMocker()
        >>> await mocker.add(page, "**/api/user", response=MockResponse(body='{"id": 1}'))
        >>> await mocker.add(page, "**/*.png", abort=True)
        >>> await mocker.remove()
    """
    
    def __init__(self) -> None:
        self._table = PageRouteTable()
    
    @property
    def urls(self) -> List[str]:
        return self._table.patterns
    
    async def add(
        self,
        page: "Page",
        url: str,
        response: Optional[MockResponse] = None,
        abort: bool = False,
    ) -> None:
        """Install a rule for ``url``; abort wins over a response."""
        
        async def handler(route: "Route") -> None:
            if abort:
                await route.abort()
            elif response is not None:
                fulfill: Dict[str, Any] = {
                    "status": response.status,
                    "body": response.body,
                    "content_type": response.content_type,
                }
                if response.headers:
                    fulfill["headers"] = response.headers
                await route.fulfill(**fulfill)
            else:
                await route.continue_()
        
        await self._table.install(page, url, handler)
        logger.debug(f"Route added for {url} (abort={abort}, mocked={response is not None})")
    
    async def remove(self, url: Optional[str] = None) -> None:
        """Remove the rule for ``url``, or every rule when url is None."""
        if url is None:
            await self._table.remove_all()
        else:
            await self._table.remove(url)
    
    def reset(self) -> None:
        self._table.reset()
