"""
Tab Registry - Ordered tabs and contexts of a browser session.

Tabs are addressed by position. Pages opened outside the manager
(window.open, target="_blank") are picked up from context "page" events,
and pages closed outside it from page "close" events. Both handlers are
checked insert/remove on the shared lists, so they can interleave with
in-flight calls that touch the same page.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TYPE_CHECKING

from agent_browser.exceptions import BrowserNotLaunchedError, LastTabError, TabIndexError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)


@dataclass
class TabInfo:
    """A tab as reported to callers."""
    index: int
    url: str
    title: str
    active: bool
    
    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "url": self.url, "title": self.title, "active": self.active}


@dataclass
class TabOpened:
    index: int
    total: int


@dataclass
class TabClosed:
    closed: int
    remaining: int


class TabRegistry:
    """
    Tracks contexts, pages and the active page index.
    
    ``on_active_changed`` is awaited whenever the active page changes
    (it invalidates the CDP session). For changes caused by engine events
    it is scheduled as a task, since event handlers are synchronous.
    ``on_page_tracked`` runs once for every newly tracked page, so
    per-page listeners cover popups as well as tabs opened by the manager.
    """
    
    def __init__(
        self,
        on_active_changed: Callable[[], Awaitable[None]],
        on_page_tracked: Optional[Callable[["Page"], None]] = None,
    ):
        self.contexts: List["BrowserContext"] = []
        self.pages: List["Page"] = []
        self.active_index: int = 0
        self._on_active_changed = on_active_changed
        self._on_page_tracked = on_page_tracked
        self._tasks: Set["asyncio.Task[None]"] = set()
    
    # ==================== Tracking ====================
    
    def track_context(self, context: "BrowserContext") -> None:
        """Start tracking a context and the pages it opens."""
        if context in self.contexts:
            return
        self.contexts.append(context)
        context.on("page", self._on_context_page)
    
    def track_page(self, page: "Page") -> bool:
        """
        Insert a page if absent.
        
        Returns:
            True if the page was newly tracked
        """
        if page in self.pages:
            return False
        self.pages.append(page)
        page.on("close", self._on_page_close)
        if self._on_page_tracked is not None:
            self._on_page_tracked(page)
        return True
    
    def untrack_page(self, page: "Page") -> None:
        """Remove a page if present, keeping the active index on a live page."""
        if page not in self.pages:
            return
        index = self.pages.index(page)
        self.pages.pop(index)
        
        if index < self.active_index:
            self.active_index -= 1
        elif self.active_index >= len(self.pages):
            self.active_index = len(self.pages) - 1
        self.active_index = max(0, self.active_index)
    
    def untrack_context(self, context: "BrowserContext") -> None:
        if context in self.contexts:
            self.contexts.remove(context)
    
    def activate(self, page: "Page") -> int:
        """Make a tracked page active and return its index."""
        self.active_index = self.pages.index(page)
        return self.active_index
    
    def clear(self) -> None:
        self.pages = []
        self.contexts = []
        self.active_index = 0
    
    def _on_context_page(self, page: "Page") -> None:
        self.track_page(page)
        
        # Follow tabs opened by the page itself so later commands target them
        new_index = self.pages.index(page)
        if new_index != self.active_index:
            self.active_index = new_index
            logger.debug(f"Switched to externally opened tab {new_index}")
            self._schedule(self._on_active_changed())
    
    def _on_page_close(self, page: "Page") -> None:
        self.untrack_page(page)
    
    def _schedule(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
    
    def _task_done(self, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Active tab change handler failed: {task.exception()}")
    
    # ==================== Queries ====================
    
    @property
    def active_page(self) -> Optional["Page"]:
        if not self.pages:
            return None
        return self.pages[self.active_index]
    
    def has_pages(self) -> bool:
        return len(self.pages) > 0
    
    async def list_tabs(self) -> List[TabInfo]:
        """List all tabs with url, title and active flag."""
        pages = list(self.pages)
        active = self.active_index
        titles = await asyncio.gather(
            *(page.title() for page in pages),
            return_exceptions=True,
        )
        return [
            TabInfo(
                index=i,
                url=page.url,
                title=title if isinstance(title, str) else "",
                active=i == active,
            )
            for i, (page, title) in enumerate(zip(pages, titles))
        ]
    
    # ==================== Operations ====================
    
    async def new_tab(self) -> TabOpened:
        """Open a page in the first (shared) context and make it active."""
        if not self.contexts:
            raise BrowserNotLaunchedError("Browser not launched")
        
        await self._on_active_changed()
        
        page = await self.contexts[0].new_page()
        self.track_page(page)
        self.activate(page)
        return TabOpened(index=self.active_index, total=len(self.pages))
    
    async def new_window(
        self,
        browser: "Browser",
        viewport: Optional[Dict[str, int]],
        timeout_ms: int,
    ) -> TabOpened:
        """Open a new context with one page and make it active."""
        context = await browser.new_context(viewport=viewport)
        context.set_default_timeout(timeout_ms)
        self.track_context(context)
        
        await self._on_active_changed()
        
        page = await context.new_page()
        self.track_page(page)
        self.activate(page)
        return TabOpened(index=self.active_index, total=len(self.pages))
    
    async def switch_to(self, index: int) -> TabInfo:
        """
        Make the tab at ``index`` active.
        
        The title is returned empty; fetching it would wait on the page.
        Use list_tabs() for titles.
        """
        if index < 0 or index >= len(self.pages):
            raise TabIndexError(
                f"Invalid tab index: {index}. Available: 0-{len(self.pages) - 1}",
                index=index,
                total=len(self.pages),
            )
        
        if index != self.active_index:
            await self._on_active_changed()
        
        self.active_index = index
        page = self.pages[index]
        return TabInfo(index=index, url=page.url, title="", active=True)
    
    async def close_tab(self, index: Optional[int] = None) -> TabClosed:
        """Close the tab at ``index`` (default: the active tab)."""
        target = self.active_index if index is None else index
        
        if target < 0 or target >= len(self.pages):
            raise TabIndexError(
                f"Invalid tab index: {target}. Available: 0-{len(self.pages) - 1}",
                index=target,
                total=len(self.pages),
            )
        
        if len(self.pages) == 1:
            raise LastTabError()
        
        if target == self.active_index:
            await self._on_active_changed()
        
        page = self.pages[target]
        await page.close()
        # The close event may already have removed it
        self.untrack_page(page)
        
        return TabClosed(closed=target, remaining=len(self.pages))
    
    async def ensure_page(
        self,
        browser: Optional["Browser"],
        timeout_ms: int,
    ) -> bool:
        """
        Recover from a session whose pages were all closed externally.
        
        Opens one page on the most recent context (or a new context when
        none is left) and makes it active. No-op when pages exist.
        
        Returns:
            True if a page was created
        """
        if self.pages:
            return False
        
        if self.contexts:
            context = self.contexts[-1]
        elif browser is not None:
            context = await browser.new_context()
            context.set_default_timeout(timeout_ms)
            self.track_context(context)
        else:
            return False
        
        page = await context.new_page()
        self.track_page(page)
        self.activate(page)
        logger.info("Recovered stale session with a new page")
        return True
