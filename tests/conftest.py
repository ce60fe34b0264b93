"""
Pytest configuration and fixtures.

The fakes below mimic the parts of Playwright's async API the session
code touches: event emitters (``on``/``remove_listener``), contexts that
emit "page" when a page opens, and pages that emit "close".
"""

import inspect
from collections import defaultdict
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeEmitter:
    """Minimal pyee-style event emitter."""

    def __init__(self):
        self._handlers: Dict[str, List[Any]] = defaultdict(list)

    def on(self, event: str, handler: Any) -> None:
        self._handlers[event].append(handler)

    def remove_listener(self, event: str, handler: Any) -> None:
        self._handlers[event].remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._handlers[event])

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            handler(*args)

    async def emit_async(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result


class FakeVideo:
    def __init__(self):
        self.saved_to: List[str] = []
        self.fail_with: Optional[Exception] = None

    async def save_as(self, path: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.saved_to.append(path)


class FakeCDPSession(FakeEmitter):
    def __init__(self, page: "FakePage"):
        super().__init__()
        self.page = page
        self.sent: List[tuple] = []
        self.detached = False
        self.fail_on: Dict[str, Exception] = {}

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if method in self.fail_on:
            raise self.fail_on[method]
        self.sent.append((method, params))
        return {}

    async def detach(self) -> None:
        self.detached = True

    def methods(self) -> List[str]:
        return [method for method, _ in self.sent]


class FakePage(FakeEmitter):
    def __init__(self, context: "FakeContext", url: str = "about:blank", title: str = ""):
        super().__init__()
        self.context = context
        self.url = url
        self._title = title
        self.closed = False
        self.video: Optional[FakeVideo] = None
        self.goto_calls: List[tuple] = []
        self.route = AsyncMock()
        self.unroute = AsyncMock()
        self.set_viewport_size = AsyncMock()
        self.main_frame = MagicMock(name="main_frame")
        self.frame = MagicMock(name="frame", return_value=None)
        self.query_selector = AsyncMock(return_value=None)
        self.locator = MagicMock(name="locator")
        self.get_by_role = MagicMock(name="get_by_role")

    async def title(self) -> str:
        return self._title
    
    def is_closed(self) -> bool:
        return self.closed

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.goto_calls.append((url, kwargs))
        self.url = url

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.emit("close", self)


class FakeContext(FakeEmitter):
    def __init__(self, browser: Optional["FakeBrowser"] = None, **options: Any):
        super().__init__()
        self.browser = browser
        self.options = options
        self.pages: List[FakePage] = []
        self.closed = False
        self.default_timeout: Optional[int] = None
        self.cdp_sessions: List[FakeCDPSession] = []
        self.storage_state = AsyncMock(return_value={"cookies": [], "origins": []})
        self.set_extra_http_headers = AsyncMock()
        self.set_offline = AsyncMock()
        self.set_geolocation = AsyncMock()
        self.grant_permissions = AsyncMock()
        self.clear_permissions = AsyncMock()
        self.tracing = MagicMock()
        self.tracing.start = AsyncMock()
        self.tracing.stop = AsyncMock()

    def add_page(self, url: str = "about:blank", title: str = "") -> FakePage:
        """Add a page without emitting "page" (pre-existing tabs)."""
        page = FakePage(self, url=url, title=title)
        self.pages.append(page)
        page.on("close", self._forget)
        return page

    def open_popup(self, url: str = "about:blank") -> FakePage:
        """Simulate window.open: add a page and emit "page"."""
        page = self.add_page(url)
        self.emit("page", page)
        return page

    def _forget(self, page: FakePage) -> None:
        if page in self.pages:
            self.pages.remove(page)

    async def new_page(self) -> FakePage:
        page = self.add_page()
        if self.options.get("record_video_dir"):
            page.video = FakeVideo()
        self.emit("page", page)
        return page

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def new_cdp_session(self, page: FakePage) -> FakeCDPSession:
        session = FakeCDPSession(page)
        self.cdp_sessions.append(session)
        return session

    async def close(self) -> None:
        for page in list(self.pages):
            await page.close()
        self.closed = True


class FakeBrowser(FakeEmitter):
    def __init__(self, contexts: Optional[List[FakeContext]] = None):
        super().__init__()
        self.contexts: List[FakeContext] = contexts if contexts is not None else []
        for context in self.contexts:
            context.browser = self
        self.connected = True
        self.closed = False
        self.new_context_error: Optional[Exception] = None

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options: Any) -> FakeContext:
        if self.new_context_error is not None:
            raise self.new_context_error
        context = FakeContext(self, **options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeBrowserType:
    def __init__(self):
        self.launch_calls: List[Dict[str, Any]] = []
        self.persistent_calls: List[tuple] = []
        self.cdp_calls: List[str] = []
        self.launch_error: Optional[Exception] = None
        self.cdp_browser: Optional[FakeBrowser] = None
        self.cdp_error: Optional[Exception] = None
        self.browsers: List[FakeBrowser] = []

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self.launch_calls.append(kwargs)
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser()
        self.browsers.append(browser)
        return browser

    async def launch_persistent_context(self, user_data_dir: str, **kwargs: Any) -> FakeContext:
        self.persistent_calls.append((user_data_dir, kwargs))
        if self.launch_error is not None:
            raise self.launch_error
        context = FakeContext(None, **kwargs)
        context.add_page()
        return context

    async def connect_over_cdp(self, url: str) -> FakeBrowser:
        self.cdp_calls.append(url)
        if self.cdp_error is not None:
            raise self.cdp_error
        assert self.cdp_browser is not None, "set cdp_browser before connecting"
        return self.cdp_browser


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeBrowserType()
        self.firefox = FakeBrowserType()
        self.webkit = FakeBrowserType()
        self.devices = {
            "iPhone 13": {"viewport": {"width": 390, "height": 664}, "is_mobile": True},
            "Desktop Chrome": {"viewport": {"width": 1280, "height": 720}, "is_mobile": False},
        }
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


def attachable_browser(*urls: str) -> FakeBrowser:
    """A running browser with one context holding pages at ``urls``."""
    context = FakeContext()
    for url in urls:
        context.add_page(url)
    return FakeBrowser([context])


@pytest.fixture
def settings():
    """Provide test settings."""
    from agent_browser.config import Settings

    return Settings()


@pytest.fixture
def playwright():
    return FakePlaywright()


@pytest.fixture
def manager(settings, playwright):
    """A BrowserManager wired to the fake Playwright driver."""
    from agent_browser.session.manager import BrowserManager

    return BrowserManager(settings=settings, playwright=playwright)


@pytest.fixture
def invalidations():
    """An async invalidation callback that counts its calls."""
    return AsyncMock()


@pytest.fixture
def context():
    return FakeContext(FakeBrowser())


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep provider and encryption env vars from leaking into tests."""
    for name in (
        "AGENT_BROWSER_PROVIDER",
        "AGENT_BROWSER_ENCRYPTION_KEY",
        "AGENT_BROWSER_SESSION",
        "AGENT_BROWSER_CONFIG",
        "BROWSERBASE_API_KEY",
        "BROWSERBASE_PROJECT_ID",
        "BROWSER_USE_API_KEY",
        "KERNEL_API_KEY",
        "KERNEL_PROFILE_NAME",
        "KERNEL_HEADLESS",
        "KERNEL_STEALTH",
        "KERNEL_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
