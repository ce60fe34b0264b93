"""
Page Activity - Console messages, uncaught page errors and requests.

PageActivity.attach() is called for every page the session tracks (the
tab registry invokes it next to its own "close" listener), so popups and
recording pages are covered without callers opting in per tab. Console
messages and page errors are always collected; requests only while
request tracking is on.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import ConsoleMessage as PlaywrightConsoleMessage
    from playwright.async_api import Page, Request

DEFAULT_MAX_ENTRIES = 1000


@dataclass
class ConsoleMessage:
    type: str
    text: str
    timestamp: float


@dataclass
class PageErrorRecord:
    """An uncaught exception thrown by page script."""
    message: str
    timestamp: float


@dataclass
class TrackedRequest:
    url: str
    method: str
    resource_type: str
    timestamp: float
    headers: Dict[str, str] = field(default_factory=dict)


class PageActivity:
    """
    Bounded buffers of page activity across all tabs of a session.
    
    Each buffer keeps the newest ``max_entries`` items.
    """
    
    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._console: Deque[ConsoleMessage] = deque(maxlen=max_entries)
        self._errors: Deque[PageErrorRecord] = deque(maxlen=max_entries)
        self._requests: Deque[TrackedRequest] = deque(maxlen=max_entries)
        self.tracking_requests = False
    
    def attach(self, page: "Page") -> None:
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)
        page.on("request", self._on_request)
    
    # ==================== Event handlers ====================
    
    def _on_console(self, message: "PlaywrightConsoleMessage") -> None:
        self._console.append(ConsoleMessage(
            type=message.type,
            text=message.text,
            timestamp=time.time(),
        ))
    
    def _on_page_error(self, error: Any) -> None:
        message = getattr(error, "message", None) or str(error)
        self._errors.append(PageErrorRecord(message=message, timestamp=time.time()))
    
    def _on_request(self, request: "Request") -> None:
        if not self.tracking_requests:
            return
        self._requests.append(TrackedRequest(
            url=request.url,
            method=request.method,
            resource_type=request.resource_type,
            headers=dict(request.headers),
            timestamp=time.time(),
        ))
    
    # ==================== Queries ====================
    
    def console_messages(self) -> List[ConsoleMessage]:
        return list(self._console)
    
    def clear_console_messages(self) -> None:
        self._console.clear()
    
    def page_errors(self) -> List[PageErrorRecord]:
        return list(self._errors)
    
    def clear_page_errors(self) -> None:
        self._errors.clear()
    
    def start_request_tracking(self) -> None:
        self.tracking_requests = True
    
    def stop_request_tracking(self) -> None:
        self.tracking_requests = False
    
    def requests(self, url_filter: Optional[str] = None) -> List[TrackedRequest]:
        """Tracked requests, optionally only those whose URL contains ``url_filter``."""
        if url_filter:
            return [request for request in self._requests if url_filter in request.url]
        return list(self._requests)
    
    def clear_requests(self) -> None:
        self._requests.clear()
    
    def clear(self) -> None:
        self._console.clear()
        self._errors.clear()
        self._requests.clear()
        self.tracking_requests = False
