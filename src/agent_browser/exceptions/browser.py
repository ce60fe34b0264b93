"""
Browser-related exceptions.
"""

from agent_browser.exceptions.base import AgentBrowserError


class BrowserError(AgentBrowserError):
    """Base exception for browser-related errors."""
    pass


class BrowserLaunchError(BrowserError):
    """
    Error launching the browser.
    
    Raised when the browser fails to start, which could be due to:
    - Missing browser binaries
    - Invalid executable path
    - Resource constraints
    """
    pass


class BrowserConnectionError(BrowserError):
    """
    Error connecting to the browser.
    
    Raised when a CDP endpoint cannot be reached, or when an attached
    browser has no usable context or page. The message carries the
    remediation hint (e.g. the missing --remote-debugging-port flag).
    """
    pass


class BrowserNotLaunchedError(BrowserError):
    """Raised when a page-scoped operation runs before launch."""
    
    def __init__(self, message: str = "Browser not launched. Call launch first."):
        super().__init__(message)


class RemoteProviderError(BrowserError):
    """
    Error talking to a remote browser provider.
    
    Attributes:
        provider: Provider name
        status_code: HTTP status code, when the failure was an HTTP response
        session_id: Id of a remote session that was created before the
            failure and still needs releasing
    """
    
    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        session_id: str | None = None,
    ):
        super().__init__(message, {"provider": provider, "status_code": status_code})
        self.provider = provider
        self.status_code = status_code
        self.session_id = session_id


class TabStateError(BrowserError):
    """Base exception for tab registry errors."""
    pass


class TabIndexError(TabStateError):
    """
    Tab index out of range.
    
    Raised when an index no longer points at a tracked tab; the
    message names the currently valid range.
    """
    
    def __init__(self, message: str, index: int, total: int):
        super().__init__(message)
        self.index = index
        self.total = total


class LastTabError(TabStateError):
    """Closing the only remaining tab (use close() for the whole session)."""
    
    def __init__(
        self,
        message: str = "Cannot close the last tab. Use \"close\" to close the browser.",
    ):
        super().__init__(message)


class ScreencastError(BrowserError):
    """Screencast could not be started."""
    pass


class RecordingError(BrowserError):
    """
    Video recording could not be started.
    
    Attributes:
        output_path: The requested output file
    """
    
    def __init__(self, message: str, output_path: str | None = None):
        super().__init__(message)
        self.output_path = output_path


class PageError(BrowserError):
    """Base exception for page-related errors."""
    pass


class NavigationError(PageError):
    """
    Error during page navigation.
    
    Raised when navigation fails, such as:
    - Invalid URL
    - Network error
    - Navigation timeout
    """
    
    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url


class FrameNotFoundError(PageError):
    """
    No frame matched a selector, name or URL.
    
    Attributes:
        locator: The selector, name or URL that was looked up
    """
    
    def __init__(self, message: str, locator: str | None = None):
        super().__init__(message, {"frame": locator})
        self.locator = locator
