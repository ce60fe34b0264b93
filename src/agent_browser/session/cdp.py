"""
CDP Session Controller - One DevTools session for the active tab.

Chromium-only. The session is created lazily on first use, cached, and
dropped whenever the active tab changes. Screencast streaming and input
injection both borrow it.
"""

import enum
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, TYPE_CHECKING

from agent_browser.exceptions import ScreencastError

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)


class Modifier(enum.IntFlag):
    """Modifier bitmask used by the Input domain."""
    NONE = 0
    ALT = 1
    CTRL = 2
    META = 4
    SHIFT = 8


class CDPSessionController:
    """
    Owns at most one CDP session, bound to the page returned by ``get_page``.
    
    Example:
        >>> controller = CDPSessionController(manager.get_page)
        >>> session = await controller.get_session()
        >>> await session.send("Page.bringToFront")
        >>> await controller.invalidate()
    """
    
    def __init__(self, get_page: Callable[[], "Page"]):
        self._get_page = get_page
        self._session: Optional["CDPSession"] = None
        self._page: Optional["Page"] = None
        self._invalidation_hooks: List[Callable[[], Awaitable[None]]] = []
    
    @property
    def session(self) -> Optional["CDPSession"]:
        """The cached session, if any (never creates one)."""
        return self._session
    
    def add_invalidation_hook(self, hook: Callable[[], Awaitable[None]]) -> None:
        """Register a coroutine run before the session is detached."""
        self._invalidation_hooks.append(hook)
    
    async def get_session(self) -> "CDPSession":
        """
        Get or create the CDP session for the active page.
        
        A cached session bound to a page that is no longer active is
        invalidated first, so callers never talk to a replaced tab.
        """
        page = self._get_page()
        
        if self._session is not None and self._page is not page:
            await self.invalidate()
        
        if self._session is None:
            self._session = await page.context.new_cdp_session(page)
            self._page = page
            logger.debug("CDP session created")
        
        return self._session
    
    async def invalidate(self) -> None:
        """
        Drop the current session.
        
        Hooks (screencast stop) run first while the session is still
        attached. Errors are logged; the session is always cleared.
        """
        for hook in self._invalidation_hooks:
            try:
                await hook()
            except Exception as e:
                logger.warning(f"CDP invalidation hook failed: {e}")
        
        session = self._session
        self._session = None
        self._page = None
        
        if session is not None:
            try:
                await session.detach()
            except Exception as e:
                logger.debug(f"CDP session detach failed: {e}")


# ==================== Screencast ====================

@dataclass
class ScreencastFrame:
    """A frame delivered by Page.screencastFrame."""
    data: str  # base64 encoded image
    metadata: Dict[str, Any]
    session_id: int


@dataclass
class ScreencastOptions:
    """Parameters for Page.startScreencast."""
    format: Literal["jpeg", "png"] = "jpeg"
    quality: int = 80  # jpeg only
    max_width: int = 1280
    max_height: int = 720
    every_nth_frame: int = 1
    
    def to_params(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "quality": self.quality,
            "maxWidth": self.max_width,
            "maxHeight": self.max_height,
            "everyNthFrame": self.every_nth_frame,
        }


FrameCallback = Callable[[ScreencastFrame], Any]


class Screencast:
    """
    Streams viewport frames over the CDP session.
    
    Every frame is acknowledged before the callback runs; Chromium stops
    producing frames until the previous one is acked.
    """
    
    def __init__(
        self,
        controller: CDPSessionController,
        defaults: Optional[ScreencastOptions] = None,
    ):
        self._controller = controller
        self._defaults = defaults or ScreencastOptions()
        self._active = False
        self._session: Optional["CDPSession"] = None
        self._callback: Optional[FrameCallback] = None
        self._handler: Optional[Callable[[Dict[str, Any]], Awaitable[None]]] = None
        # A screencast cannot survive a session swap
        controller.add_invalidation_hook(self.stop)
    
    @property
    def is_active(self) -> bool:
        return self._active
    
    async def start(
        self,
        callback: FrameCallback,
        options: Optional[ScreencastOptions] = None,
    ) -> None:
        """
        Start streaming frames to ``callback`` (sync or async).
        
        Raises:
            ScreencastError: If a screencast is already active
        """
        if self._active:
            raise ScreencastError("Screencast already active")
        
        session = await self._controller.get_session()
        self._active = True
        self._session = session
        self._callback = callback
        
        async def on_frame(params: Dict[str, Any]) -> None:
            frame = ScreencastFrame(
                data=params["data"],
                metadata=params.get("metadata", {}),
                session_id=params["sessionId"],
            )
            await session.send("Page.screencastFrameAck", {"sessionId": frame.session_id})
            
            if self._callback is not None:
                result = self._callback(frame)
                if inspect.isawaitable(result):
                    await result
        
        self._handler = on_frame
        session.on("Page.screencastFrame", on_frame)
        
        try:
            await session.send("Page.startScreencast", (options or self._defaults).to_params())
        except Exception:
            session.remove_listener("Page.screencastFrame", on_frame)
            self._reset()
            raise
        
        logger.debug("Screencast started")
    
    async def stop(self) -> None:
        """Stop streaming. Silent no-op when not active."""
        if not self._active:
            return
        
        session = self._session
        handler = self._handler
        try:
            if session is not None:
                await session.send("Page.stopScreencast")
                if handler is not None:
                    session.remove_listener("Page.screencastFrame", handler)
        except Exception as e:
            logger.debug(f"Ignoring screencast stop error: {e}")
        finally:
            self._reset()
        
        logger.debug("Screencast stopped")
    
    def _reset(self) -> None:
        self._active = False
        self._session = None
        self._callback = None
        self._handler = None


# ==================== Input injection ====================

MouseEventType = Literal["mousePressed", "mouseReleased", "mouseMoved", "mouseWheel"]
MouseButton = Literal["left", "right", "middle", "none"]
KeyEventType = Literal["keyDown", "keyUp", "char"]
TouchEventType = Literal["touchStart", "touchEnd", "touchMove", "touchCancel"]

_MOUSE_BUTTONS = {"left", "right", "middle"}


@dataclass
class MouseEvent:
    type: MouseEventType
    x: float
    y: float
    button: Optional[str] = None
    click_count: int = 1
    delta_x: float = 0
    delta_y: float = 0
    modifiers: int = 0


@dataclass
class KeyboardEvent:
    type: KeyEventType
    key: Optional[str] = None
    code: Optional[str] = None
    text: Optional[str] = None
    modifiers: int = 0


@dataclass
class TouchPoint:
    x: float
    y: float
    id: Optional[int] = None


@dataclass
class TouchEvent:
    type: TouchEventType
    touch_points: List[TouchPoint] = field(default_factory=list)
    modifiers: int = 0


class InputInjector:
    """
    Forwards synthetic input over the CDP session.
    
    Stateless between calls; validation is left to Chromium.
    """
    
    def __init__(self, controller: CDPSessionController):
        self._controller = controller
    
    async def mouse(self, event: MouseEvent) -> None:
        """Dispatch Input.dispatchMouseEvent."""
        session = await self._controller.get_session()
        button = event.button if event.button in _MOUSE_BUTTONS else "none"
        await session.send("Input.dispatchMouseEvent", {
            "type": event.type,
            "x": event.x,
            "y": event.y,
            "button": button,
            "clickCount": event.click_count,
            "deltaX": event.delta_x,
            "deltaY": event.delta_y,
            "modifiers": int(event.modifiers),
        })
    
    async def keyboard(self, event: KeyboardEvent) -> None:
        """Dispatch Input.dispatchKeyEvent."""
        session = await self._controller.get_session()
        params: Dict[str, Any] = {"type": event.type, "modifiers": int(event.modifiers)}
        for name in ("key", "code", "text"):
            value = getattr(event, name)
            if value is not None:
                params[name] = value
        await session.send("Input.dispatchKeyEvent", params)
    
    async def touch(self, event: TouchEvent) -> None:
        """Dispatch Input.dispatchTouchEvent; point ids default to their position."""
        session = await self._controller.get_session()
        await session.send("Input.dispatchTouchEvent", {
            "type": event.type,
            "touchPoints": [
                {"x": point.x, "y": point.y, "id": point.id if point.id is not None else i}
                for i, point in enumerate(event.touch_points)
            ],
            "modifiers": int(event.modifiers),
        })
