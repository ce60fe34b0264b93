"""
Session module - Browser session lifecycle.

BrowserManager is the entry point; the other classes are its building
blocks and are exported for callers that compose them differently.
"""

from agent_browser.session.manager import BrowserManager
from agent_browser.session.connection import (
    LaunchOptions,
    ConnectionTarget,
    LocalTarget,
    PersistentTarget,
    AttachTarget,
    RemoteTarget,
    CDPDiscovery,
    normalize_cdp_endpoint,
    validate_launch_options,
)
from agent_browser.session.registry import TabRegistry, TabInfo, TabOpened, TabClosed
from agent_browser.session.cdp import (
    CDPSessionController,
    Screencast,
    ScreencastFrame,
    ScreencastOptions,
    InputInjector,
    MouseEvent,
    KeyboardEvent,
    TouchEvent,
    TouchPoint,
    Modifier,
)
from agent_browser.session.recording import VideoRecorder, RecordingResult, RestartResult
from agent_browser.session.refs import RefResolver, parse_ref
from agent_browser.session.headers import ScopedHeaderRouter, origin_to_pattern, safe_header_merge
from agent_browser.session.routes import PageRouteTable, RouteMocker, MockResponse
from agent_browser.session.activity import PageActivity, ConsoleMessage, PageErrorRecord, TrackedRequest
from agent_browser.session.state import load_storage_state, StorageStateResult

__all__ = [
    "BrowserManager",
    "LaunchOptions",
    "ConnectionTarget",
    "LocalTarget",
    "PersistentTarget",
    "AttachTarget",
    "RemoteTarget",
    "CDPDiscovery",
    "normalize_cdp_endpoint",
    "validate_launch_options",
    "TabRegistry",
    "TabInfo",
    "TabOpened",
    "TabClosed",
    "CDPSessionController",
    "Screencast",
    "ScreencastFrame",
    "ScreencastOptions",
    "InputInjector",
    "MouseEvent",
    "KeyboardEvent",
    "TouchEvent",
    "TouchPoint",
    "Modifier",
    "VideoRecorder",
    "RecordingResult",
    "RestartResult",
    "RefResolver",
    "parse_ref",
    "ScopedHeaderRouter",
    "origin_to_pattern",
    "safe_header_merge",
    "PageRouteTable",
    "RouteMocker",
    "MockResponse",
    "PageActivity",
    "ConsoleMessage",
    "PageErrorRecord",
    "TrackedRequest",
    "load_storage_state",
    "StorageStateResult",
]
