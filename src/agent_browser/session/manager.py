"""
Browser Manager - Session & resource lifecycle for multi-tab automation.

The manager owns the browser handle, its contexts and tabs, the CDP
session of the active tab (and the screencast/input subsystems built on
it), video recording, scoped headers and snapshot refs. Every
page-scoped call targets the active tab.

Example:
    >>> async with BrowserManager() as manager:
    ...     await manager.launch(LaunchOptions(headless=True))
    ...     await manager.get_page().goto("https://example.com")
    ...     await manager.new_tab()
    ...     print(await manager.list_tabs())
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Tuple, TYPE_CHECKING

import httpx

from agent_browser.config import Settings, get_settings
from agent_browser.exceptions import (
    BrowserConnectionError,
    BrowserLaunchError,
    BrowserNotLaunchedError,
    ConfigurationError,
    FrameNotFoundError,
)
from agent_browser.interfaces.snapshot import (
    EnhancedSnapshot,
    ISnapshotProvider,
    RefMap,
    SnapshotOptions,
)
from agent_browser.providers import RemoteProvider, create_provider
from agent_browser.session.activity import ConsoleMessage, PageActivity, PageErrorRecord, TrackedRequest
from agent_browser.session.cdp import (
    CDPSessionController,
    FrameCallback,
    InputInjector,
    KeyboardEvent,
    MouseEvent,
    Screencast,
    ScreencastOptions,
    TouchEvent,
)
from agent_browser.session.connection import (
    AttachTarget,
    CDPDiscovery,
    ConnectionTarget,
    LaunchOptions,
    LocalTarget,
    PersistentTarget,
    RemoteTarget,
    connect_failure_message,
    normalize_cdp_endpoint,
    validate_launch_options,
)
from agent_browser.session.headers import ScopedHeaderRouter
from agent_browser.session.recording import RecordingResult, RestartResult, VideoRecorder
from agent_browser.session.refs import RefResolver
from agent_browser.session.routes import MockResponse, RouteMocker
from agent_browser.session.registry import TabClosed, TabInfo, TabOpened, TabRegistry
from agent_browser.session.state import StorageState, load_storage_state

if TYPE_CHECKING:
    from playwright.async_api import (
        Browser,
        BrowserContext,
        CDPSession,
        Dialog,
        Frame,
        Locator,
        Page,
        Playwright,
    )

logger = logging.getLogger(__name__)

_DEFAULT_VIEWPORT: Any = object()

DialogHandler = Callable[["Dialog"], Awaitable[None]]


class BrowserManager:
    """
    Manages the Playwright browser lifecycle with multiple tabs/windows.
    
    Not safe for concurrent callers: one logical owner drives it, while
    engine events (new tab, tab closed) may interleave with its calls.
    """
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        snapshot_provider: Optional[ISnapshotProvider] = None,
        playwright: Optional["Playwright"] = None,
        discovery: Optional[CDPDiscovery] = None,
        provider_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the manager (nothing is launched yet).
        
        Args:
            settings: Configuration; the global settings when omitted
            snapshot_provider: Accessibility snapshot builder
            playwright: An already started Playwright driver; when omitted
                the manager starts (and later stops) its own
            discovery: Auto-connect strategy, built from settings if omitted
            provider_transport: httpx transport for remote provider calls
        """
        self._settings = settings or get_settings()
        self._snapshot_provider = snapshot_provider
        self._playwright = playwright
        self._owns_playwright = playwright is None
        self._discovery = discovery
        self._provider_transport = provider_transport
        
        self._browser: Optional["Browser"] = None
        self._target: Optional[ConnectionTarget] = None
        self._provider: Optional[RemoteProvider] = None
        self._launch_warnings: List[str] = []
        self._last_snapshot: str = ""
        
        self._activity = PageActivity()
        self._registry = TabRegistry(
            on_active_changed=self.invalidate_session,
            on_page_tracked=self._activity.attach,
        )
        self._cdp = CDPSessionController(self.get_page)
        screencast = self._settings.screencast
        self._screencast = Screencast(
            self._cdp,
            ScreencastOptions(
                format=screencast.format,
                quality=screencast.quality,
                max_width=screencast.max_width,
                max_height=screencast.max_height,
                every_nth_frame=screencast.every_nth_frame,
            ),
        )
        self._input = InputInjector(self._cdp)
        self._recorder = VideoRecorder(
            self._registry,
            self.invalidate_session,
            settings=self._settings.recording,
            session_name=self._session_name,
        )
        self._refs = RefResolver()
        self._scoped_headers = ScopedHeaderRouter()
        self._routes = RouteMocker()
        self._dialog: Optional[Tuple["Page", DialogHandler]] = None
        self._active_frame: Optional["Frame"] = None
        self._har_path: Optional[str] = None
    
    async def __aenter__(self) -> "BrowserManager":
        return self
    
    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
    
    @property
    def _session_name(self) -> str:
        return os.environ.get("AGENT_BROWSER_SESSION") or self._settings.browser.session_name
    
    @property
    def target(self) -> Optional[ConnectionTarget]:
        """How the current browser was obtained (None when closed)."""
        return self._target
    
    def is_launched(self) -> bool:
        """Check if a browser handle or a persistent context is held."""
        return self._browser is not None or isinstance(self._target, PersistentTarget)
    
    def get_and_clear_warnings(self) -> List[str]:
        """Get and clear launch warnings (e.g. state file decryption failures)."""
        warnings = self._launch_warnings
        self._launch_warnings = []
        return warnings
    
    # ==================== Launch ====================
    
    async def launch(self, options: Optional[LaunchOptions] = None, **kwargs: Any) -> None:
        """
        Launch or attach a browser.
        
        A no-op when already launched in the requested mode. Switching
        mode (endpoint change, attach <-> local) or a dead CDP connection
        closes the current session first.
        
        Args:
            options: Launch options (or pass the same fields as kwargs)
            
        Raises:
            LaunchConfigurationError: Conflicting options (nothing launched)
            BrowserConnectionError: CDP endpoint unreachable or empty
            BrowserLaunchError: Local launch failed
        """
        options = options or LaunchOptions(**kwargs)
        validate_launch_options(options)
        endpoint = options.cdp_endpoint
        
        if self.is_launched():
            if not self._needs_relaunch(options):
                return
            logger.info("Connection mode changed; closing the current session")
            await self.close()
        
        if endpoint:
            await self.connect_via_cdp(endpoint)
            return
        
        if options.auto_connect:
            await self._get_discovery().connect(self.connect_via_cdp)
            return
        
        # Remote providers are paid services: explicit opt-in only
        provider = options.resolved_provider() or self._settings.provider.name
        if provider:
            await self._connect_to_provider(provider)
            return
        
        await self._launch_local(options)
    
    def _needs_relaunch(self, options: LaunchOptions) -> bool:
        endpoint = options.cdp_endpoint
        attached = isinstance(self._target, AttachTarget)
        
        if not endpoint and not options.auto_connect and attached:
            return True
        if endpoint and self._needs_cdp_reconnect(endpoint):
            return True
        if options.auto_connect and not self._is_cdp_connection_alive():
            return True
        return False
    
    def _needs_cdp_reconnect(self, endpoint: str) -> bool:
        if self._browser is None or not self._browser.is_connected():
            return True
        if not isinstance(self._target, AttachTarget) or self._target.endpoint != endpoint:
            return True
        return not self._is_cdp_connection_alive()
    
    def _is_cdp_connection_alive(self) -> bool:
        """Connected and at least one context still has a page."""
        if self._browser is None:
            return False
        try:
            if not self._browser.is_connected():
                return False
            return any(context.pages for context in self._browser.contexts)
        except Exception:
            return False
    
    async def _ensure_playwright(self) -> "Playwright":
        if self._playwright is None:
            from playwright.async_api import async_playwright
            
            self._playwright = await async_playwright().start()
            self._owns_playwright = True
        return self._playwright
    
    def _get_discovery(self) -> CDPDiscovery:
        if self._discovery is None:
            discovery = self._settings.discovery
            self._discovery = CDPDiscovery(
                probe_ports=discovery.probe_ports,
                probe_timeout=discovery.probe_timeout,
            )
        return self._discovery
    
    async def connect_via_cdp(self, endpoint: str) -> None:
        """
        Attach to a running browser over CDP.
        
        Args:
            endpoint: A port number or a ws://, wss://, http(s):// URL
        """
        url = normalize_cdp_endpoint(endpoint)
        playwright = await self._ensure_playwright()
        
        try:
            browser = await playwright.chromium.connect_over_cdp(url)
        except Exception as e:
            raise BrowserConnectionError(connect_failure_message(endpoint, url)) from e
        
        try:
            contexts = list(browser.contexts)
            if not contexts:
                raise BrowserConnectionError(
                    "No browser context found. Make sure the app has an open window."
                )
            # Pages without a URL can hang Playwright
            pages = [page for context in contexts for page in context.pages if page.url]
            if not pages:
                raise BrowserConnectionError("No page found. Make sure the app has loaded content.")
        except Exception:
            try:
                await browser.close()
            except Exception as e:
                logger.debug(f"Ignoring disconnect error: {e}")
            raise
        
        self._browser = browser
        self._target = AttachTarget(endpoint=endpoint)
        for context in contexts:
            context.set_default_timeout(self._settings.browser.attach_timeout_ms)
            self._registry.track_context(context)
        for page in pages:
            self._registry.track_page(page)
        self._registry.active_index = 0
        
        logger.info(
            f"Connected via CDP to {url} ({len(pages)} tabs)",
            extra={"session": self._session_name},
        )
    
    async def _connect_to_provider(self, name: str) -> None:
        provider = create_provider(
            name,
            settings=self._settings.provider,
            transport=self._provider_transport,
        )
        playwright = await self._ensure_playwright()
        connection = await provider.connect(playwright)
        
        self._provider = provider
        self._browser = connection.browser
        self._target = RemoteTarget(
            provider=name,
            session_id=connection.session_id,
            credentials=connection.credentials,
        )
        self._registry.track_context(connection.context)
        self._registry.track_page(connection.page)
        self._registry.activate(connection.page)
        
        logger.info(
            f"Connected to {provider.label} session {connection.session_id}",
            extra={"session": self._session_name},
        )
    
    async def _launch_local(self, options: LaunchOptions) -> None:
        playwright = await self._ensure_playwright()
        launcher = getattr(playwright, options.browser)
        args = options.launch_args()
        context_options: Dict[str, Any] = {
            "viewport": options.resolved_viewport(),
            "extra_http_headers": options.headers,
            "user_agent": options.user_agent,
            "ignore_https_errors": options.ignore_https_errors,
        }
        if options.proxy:
            context_options["proxy"] = options.proxy
        if options.har_path:
            # Written when the context closes
            context_options["record_har_path"] = options.har_path
        
        context: "BrowserContext"
        try:
            if options.extensions:
                # Extensions need a persistent, headful context
                extension_paths = ",".join(options.extensions)
                user_data_dir = Path(tempfile.gettempdir()) / f"agent-browser-ext-{self._session_name}"
                context = await launcher.launch_persistent_context(
                    str(user_data_dir),
                    headless=False,
                    executable_path=options.executable_path,
                    args=[
                        f"--disable-extensions-except={extension_paths}",
                        f"--load-extension={extension_paths}",
                        *(args or []),
                    ],
                    **context_options,
                )
                self._target = PersistentTarget(user_data_dir=str(user_data_dir))
            elif options.profile:
                profile_path = os.path.expanduser(options.profile)
                context = await launcher.launch_persistent_context(
                    profile_path,
                    headless=options.headless,
                    executable_path=options.executable_path,
                    args=args,
                    **context_options,
                )
                self._target = PersistentTarget(user_data_dir=profile_path)
            else:
                self._browser = await launcher.launch(
                    headless=options.headless,
                    executable_path=options.executable_path,
                    args=args,
                )
                self._target = LocalTarget()
                context = await self._browser.new_context(
                    storage_state=self._initial_storage_state(options),
                    **context_options,
                )
            self._registry.track_context(context)
            context.set_default_timeout(self._settings.browser.local_timeout_ms)
            page = context.pages[0] if context.pages else await context.new_page()
        except Exception as e:
            await self.close()
            raise BrowserLaunchError(f"Failed to launch {options.browser} browser: {e}") from e
        
        self._registry.track_page(page)
        self._registry.activate(page)
        self._har_path = options.har_path
        
        logger.info(
            f"Launched {options.browser} browser (headless={options.headless})",
            extra={"session": self._session_name},
        )
    
    def _initial_storage_state(self, options: LaunchOptions) -> Optional[StorageState]:
        if options.storage_state:
            return options.storage_state
        if not options.auto_state_file_path:
            return None
        result = load_storage_state(options.auto_state_file_path)
        if result.warning:
            self._launch_warnings.append(result.warning)
        return result.state
    
    # ==================== Pages ====================
    
    def get_page(self) -> "Page":
        """
        Get the active page.
        
        Raises:
            BrowserNotLaunchedError: If no page is tracked
        """
        page = self._registry.active_page
        if page is None:
            raise BrowserNotLaunchedError()
        return page
    
    def has_pages(self) -> bool:
        return self._registry.has_pages()
    
    async def ensure_page(self) -> None:
        """
        Make sure a page exists.
        
        If the browser is launched but every page was closed externally,
        a page is opened on the last known context. No-op otherwise.
        """
        if not self.is_launched():
            return
        await self._registry.ensure_page(self._browser, self._settings.browser.local_timeout_ms)
    
    def get_pages(self) -> List["Page"]:
        return list(self._registry.pages)
    
    def get_active_index(self) -> int:
        return self._registry.active_index
    
    def get_browser(self) -> Optional["Browser"]:
        return self._browser
    
    def get_context(self) -> Optional["BrowserContext"]:
        """The first (shared) context, if any."""
        return self._registry.contexts[0] if self._registry.contexts else None
    
    # ==================== Tabs ====================
    
    async def new_tab(self) -> TabOpened:
        """Open a tab in the shared context and switch to it."""
        if not self.is_launched():
            raise BrowserNotLaunchedError("Browser not launched")
        return await self._registry.new_tab()
    
    async def new_window(self, viewport: Optional[Dict[str, int]] = _DEFAULT_VIEWPORT) -> TabOpened:
        """
        Open a new window (a new context) and switch to it.
        
        Args:
            viewport: Window viewport; None disables viewport emulation
        """
        if self._browser is None:
            raise BrowserNotLaunchedError("Browser not launched")
        if viewport is _DEFAULT_VIEWPORT:
            viewport = {
                "width": self._settings.browser.viewport_width,
                "height": self._settings.browser.viewport_height,
            }
        return await self._registry.new_window(
            self._browser,
            viewport,
            self._settings.browser.local_timeout_ms,
        )
    
    async def switch_to(self, index: int) -> TabInfo:
        """Switch the active tab; the returned title is always empty."""
        return await self._registry.switch_to(index)
    
    async def close_tab(self, index: Optional[int] = None) -> TabClosed:
        """Close a tab (default: the active one). The last tab cannot be closed."""
        return await self._registry.close_tab(index)
    
    async def list_tabs(self) -> List[TabInfo]:
        return await self._registry.list_tabs()
    
    # ==================== Snapshot & refs ====================
    
    async def get_snapshot(
        self,
        interactive: bool = False,
        cursor: bool = False,
        max_depth: Optional[int] = None,
        compact: bool = False,
        selector: Optional[str] = None,
    ) -> EnhancedSnapshot:
        """
        Snapshot the active page and cache its ref map.
        
        Raises:
            ConfigurationError: If no snapshot provider was given
        """
        if self._snapshot_provider is None:
            raise ConfigurationError("No snapshot provider configured")
        
        snapshot = await self._snapshot_provider.snapshot(
            self.get_page(),
            SnapshotOptions(
                interactive=interactive,
                cursor=cursor,
                max_depth=max_depth,
                compact=compact,
                selector=selector,
            ),
        )
        self._refs.update(snapshot.refs)
        self._last_snapshot = snapshot.tree
        return snapshot
    
    def get_ref_map(self) -> RefMap:
        return self._refs.refs
    
    @property
    def last_snapshot(self) -> str:
        return self._last_snapshot
    
    def is_ref(self, selector: str) -> bool:
        return self._refs.is_ref(selector)
    
    def get_locator_from_ref(self, ref: str) -> Optional["Locator"]:
        """Locator for "e1" / "@e1" / "ref=e1", or None if unknown."""
        return self._refs.resolve(self.get_page(), ref)
    
    def get_locator(self, selector_or_ref: str) -> "Locator":
        """Locator for a ref, falling back to a regular selector."""
        return self._refs.get_locator(self.get_page(), selector_or_ref)
    
    # ==================== Headers, viewport, state ====================
    
    async def set_scoped_headers(self, origin: str, headers: Dict[str, str]) -> None:
        """Send ``headers`` only with requests to ``origin``."""
        await self._scoped_headers.set(self.get_page(), origin, headers)
    
    async def clear_scoped_headers(self, origin: Optional[str] = None) -> None:
        """Clear scoped headers for an origin, or all of them."""
        await self._scoped_headers.clear(origin)
    
    async def set_extra_headers(self, headers: Dict[str, str]) -> None:
        """Headers sent with every request of the shared context."""
        context = self.get_context()
        if context is not None:
            await context.set_extra_http_headers(headers)
    
    async def set_viewport(self, width: int, height: int) -> None:
        await self.get_page().set_viewport_size({"width": width, "height": height})
    
    async def set_device_scale_factor(
        self,
        device_scale_factor: float,
        width: int,
        height: int,
        mobile: bool = False,
    ) -> None:
        """
        Override devicePixelRatio via CDP.
        
        Screenshots stay at logical (viewport) size; set the scale factor
        at context creation for physical-pixel screenshots.
        """
        session = await self.get_cdp_session()
        await session.send("Emulation.setDeviceMetricsOverride", {
            "width": width,
            "height": height,
            "deviceScaleFactor": device_scale_factor,
            "mobile": mobile,
        })
    
    async def clear_device_metrics_override(self) -> None:
        session = await self.get_cdp_session()
        await session.send("Emulation.clearDeviceMetricsOverride")
    
    async def save_storage_state(self, path: str) -> None:
        """Write cookies and localStorage of the shared context to ``path``."""
        context = self.get_context()
        if context is not None:
            await context.storage_state(path=path)
    
    async def start_tracing(self, screenshots: bool = True, snapshots: bool = True) -> None:
        context = self.get_context()
        if context is not None:
            await context.tracing.start(screenshots=screenshots, snapshots=snapshots)
    
    async def stop_tracing(self, path: Optional[str] = None) -> None:
        context = self.get_context()
        if context is not None:
            await context.tracing.stop(path=path)
    
    # ==================== Context emulation ====================
    
    def _active_context(self) -> Optional["BrowserContext"]:
        page = self._registry.active_page
        if page is not None:
            return page.context
        return self.get_context()
    
    async def set_offline(self, offline: bool) -> None:
        """Emulate network loss for the active tab's context."""
        context = self._active_context()
        if context is not None:
            await context.set_offline(offline)
    
    async def set_geolocation(
        self,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
    ) -> None:
        context = self._active_context()
        if context is not None:
            geolocation: Dict[str, float] = {"latitude": latitude, "longitude": longitude}
            if accuracy is not None:
                geolocation["accuracy"] = accuracy
            await context.set_geolocation(geolocation)
    
    async def set_permissions(self, permissions: List[str], grant: bool) -> None:
        """
        Grant ``permissions`` (e.g. "geolocation", "clipboard-read").
        
        With grant=False every permission override of the context is
        cleared; Playwright cannot revoke a single one.
        """
        context = self._active_context()
        if context is None:
            return
        if grant:
            await context.grant_permissions(permissions)
        else:
            await context.clear_permissions()
    
    async def get_device(self, name: str) -> Optional[Dict[str, Any]]:
        """Playwright device descriptor (viewport, user agent, ...) or None."""
        playwright = await self._ensure_playwright()
        return playwright.devices.get(name)
    
    async def list_devices(self) -> List[str]:
        playwright = await self._ensure_playwright()
        return sorted(playwright.devices)
    
    def is_har_recording(self) -> bool:
        return self._har_path is not None
    
    @property
    def har_path(self) -> Optional[str]:
        """HAR file the first context records into (written on close)."""
        return self._har_path
    
    # ==================== Frames & dialogs ====================
    
    def get_frame(self) -> "Frame":
        """The selected frame, or the active tab's main frame."""
        frame = self._active_frame
        if frame is not None and not frame.is_detached():
            return frame
        self._active_frame = None
        return self.get_page().main_frame
    
    async def switch_to_frame(
        self,
        selector: Optional[str] = None,
        name: Optional[str] = None,
        url: Optional[str] = None,
    ) -> "Frame":
        """
        Select a frame of the active tab by iframe selector, name or URL.
        
        The selection is dropped when the active tab changes.
        
        Raises:
            FrameNotFoundError: Nothing matched
        """
        page = self.get_page()
        
        if selector:
            element = await page.query_selector(selector)
            if element is None:
                raise FrameNotFoundError(f"Frame not found: {selector}", locator=selector)
            frame = await element.content_frame()
            if frame is None:
                raise FrameNotFoundError(f"Element is not a frame: {selector}", locator=selector)
        elif name:
            frame = page.frame(name=name)
            if frame is None:
                raise FrameNotFoundError(f"Frame not found with name: {name}", locator=name)
        elif url:
            frame = page.frame(url=url)
            if frame is None:
                raise FrameNotFoundError(f"Frame not found with URL: {url}", locator=url)
        else:
            raise ValueError("switch_to_frame needs a selector, name or url")
        
        self._active_frame = frame
        return frame
    
    def switch_to_main_frame(self) -> None:
        self._active_frame = None
    
    def set_dialog_handler(
        self,
        response: Literal["accept", "dismiss"],
        prompt_text: Optional[str] = None,
    ) -> None:
        """Answer every alert/confirm/prompt of the active tab automatically."""
        self.clear_dialog_handler()
        page = self.get_page()
        
        async def handler(dialog: "Dialog") -> None:
            if response == "accept":
                await dialog.accept(prompt_text)
            else:
                await dialog.dismiss()
        
        page.on("dialog", handler)
        self._dialog = (page, handler)
    
    def clear_dialog_handler(self) -> None:
        """Remove the dialog handler from the tab it was set on."""
        if self._dialog is None:
            return
        page, handler = self._dialog
        self._dialog = None
        page.remove_listener("dialog", handler)
    
    # ==================== Activity & routes ====================
    
    def get_console_messages(self) -> List[ConsoleMessage]:
        """Console output of every tab, oldest first."""
        return self._activity.console_messages()
    
    def clear_console_messages(self) -> None:
        self._activity.clear_console_messages()
    
    def get_page_errors(self) -> List[PageErrorRecord]:
        """Uncaught script errors of every tab, oldest first."""
        return self._activity.page_errors()
    
    def clear_page_errors(self) -> None:
        self._activity.clear_page_errors()
    
    def start_request_tracking(self) -> None:
        """Record requests of every tab until stop_request_tracking()."""
        self._activity.start_request_tracking()
    
    def stop_request_tracking(self) -> None:
        self._activity.stop_request_tracking()
    
    def get_requests(self, url_filter: Optional[str] = None) -> List[TrackedRequest]:
        return self._activity.requests(url_filter)
    
    def clear_requests(self) -> None:
        self._activity.clear_requests()
    
    async def add_route(
        self,
        url: str,
        response: Optional[MockResponse] = None,
        abort: bool = False,
    ) -> None:
        """
        Intercept requests of the active tab matching ``url``.
        
        Args:
            url: URL glob or pattern
            response: Fulfil with this canned response
            abort: Fail the request instead (wins over response)
        """
        await self._routes.add(self.get_page(), url, response=response, abort=abort)
    
    async def remove_route(self, url: Optional[str] = None) -> None:
        """Remove one route, or all of them, from the tabs they were added on."""
        await self._routes.remove(url)
    
    # ==================== CDP, screencast, input ====================
    
    async def get_cdp_session(self) -> "CDPSession":
        """Get or create the CDP session for the active page (Chromium only)."""
        return await self._cdp.get_session()
    
    async def invalidate_session(self) -> None:
        """
        Drop the CDP session of the active page.
        
        Called before every active-tab change; stops a running screencast
        and drops the frame selection.
        """
        self._active_frame = None
        await self._cdp.invalidate()
    
    def is_screencasting(self) -> bool:
        return self._screencast.is_active
    
    async def start_screencast(
        self,
        callback: FrameCallback,
        options: Optional[ScreencastOptions] = None,
    ) -> None:
        """Stream frames of the active page to ``callback``."""
        await self._screencast.start(callback, options)
    
    async def stop_screencast(self) -> None:
        await self._screencast.stop()
    
    async def inject_mouse_event(self, event: MouseEvent) -> None:
        await self._input.mouse(event)
    
    async def inject_keyboard_event(self, event: KeyboardEvent) -> None:
        await self._input.keyboard(event)
    
    async def inject_touch_event(self, event: TouchEvent) -> None:
        await self._input.touch(event)
    
    # ==================== Recording ====================
    
    def is_recording(self) -> bool:
        return self._recorder.is_recording
    
    async def start_recording(self, output_path: str, url: Optional[str] = None) -> None:
        """Record a new isolated context to a .webm file."""
        await self._recorder.start(self._browser, output_path, url)
    
    async def stop_recording(self) -> RecordingResult:
        return await self._recorder.stop()
    
    async def restart_recording(self, output_path: str, url: Optional[str] = None) -> RestartResult:
        return await self._recorder.restart(self._browser, output_path, url)
    
    # ==================== Close ====================
    
    async def close(self) -> None:
        """
        Close the session. Safe to call repeatedly.
        
        Every cleanup step runs even if an earlier one fails; failures
        are logged. Attached browsers are only disconnected, never closed,
        and remote sessions are released at their provider.
        """
        if self._recorder.is_recording:
            await self._cleanup("stop recording", self._recorder.stop())
        await self._cleanup("stop screencast", self._screencast.stop())
        await self._cleanup("detach CDP session", self._cdp.invalidate())
        
        target = self._target
        browser = self._browser
        if isinstance(target, RemoteTarget):
            if self._provider is not None:
                await self._cleanup(
                    f"close {self._provider.label} session",
                    self._provider.release(target.session_id, target.credentials),
                )
            if browser is not None:
                await self._cleanup("disconnect", browser.close())
        elif isinstance(target, AttachTarget):
            # Only disconnect; the pages belong to the external app
            if browser is not None:
                await self._cleanup("disconnect", browser.close())
        else:
            for page in list(self._registry.pages):
                await self._cleanup("close page", page.close())
            for context in list(self._registry.contexts):
                await self._cleanup("close context", context.close())
            if browser is not None:
                await self._cleanup("close browser", browser.close())
        
        if self._playwright is not None and self._owns_playwright:
            await self._cleanup("stop playwright", self._playwright.stop())
            self._playwright = None
        
        self._reset()
        if target is not None:
            logger.info("Browser closed")
    
    async def _cleanup(self, step: str, operation: Awaitable[Any]) -> None:
        try:
            await operation
        except Exception as e:
            logger.warning(f"Failed to {step}: {e}")
    
    def _reset(self) -> None:
        self._browser = None
        self._target = None
        self._provider = None
        self._registry.clear()
        self._refs.clear()
        self._scoped_headers.reset()
        self._routes.reset()
        self._activity.clear()
        self._dialog = None
        self._active_frame = None
        self._har_path = None
        self._last_snapshot = ""
