"""
Connection Strategy - Launch options, validation and CDP discovery.

A session is populated by exactly one strategy, tried in this order:

1. Attach to an explicit CDP endpoint (cdp_url / cdp_port)
2. Auto-discover a locally running debuggable Chrome (auto_connect)
3. A remote provider, only when explicitly requested
4. Launch a local browser
"""

import logging
import os
import platform
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

from agent_browser.exceptions import BrowserConnectionError, LaunchConfigurationError

logger = logging.getLogger(__name__)

BrowserName = Literal["chromium", "firefox", "webkit"]

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}
FILE_ACCESS_ARGS = ["--allow-file-access-from-files", "--allow-file-access"]


class LaunchOptions(BaseModel):
    """
    Options for BrowserManager.launch().
    
    Attributes:
        viewport: None disables viewport emulation; leaving it unset
            picks 1280x720 unless args size the window themselves
        provider: Remote provider name; falls back to the
            AGENT_BROWSER_PROVIDER environment variable
        auto_state_file_path: State file loaded when storage_state is unset
        har_path: Record network traffic of the first context to this
            HAR file (local launches only; written on close)
    """
    headless: bool = True
    browser: BrowserName = "chromium"
    executable_path: Optional[str] = None
    args: Optional[List[str]] = None
    viewport: Optional[Dict[str, int]] = Field(default_factory=lambda: dict(DEFAULT_VIEWPORT))
    headers: Optional[Dict[str, str]] = None
    user_agent: Optional[str] = None
    proxy: Optional[Dict[str, str]] = None
    ignore_https_errors: bool = False
    extensions: Optional[List[str]] = None
    profile: Optional[str] = None
    storage_state: Optional[str] = None
    auto_state_file_path: Optional[str] = None
    cdp_url: Optional[str] = None
    cdp_port: Optional[int] = None
    auto_connect: bool = False
    provider: Optional[str] = None
    allow_file_access: bool = False
    har_path: Optional[str] = None
    
    @property
    def cdp_endpoint(self) -> Optional[str]:
        """cdp_url takes precedence over cdp_port."""
        if self.cdp_url:
            return self.cdp_url
        if self.cdp_port:
            return str(self.cdp_port)
        return None
    
    def resolved_provider(self) -> Optional[str]:
        return self.provider or os.environ.get("AGENT_BROWSER_PROVIDER") or None
    
    def launch_args(self) -> Optional[List[str]]:
        file_access = FILE_ACCESS_ARGS if self.allow_file_access else []
        if self.args:
            return [*file_access, *self.args]
        return list(file_access) or None
    
    def resolved_viewport(self) -> Optional[Dict[str, int]]:
        """
        Viewport for new contexts.
        
        An explicit viewport always wins. Otherwise --start-maximized or
        --window-size= disable emulation so the window keeps its own size.
        """
        if "viewport" in self.model_fields_set:
            return self.viewport
        args = self.launch_args() or []
        if any(arg == "--start-maximized" or arg.startswith("--window-size=") for arg in args):
            return None
        return dict(DEFAULT_VIEWPORT)


def validate_launch_options(options: LaunchOptions) -> None:
    """
    Reject conflicting options before anything is launched.
    
    Raises:
        LaunchConfigurationError: On the first conflict found
    """
    endpoint = options.cdp_endpoint
    has_extensions = bool(options.extensions)
    has_profile = bool(options.profile)
    has_storage_state = bool(options.storage_state)
    
    if has_extensions and endpoint:
        raise LaunchConfigurationError("Extensions cannot be used with CDP connection")
    if has_profile and endpoint:
        raise LaunchConfigurationError("Profile cannot be used with CDP connection")
    if has_storage_state and has_profile:
        raise LaunchConfigurationError(
            "Storage state cannot be used with profile (profile is already persistent storage)"
        )
    if has_storage_state and has_extensions:
        raise LaunchConfigurationError(
            "Storage state cannot be used with extensions (extensions require persistent context)"
        )
    if has_extensions and options.browser != "chromium":
        raise LaunchConfigurationError("Extensions are only supported in Chromium")
    if options.allow_file_access and options.browser != "chromium":
        raise LaunchConfigurationError("allow_file_access is only supported in Chromium")
    if options.har_path and (endpoint or options.auto_connect or options.resolved_provider()):
        raise LaunchConfigurationError("HAR recording requires a locally launched browser")


# ==================== Connection target ====================

@dataclass(frozen=True)
class LocalTarget:
    """Browser launched by us (ephemeral)."""


@dataclass(frozen=True)
class PersistentTarget:
    """Persistent context launched by us (profile or extensions)."""
    user_data_dir: str


@dataclass(frozen=True)
class AttachTarget:
    """Existing browser attached over CDP; we only disconnect from it."""
    endpoint: str


@dataclass(frozen=True)
class RemoteTarget:
    """Browser in a remote provider session."""
    provider: str
    session_id: str
    credentials: Dict[str, str] = field(repr=False, hash=False, compare=False, default_factory=dict)


ConnectionTarget = Union[LocalTarget, PersistentTarget, AttachTarget, RemoteTarget]


def normalize_cdp_endpoint(endpoint: str) -> str:
    """
    Turn a CDP endpoint into a URL for connect_over_cdp.
    
    ws://, wss://, http:// and https:// URLs are used as-is; anything
    else is taken as a localhost port.
    """
    if endpoint.startswith(("ws://", "wss://", "http://", "https://")):
        return endpoint
    return f"http://localhost:{endpoint}"


def connect_failure_message(endpoint: str, url: str) -> str:
    if "localhost" in url:
        return (
            f"Failed to connect via CDP to {url}. "
            f"Make sure the app is running with --remote-debugging-port={endpoint}"
        )
    return (
        f"Failed to connect via CDP to {url}. "
        "Make sure the remote browser is accessible and the URL is correct."
    )


# ==================== Auto-discovery ====================

@dataclass
class ActivePort:
    """Contents of a DevToolsActivePort file."""
    port: int
    ws_path: str


def chrome_user_data_dirs(
    system: Optional[str] = None,
    home: Optional[Path] = None,
) -> List[Path]:
    """Default user data directories, stable first then canary/Chromium."""
    system = system or platform.system()
    home = home or Path.home()
    
    if system == "Darwin":
        support = home / "Library" / "Application Support"
        return [
            support / "Google" / "Chrome",
            support / "Google" / "Chrome Canary",
            support / "Chromium",
        ]
    if system == "Windows":
        local = Path(os.environ.get("LOCALAPPDATA") or home / "AppData" / "Local")
        return [
            local / "Google" / "Chrome" / "User Data",
            local / "Google" / "Chrome SxS" / "User Data",
            local / "Chromium" / "User Data",
        ]
    return [
        home / ".config" / "google-chrome",
        home / ".config" / "google-chrome-unstable",
        home / ".config" / "chromium",
    ]


def read_devtools_active_port(user_data_dir: Path) -> Optional[ActivePort]:
    """Parse <user_data_dir>/DevToolsActivePort, or None if absent/invalid."""
    path = user_data_dir / "DevToolsActivePort"
    try:
        lines = path.read_text(encoding="utf-8").strip().splitlines()
    except OSError:
        return None
    if len(lines) < 2:
        return None
    
    port_text, ws_path = lines[0].strip(), lines[1].strip()
    if not re.fullmatch(r"\d+", port_text):
        return None
    port = int(port_text)
    if port <= 0 or port > 65535 or not ws_path:
        return None
    return ActivePort(port=port, ws_path=ws_path)


def missing_browser_hint(system: Optional[str] = None) -> str:
    system = system or platform.system()
    if system == "Darwin":
        command = (
            "/Applications/Google\\ Chrome.app/Contents/MacOS/Google\\ Chrome "
            "--remote-debugging-port=9222"
        )
    elif system == "Windows":
        command = "chrome.exe --remote-debugging-port=9222"
    else:
        command = "google-chrome --remote-debugging-port=9222"
    return (
        f"Start Chrome with: {command}\n"
        "Or enable remote debugging in Chrome 144+ at chrome://inspect/#remote-debugging"
    )


class CDPDiscovery:
    """
    Finds a running Chrome with remote debugging enabled.
    
    Example:
        >>> discovery = CDPDiscovery()
        >>> await discovery.connect(manager.attach)
    """
    
    def __init__(
        self,
        probe_ports: Optional[List[int]] = None,
        probe_timeout: float = 2.0,
        user_data_dirs: Optional[List[Path]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.probe_ports = probe_ports if probe_ports is not None else [9222, 9229]
        self.probe_timeout = probe_timeout
        self.user_data_dirs = user_data_dirs if user_data_dirs is not None else chrome_user_data_dirs()
        self._transport = transport
    
    async def probe(self, port: int) -> Optional[str]:
        """Return the port's webSocketDebuggerUrl, or None if it is not answering."""
        url = f"http://127.0.0.1:{port}/json/version"
        try:
            async with httpx.AsyncClient(timeout=self.probe_timeout, transport=self._transport) as client:
                response = await client.get(url)
            if not response.is_success:
                return None
            return response.json().get("webSocketDebuggerUrl")
        except (httpx.HTTPError, ValueError, AttributeError):
            return None
    
    async def connect(self, attach: Callable[[str], Awaitable[None]]) -> str:
        """
        Discover a browser and attach to it with ``attach``.
        
        Returns:
            The endpoint that was attached
            
        Raises:
            BrowserConnectionError: Nothing found, with a startup hint
        """
        for user_data_dir in self.user_data_dirs:
            active = read_devtools_active_port(user_data_dir)
            if active is None:
                continue
            
            ws_url = await self.probe(active.port)
            if ws_url:
                await attach(ws_url)
                return ws_url
            
            # Port is advertised but /json/version is not answering
            http_url = f"http://127.0.0.1:{active.port}"
            try:
                await attach(http_url)
                return http_url
            except Exception as e:
                logger.debug(f"Advertised port {active.port} in {user_data_dir} not connectable: {e}")
        
        for port in self.probe_ports:
            ws_url = await self.probe(port)
            if ws_url:
                await attach(ws_url)
                return ws_url
        
        raise BrowserConnectionError(
            f"No running Chrome instance with remote debugging found.\n{missing_browser_hint()}"
        )
