"""
Tests for launch options, endpoint handling and CDP auto-discovery.
"""

import httpx
import pytest

from agent_browser.exceptions import BrowserConnectionError, LaunchConfigurationError
from agent_browser.session.connection import (
    CDPDiscovery,
    LaunchOptions,
    chrome_user_data_dirs,
    connect_failure_message,
    missing_browser_hint,
    normalize_cdp_endpoint,
    read_devtools_active_port,
    validate_launch_options,
)


class TestLaunchOptions:
    """Test option validation and derived values."""
    
    @pytest.mark.parametrize("options,message", [
        (dict(extensions=["/ext"], cdp_port=9222), "Extensions cannot be used with CDP connection"),
        (dict(profile="~/p", cdp_url="ws://x"), "Profile cannot be used with CDP connection"),
        (dict(profile="~/p", storage_state="s.json"), "Storage state cannot be used with profile"),
        (dict(extensions=["/ext"], storage_state="s.json"), "Storage state cannot be used with extensions"),
        (dict(extensions=["/ext"], browser="firefox"), "Extensions are only supported in Chromium"),
        (dict(allow_file_access=True, browser="webkit"), "allow_file_access is only supported in Chromium"),
        (dict(har_path="run.har", cdp_port=9222), "HAR recording requires a locally launched browser"),
        (dict(har_path="run.har", provider="kernel"), "HAR recording requires a locally launched browser"),
    ])
    def test_conflicts_are_rejected(self, options, message):
        with pytest.raises(LaunchConfigurationError, match=message):
            validate_launch_options(LaunchOptions(**options))
    
    def test_valid_options_pass(self):
        validate_launch_options(LaunchOptions(profile="~/p", headless=False))
    
    def test_cdp_url_takes_precedence_over_port(self):
        assert LaunchOptions(cdp_url="ws://host/x", cdp_port=9222).cdp_endpoint == "ws://host/x"
        assert LaunchOptions(cdp_port=9222).cdp_endpoint == "9222"
        assert LaunchOptions().cdp_endpoint is None
    
    def test_provider_falls_back_to_env(self, monkeypatch):
        monkeypatch.setenv("AGENT_BROWSER_PROVIDER", "kernel")
        
        assert LaunchOptions().resolved_provider() == "kernel"
        assert LaunchOptions(provider="browserbase").resolved_provider() == "browserbase"
    
    def test_file_access_args_come_first(self):
        options = LaunchOptions(allow_file_access=True, args=["--mute-audio"])
        
        assert options.launch_args() == [
            "--allow-file-access-from-files",
            "--allow-file-access",
            "--mute-audio",
        ]
        assert LaunchOptions().launch_args() is None
    
    def test_default_viewport(self):
        assert LaunchOptions().resolved_viewport() == {"width": 1280, "height": 720}
    
    @pytest.mark.parametrize("arg", ["--start-maximized", "--window-size=1920,1080"])
    def test_window_size_args_disable_viewport(self, arg):
        assert LaunchOptions(args=[arg]).resolved_viewport() is None
    
    def test_explicit_viewport_wins(self):
        options = LaunchOptions(args=["--start-maximized"], viewport={"width": 800, "height": 600})
        
        assert options.resolved_viewport() == {"width": 800, "height": 600}
        assert LaunchOptions(viewport=None).resolved_viewport() is None


class TestEndpoints:
    """Test endpoint normalization and failure messages."""
    
    @pytest.mark.parametrize("endpoint,url", [
        ("9222", "http://localhost:9222"),
        ("ws://127.0.0.1:9222/devtools/browser/abc", "ws://127.0.0.1:9222/devtools/browser/abc"),
        ("wss://remote.example.com/cdp", "wss://remote.example.com/cdp"),
        ("http://10.0.0.5:9222", "http://10.0.0.5:9222"),
    ])
    def test_normalize(self, endpoint, url):
        assert normalize_cdp_endpoint(endpoint) == url
    
    def test_local_failure_names_debugging_flag(self):
        message = connect_failure_message("9222", "http://localhost:9222")
        assert "--remote-debugging-port=9222" in message
    
    def test_remote_failure_message(self):
        message = connect_failure_message("wss://remote/cdp", "wss://remote/cdp")
        assert "remote browser is accessible" in message


class TestDevToolsActivePort:
    """Test DevToolsActivePort parsing."""
    
    def test_valid_file(self, tmp_path):
        (tmp_path / "DevToolsActivePort").write_text("9333\n/devtools/browser/abc\n")
        
        active = read_devtools_active_port(tmp_path)
        
        assert active.port == 9333
        assert active.ws_path == "/devtools/browser/abc"
    
    @pytest.mark.parametrize("content", ["", "9333", "abc\n/x", "70000\n/x", "9333\n"])
    def test_invalid_file(self, tmp_path, content):
        (tmp_path / "DevToolsActivePort").write_text(content)
        assert read_devtools_active_port(tmp_path) is None
    
    def test_missing_file(self, tmp_path):
        assert read_devtools_active_port(tmp_path) is None
    
    def test_user_data_dirs_per_platform(self, tmp_path):
        linux = chrome_user_data_dirs("Linux", tmp_path)
        mac = chrome_user_data_dirs("Darwin", tmp_path)
        
        assert linux[0] == tmp_path / ".config" / "google-chrome"
        assert mac[0] == tmp_path / "Library" / "Application Support" / "Google" / "Chrome"
    
    def test_hint_mentions_debugging_port(self):
        assert "--remote-debugging-port=9222" in missing_browser_hint("Linux")


def version_transport(alive_ports):
    """Answer /json/version only on ``alive_ports``."""
    def handler(request):
        port = request.url.port
        if port in alive_ports:
            return httpx.Response(200, json={
                "webSocketDebuggerUrl": f"ws://127.0.0.1:{port}/devtools/browser/live",
            })
        raise httpx.ConnectError("connection refused", request=request)
    
    return httpx.MockTransport(handler)


class Attacher:
    """Records attach attempts; fails for endpoints in ``refuse``."""
    
    def __init__(self, refuse=()):
        self.calls = []
        self.refuse = set(refuse)
    
    async def __call__(self, endpoint):
        self.calls.append(endpoint)
        if endpoint in self.refuse:
            raise BrowserConnectionError("refused")


class TestCDPDiscovery:
    """Test the auto-connect search order."""
    
    @pytest.mark.asyncio
    async def test_active_port_file_with_live_probe(self, tmp_path):
        (tmp_path / "DevToolsActivePort").write_text("9333\n/devtools/browser/abc")
        discovery = CDPDiscovery(user_data_dirs=[tmp_path], transport=version_transport({9333}))
        attach = Attacher()
        
        endpoint = await discovery.connect(attach)
        
        assert endpoint == "ws://127.0.0.1:9333/devtools/browser/live"
        assert attach.calls == [endpoint]
    
    @pytest.mark.asyncio
    async def test_active_port_without_http_endpoint(self, tmp_path):
        """The advertised port is tried directly when /json/version is disabled."""
        (tmp_path / "DevToolsActivePort").write_text("9333\n/devtools/browser/abc")
        discovery = CDPDiscovery(user_data_dirs=[tmp_path], transport=version_transport(set()))
        attach = Attacher()
        
        endpoint = await discovery.connect(attach)
        
        assert endpoint == "http://127.0.0.1:9333"
    
    @pytest.mark.asyncio
    async def test_falls_back_to_common_ports(self, tmp_path):
        (tmp_path / "DevToolsActivePort").write_text("9333\n/devtools/browser/abc")
        discovery = CDPDiscovery(
            probe_ports=[9222, 9229],
            user_data_dirs=[tmp_path, tmp_path / "missing"],
            transport=version_transport({9229}),
        )
        attach = Attacher(refuse={"http://127.0.0.1:9333"})
        
        endpoint = await discovery.connect(attach)
        
        assert endpoint == "ws://127.0.0.1:9229/devtools/browser/live"
        assert attach.calls == ["http://127.0.0.1:9333", endpoint]
    
    @pytest.mark.asyncio
    async def test_nothing_found(self, tmp_path):
        discovery = CDPDiscovery(user_data_dirs=[tmp_path], transport=version_transport(set()))
        
        with pytest.raises(BrowserConnectionError, match="No running Chrome instance"):
            await discovery.connect(Attacher())
