"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from agent_browser.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.browser.browser_type)
    'chromium'
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserSettings(BaseModel):
    """
    Local browser and context defaults.
    
    Attributes:
        browser_type: Engine used for local launches
        headless: Run browser in headless mode
        viewport_width: Default viewport width in pixels
        viewport_height: Default viewport height in pixels
        local_timeout_ms: Default timeout for locally launched contexts
        attach_timeout_ms: Default timeout for contexts adopted over CDP
        session_name: Session name used for temp directory naming
    """
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)
    local_timeout_ms: int = Field(default=60000, ge=1000, le=300000)
    attach_timeout_ms: int = Field(default=10000, ge=1000, le=300000)
    session_name: str = "default"


class DiscoverySettings(BaseModel):
    """
    Auto-discovery of a locally running debuggable browser.
    
    Attributes:
        probe_ports: Conventional debugging ports probed as a fallback
        probe_timeout: Timeout of the /json/version liveness probe (seconds)
    """
    probe_ports: list[int] = Field(default_factory=lambda: [9222, 9229])
    probe_timeout: float = Field(default=2.0, gt=0, le=30)


class ScreencastSettings(BaseModel):
    """Default Page.startScreencast parameters."""
    format: Literal["jpeg", "png"] = "jpeg"
    quality: int = Field(default=80, ge=0, le=100)
    max_width: int = Field(default=1280, ge=1)
    max_height: int = Field(default=720, ge=1)
    every_nth_frame: int = Field(default=1, ge=1)


class RecordingSettings(BaseModel):
    """
    Video recording settings.
    
    Attributes:
        viewport_width: Width of the recording context and video
        viewport_height: Height of the recording context and video
        timeout_ms: Default timeout for the recording context
    """
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)
    timeout_ms: int = Field(default=10000, ge=1000, le=300000)


class ProviderSettings(BaseModel):
    """
    Remote browser provider settings.
    
    Credentials are never configured here; each provider reads them
    from its own environment variables.
    
    Attributes:
        name: Provider to use (explicit opt-in only)
        http_timeout: Timeout for provider REST calls (seconds)
    """
    name: Optional[Literal["browserbase", "browseruse", "kernel"]] = None
    http_timeout: float = Field(default=30.0, gt=0, le=300)
    browserbase_api_url: str = "https://api.browserbase.com"
    browser_use_api_url: str = "https://api.browser-use.com"
    kernel_api_url: str = "https://api.onkernel.com"


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for file logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with AGENT_BROWSER__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(browser=BrowserSettings(headless=False))  # Override
    """
    
    model_config = SettingsConfigDict(
        env_prefix="AGENT_BROWSER__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    screencast: ScreencastSettings = Field(default_factory=ScreencastSettings)
    recording: RecordingSettings = Field(default_factory=RecordingSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
