"""
Remote Provider - Base class for cloud browser-hosting services.

Every provider follows the same shape:

1. Read credentials from the environment (fail fast when missing)
2. Create a remote session over REST
3. Attach to it with Playwright's connect_over_cdp
4. Adopt its first context and page

If anything fails after step 2, the remote session is torn down
(best effort, failures logged) and the original error re-raised, so a
half-built connection never leaks a billed session.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import httpx

from agent_browser.config.settings import ProviderSettings
from agent_browser.exceptions import (
    BrowserConnectionError,
    ProviderConfigurationError,
    RemoteProviderError,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


@dataclass
class RemoteSession:
    """A session created by the provider's REST API."""
    session_id: str
    connect_url: str


@dataclass
class RemoteConnection:
    """A remote session attached over CDP, ready to be tracked."""
    session_id: str
    credentials: Dict[str, str]
    browser: "Browser"
    context: "BrowserContext"
    page: "Page"


class RemoteProvider(ABC):
    """
    Abstract cloud browser provider.
    
    Subclasses declare their environment variables and implement the two
    REST calls; connect() supplies the shared attach/cleanup logic.
    """
    
    name: str = ""
    label: str = ""
    required_env: Dict[str, str] = {}   # credential key -> env var
    default_timeout_ms: int = 60000
    # Browserbase sessions always come with a context; an empty list is an error
    requires_existing_context: bool = False
    
    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.
        
        Args:
            settings: Base URLs and HTTP timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings or ProviderSettings()
        self._transport = transport
    
    def client(self) -> httpx.AsyncClient:
        """New HTTP client; callers use it as an async context manager."""
        return httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self._transport)
    
    def read_credentials(self) -> Dict[str, str]:
        """
        Read required credentials from the environment.
        
        Raises:
            ProviderConfigurationError: Naming every missing variable
        """
        credentials: Dict[str, str] = {}
        missing: List[str] = []
        for key, env_var in self.required_env.items():
            value = os.environ.get(env_var)
            if value:
                credentials[key] = value
            else:
                missing.append(env_var)
        
        if missing:
            raise ProviderConfigurationError(
                f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} "
                f"required when using {self.name} as a provider",
                provider=self.name,
                missing=missing,
            )
        return credentials
    
    @abstractmethod
    async def create_session(
        self,
        client: httpx.AsyncClient,
        credentials: Dict[str, str],
    ) -> RemoteSession:
        """Create a remote browser session."""
        ...
    
    @abstractmethod
    async def close_session(
        self,
        client: httpx.AsyncClient,
        session_id: str,
        credentials: Dict[str, str],
    ) -> None:
        """Stop/delete a remote browser session."""
        ...
    
    async def release(self, session_id: str, credentials: Dict[str, str]) -> None:
        """Close a session with a fresh client (used by BrowserManager.close)."""
        async with self.client() as client:
            await self.close_session(client, session_id, credentials)
    
    async def connect(self, playwright: "Playwright") -> RemoteConnection:
        """
        Create a remote session and attach to it.
        
        Raises:
            ProviderConfigurationError: Credentials missing
            RemoteProviderError: The REST call failed or returned garbage
            BrowserConnectionError: The CDP attach failed
        """
        credentials = self.read_credentials()
        
        try:
            async with self.client() as client:
                session = await self.create_session(client, credentials)
        except RemoteProviderError as e:
            # Created, but the response was unusable
            if e.session_id is not None:
                await self._teardown_quietly(e.session_id, credentials)
            raise
        logger.info(f"Created {self.label} session {session.session_id}")
        
        try:
            return await self._attach(playwright, session, credentials)
        except Exception:
            await self._teardown_quietly(session.session_id, credentials)
            raise
    
    async def _attach(
        self,
        playwright: "Playwright",
        session: RemoteSession,
        credentials: Dict[str, str],
    ) -> RemoteConnection:
        try:
            browser = await playwright.chromium.connect_over_cdp(session.connect_url)
        except Exception as e:
            raise BrowserConnectionError(
                f"Failed to connect to {self.label} session via CDP"
            ) from e
        
        try:
            contexts = browser.contexts
            if contexts:
                context = contexts[0]
                page = context.pages[0] if context.pages else await context.new_page()
            elif self.requires_existing_context:
                raise BrowserConnectionError(f"No browser context found in {self.label} session")
            else:
                context = await browser.new_context()
                page = await context.new_page()
            context.set_default_timeout(self.default_timeout_ms)
        except Exception:
            try:
                await browser.close()
            except Exception as e:
                logger.debug(f"Ignoring disconnect error: {e}")
            raise

        return RemoteConnection(
            session_id=session.session_id,
            credentials=credentials,
            browser=browser,
            context=context,
            page=page,
        )
    
    async def _teardown_quietly(self, session_id: str, credentials: Dict[str, str]) -> None:
        try:
            await self.release(session_id, credentials)
        except Exception as e:
            logger.error(f"Failed to close {self.label} session during cleanup: {e}")
    
    # ==================== Response helpers ====================
    
    def _check(self, response: httpx.Response, action: str) -> None:
        if not response.is_success:
            raise RemoteProviderError(
                f"Failed to {action} {self.label} session: {response.reason_phrase}",
                provider=self.name,
                status_code=response.status_code,
            )
    
    def _parse(self, response: httpx.Response, id_field: str, url_field: str) -> RemoteSession:
        try:
            data: Any = response.json()
        except ValueError as e:
            raise RemoteProviderError(
                f"Failed to parse {self.label} session response: {e}",
                provider=self.name,
            ) from e
        
        if not isinstance(data, dict):
            data = {}
        if not data.get(id_field):
            raise RemoteProviderError(
                f"Invalid {self.label} session response: missing {id_field}",
                provider=self.name,
            )
        if not data.get(url_field):
            raise RemoteProviderError(
                f"Invalid {self.label} session response: missing {url_field}",
                provider=self.name,
                session_id=str(data[id_field]),
            )
        return RemoteSession(session_id=str(data[id_field]), connect_url=data[url_field])
    
    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteProviderError(
                f"Could not reach {self.label} at {url}: {e}",
                provider=self.name,
            ) from e
