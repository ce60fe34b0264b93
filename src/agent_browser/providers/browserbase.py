"""
Browserbase provider.

Requires BROWSERBASE_API_KEY and BROWSERBASE_PROJECT_ID.
"""

from typing import Dict

import httpx

from agent_browser.providers.base import RemoteProvider, RemoteSession
from agent_browser.providers.registry import register_provider


@register_provider("browserbase")
class BrowserbaseProvider(RemoteProvider):
    """Sessions on api.browserbase.com."""
    
    name = "browserbase"
    label = "Browserbase"
    required_env = {
        "api_key": "BROWSERBASE_API_KEY",
        "project_id": "BROWSERBASE_PROJECT_ID",
    }
    default_timeout_ms = 10000
    requires_existing_context = True
    
    @property
    def base_url(self) -> str:
        return self.settings.browserbase_api_url.rstrip("/")
    
    async def create_session(
        self,
        client: httpx.AsyncClient,
        credentials: Dict[str, str],
    ) -> RemoteSession:
        response = await self._request(
            client,
            "POST",
            f"{self.base_url}/v1/sessions",
            headers={"X-BB-API-Key": credentials["api_key"]},
            json={"projectId": credentials["project_id"]},
        )
        self._check(response, "create")
        return self._parse(response, "id", "connectUrl")
    
    async def close_session(
        self,
        client: httpx.AsyncClient,
        session_id: str,
        credentials: Dict[str, str],
    ) -> None:
        response = await self._request(
            client,
            "DELETE",
            f"{self.base_url}/v1/sessions/{session_id}",
            headers={"X-BB-API-Key": credentials["api_key"]},
        )
        self._check(response, "close")
