"""
Browser Use cloud provider.

Requires BROWSER_USE_API_KEY.
"""

from typing import Dict

import httpx

from agent_browser.providers.base import RemoteProvider, RemoteSession
from agent_browser.providers.registry import register_provider


@register_provider("browseruse")
class BrowserUseProvider(RemoteProvider):
    """Browsers on api.browser-use.com (v2 API)."""
    
    name = "browseruse"
    label = "Browser Use"
    required_env = {"api_key": "BROWSER_USE_API_KEY"}
    
    @property
    def base_url(self) -> str:
        return self.settings.browser_use_api_url.rstrip("/")
    
    def _headers(self, credentials: Dict[str, str]) -> Dict[str, str]:
        return {"X-Browser-Use-API-Key": credentials["api_key"]}
    
    async def create_session(
        self,
        client: httpx.AsyncClient,
        credentials: Dict[str, str],
    ) -> RemoteSession:
        response = await self._request(
            client,
            "POST",
            f"{self.base_url}/api/v2/browsers",
            headers=self._headers(credentials),
            json={},
        )
        self._check(response, "create")
        return self._parse(response, "id", "cdpUrl")
    
    async def close_session(
        self,
        client: httpx.AsyncClient,
        session_id: str,
        credentials: Dict[str, str],
    ) -> None:
        # Browser Use stops sessions with a PATCH rather than a DELETE
        response = await self._request(
            client,
            "PATCH",
            f"{self.base_url}/api/v2/browsers/{session_id}",
            headers=self._headers(credentials),
            json={"action": "stop"},
        )
        self._check(response, "close")
