"""
Kernel provider.

Requires KERNEL_API_KEY. Optional environment:

    KERNEL_PROFILE_NAME     load and save cookies/state to this profile
    KERNEL_HEADLESS         "true" for headless (default: headful)
    KERNEL_STEALTH          "false" to disable stealth mode (default: on)
    KERNEL_TIMEOUT_SECONDS  idle timeout (default: 300)
"""

import logging
import os
from typing import Any, Dict
from urllib.parse import quote

import httpx

from agent_browser.exceptions import ProviderConfigurationError, RemoteProviderError
from agent_browser.providers.base import RemoteProvider, RemoteSession
from agent_browser.providers.registry import register_provider

logger = logging.getLogger(__name__)


@register_provider("kernel")
class KernelProvider(RemoteProvider):
    """Browsers on api.onkernel.com."""
    
    name = "kernel"
    label = "Kernel"
    required_env = {"api_key": "KERNEL_API_KEY"}
    
    @property
    def base_url(self) -> str:
        return self.settings.kernel_api_url.rstrip("/")
    
    def _headers(self, credentials: Dict[str, str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credentials['api_key']}"}
    
    def session_options(self) -> Dict[str, Any]:
        """Build the create-browser body from KERNEL_* variables."""
        raw_timeout = os.environ.get("KERNEL_TIMEOUT_SECONDS") or "300"
        try:
            timeout_seconds = int(raw_timeout)
        except ValueError:
            raise ProviderConfigurationError(
                f"KERNEL_TIMEOUT_SECONDS must be an integer, got {raw_timeout!r}",
                provider=self.name,
            )
        
        return {
            "headless": os.environ.get("KERNEL_HEADLESS", "").lower() == "true",
            "stealth": os.environ.get("KERNEL_STEALTH", "").lower() != "false",
            "timeout_seconds": timeout_seconds,
        }
    
    async def find_or_create_profile(
        self,
        client: httpx.AsyncClient,
        profile_name: str,
        credentials: Dict[str, str],
    ) -> str:
        """Make sure a profile exists, creating it on a 404."""
        response = await self._request(
            client,
            "GET",
            f"{self.base_url}/profiles/{quote(profile_name, safe='')}",
            headers=self._headers(credentials),
        )
        if response.is_success:
            return profile_name
        
        if response.status_code != 404:
            raise RemoteProviderError(
                f"Failed to check Kernel profile: {response.reason_phrase}",
                provider=self.name,
                status_code=response.status_code,
            )
        
        logger.info(f"Creating Kernel profile {profile_name}")
        response = await self._request(
            client,
            "POST",
            f"{self.base_url}/profiles",
            headers=self._headers(credentials),
            json={"name": profile_name},
        )
        if not response.is_success:
            raise RemoteProviderError(
                f"Failed to create Kernel profile: {response.reason_phrase}",
                provider=self.name,
                status_code=response.status_code,
            )
        return profile_name
    
    async def create_session(
        self,
        client: httpx.AsyncClient,
        credentials: Dict[str, str],
    ) -> RemoteSession:
        body = self.session_options()
        
        profile_name = os.environ.get("KERNEL_PROFILE_NAME")
        if profile_name:
            await self.find_or_create_profile(client, profile_name, credentials)
            # save_changes writes cookies/state back when the session ends
            body["profile"] = {"name": profile_name, "save_changes": True}
        
        response = await self._request(
            client,
            "POST",
            f"{self.base_url}/browsers",
            headers=self._headers(credentials),
            json=body,
        )
        self._check(response, "create")
        return self._parse(response, "session_id", "cdp_ws_url")
    
    async def close_session(
        self,
        client: httpx.AsyncClient,
        session_id: str,
        credentials: Dict[str, str],
    ) -> None:
        response = await self._request(
            client,
            "DELETE",
            f"{self.base_url}/browsers/{session_id}",
            headers=self._headers(credentials),
        )
        self._check(response, "close")
