"""
Provider Registry - Name lookup for remote browser providers.

Example:
    >>> @register_provider("acme")
    ... class AcmeProvider(RemoteProvider):
    ...     ...
    >>> provider = create_provider("acme")
"""

from typing import Callable, Dict, List, Optional, Type, TYPE_CHECKING

from agent_browser.exceptions import LaunchConfigurationError

if TYPE_CHECKING:
    import httpx
    from agent_browser.config.settings import ProviderSettings
    from agent_browser.providers.base import RemoteProvider

_providers: Dict[str, Type["RemoteProvider"]] = {}


def register_provider(name: str) -> Callable[[Type["RemoteProvider"]], Type["RemoteProvider"]]:
    """
    Decorator to register a provider class.
    
    Args:
        name: Name used with --provider / AGENT_BROWSER_PROVIDER
    """
    def decorator(provider_class: Type["RemoteProvider"]) -> Type["RemoteProvider"]:
        _providers[name] = provider_class
        return provider_class
    return decorator


def list_providers() -> List[str]:
    return sorted(_providers)


def create_provider(
    name: str,
    settings: Optional["ProviderSettings"] = None,
    transport: Optional["httpx.AsyncBaseTransport"] = None,
) -> "RemoteProvider":
    """
    Instantiate a registered provider.
    
    Raises:
        LaunchConfigurationError: If no provider has that name
    """
    provider_class = _providers.get(name)
    if provider_class is None:
        raise LaunchConfigurationError(
            f"Unknown provider: {name}. Available: {', '.join(list_providers())}"
        )
    return provider_class(settings=settings, transport=transport)
