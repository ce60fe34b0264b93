"""
Base exceptions for Agent Browser.
"""


class AgentBrowserError(Exception):
    """
    Base exception for all Agent Browser errors.
    
    All custom exceptions inherit from this class, making it easy
    to catch any error from the library.
    
    Attributes:
        message: Human-readable error message
        details: Optional additional error details
    """
    
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(AgentBrowserError):
    """
    Error in configuration.
    
    Raised when there's an issue with settings, environment variables,
    or configuration files.
    """
    pass


class LaunchConfigurationError(ConfigurationError):
    """
    Conflicting or unsupported launch options.
    
    Raised before any browser, context or remote session is created,
    so no partial state is left behind.
    """
    pass


class ProviderConfigurationError(ConfigurationError):
    """
    A remote provider is missing required credentials.
    
    Attributes:
        provider: Provider name (e.g. 'browserbase')
        missing: Environment variables that were not set
    """
    
    def __init__(self, message: str, provider: str, missing: list[str] | None = None):
        super().__init__(message)
        self.provider = provider
        self.missing = missing or []
