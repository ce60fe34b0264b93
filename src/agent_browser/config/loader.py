"""
Config Loader - Build Settings from YAML, .env and keyword overrides.

Lookup order for the YAML file: an explicit path, then the file named by
AGENT_BROWSER_CONFIG, then the first of DEFAULT_CONFIG_PATHS that exists.
Values from the file sit below AGENT_BROWSER__* environment variables,
which sit below overrides passed to load().
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from agent_browser.config.settings import Settings
from agent_browser.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AGENT_BROWSER_CONFIG"

# Provider secrets live in the environment; these keys are dropped from files
_SECRET_SUFFIXES = ("api_key", "token", "secret")


def _strip_secrets(file_config: Dict[str, Any]) -> List[str]:
    provider = file_config.get("provider")
    if not isinstance(provider, dict):
        return []
    dropped = [key for key in provider if key.lower().endswith(_SECRET_SUFFIXES)]
    for key in dropped:
        del provider[key]
    return dropped


class ConfigLoader:
    """
    Resolve and read the agent-browser config file.
    
    Example:
        >>> loader = ConfigLoader("ci.yaml")
        >>> settings = loader.load(overrides={"browser": {"headless": True}})
    """
    
    DEFAULT_CONFIG_PATHS = [
        Path("agent-browser.yaml"),
        Path("agent-browser.yml"),
        Path(".agent-browser") / "config.yaml",
        Path.home() / ".config" / "agent-browser" / "config.yaml",
    ]
    
    DOTENV_FILES = [Path(".env"), Path(".env.local")]
    
    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = os.environ[CONFIG_ENV_VAR]
        self.config_path = Path(config_path).expanduser() if config_path else None
    
    def find_config_file(self) -> Optional[Path]:
        """
        Locate the YAML file to read.
        
        An explicitly requested file that does not exist is an error
        rather than a silent fallback to the defaults.
        
        Raises:
            ConfigurationError: The explicit path does not exist
        """
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigurationError(
                    f"Config file not found: {self.config_path}",
                    details={"path": str(self.config_path)},
                )
            return self.config_path
        
        return next((path for path in self.DEFAULT_CONFIG_PATHS if path.exists()), None)
    
    def load_yaml_config(self, path: Path) -> Dict[str, Any]:
        """Parse ``path``; an empty document yields an empty mapping."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {path} must contain a mapping, got {type(data).__name__}"
            )
        return data
    
    def load_env_file(self, env_file: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """
        Load a .env file into os.environ without clobbering existing values.
        
        Provider credentials (BROWSERBASE_API_KEY, KERNEL_API_KEY, ...) are
        usually supplied this way.
        """
        candidates = [Path(env_file)] if env_file else self.DOTENV_FILES
        for path in candidates:
            if path.exists():
                load_dotenv(path, override=False)
                logger.debug(f"Loaded environment from {path}")
                return path
        return None
    
    def load(
        self,
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        """
        Build Settings from every source.
        
        Args:
            env_file: .env file to load instead of the defaults
            overrides: Nested values applied last
        """
        self.load_env_file(env_file)
        
        file_config: Dict[str, Any] = {}
        config_file = self.find_config_file()
        if config_file is not None:
            file_config = self.load_yaml_config(config_file)
            for key in _strip_secrets(file_config):
                logger.warning(
                    f"Ignoring provider.{key} in {config_file}: "
                    "credentials are read from environment variables only"
                )
        
        # Init kwargs outrank env vars in pydantic-settings, so the file
        # values are layered under the environment explicitly
        settings = Settings()
        if file_config:
            env_overrides = settings.model_dump(exclude_defaults=True)
            settings = settings.merge_with(file_config).merge_with(env_overrides)
        
        if overrides:
            settings = settings.merge_with(overrides)
        
        return settings


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> Settings:
    """
    Load Settings in one call.
    
    Example:
        >>> settings = load_config(screencast={"format": "png"})
    """
    return ConfigLoader(config_path).load(env_file=env_file, overrides=overrides or None)
