"""
Configuration Management Module

Loads configuration from YAML file with environment variable substitution.
Provides the Config wrapper for application-wide access and the
immutable ConnectionConfig used to reach the Event Hub.
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


# Used when no config.yaml is present: the local Event Hubs emulator
DEFAULT_CONFIG: Dict[str, Any] = {
    'event_hub': {
        'connection_string': '${EVENTHUB_CONNECTION_STRING:-}',
        'endpoint': '${EVENTHUB_ENDPOINT:-sb://localhost}',
        'hub_name': '${EVENTHUB_NAME:-eh1}',
        'shared_access_key_name': '${EVENTHUB_KEY_NAME:-RootManageSharedAccessKey}',
        'credential': '${EVENTHUB_KEY:-SAS_KEY_VALUE}',
        'use_development_emulator': '${EVENTHUB_USE_EMULATOR:-true}',
    },
    'test_message': {
        'text': 'Hello from test script - 1!',
        'seed': None,
    },
    'logging': {
        'level': 'INFO',
    },
}

DEFAULT_KEY_NAME = 'RootManageSharedAccessKey'


@dataclass(frozen=True)
class ConnectionConfig:
    """Endpoint, hub and credential for one Event Hub"""
    endpoint: str
    hub_name: str
    credential: str
    key_name: str = DEFAULT_KEY_NAME
    use_development_emulator: bool = False

    def __post_init__(self):
        for field_name in ('endpoint', 'hub_name', 'credential', 'key_name'):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"Event Hub '{field_name}' must be a non-empty string")

    def connection_string(self) -> str:
        """Render the SAS connection string understood by the Event Hubs SDK."""
        conn_str = (
            f"Endpoint={self.endpoint};"
            f"SharedAccessKeyName={self.key_name};"
            f"SharedAccessKey={self.credential};"
        )
        if self.use_development_emulator:
            conn_str += "UseDevelopmentEmulator=true;"
        return conn_str

    def __repr__(self) -> str:
        return (
            f"ConnectionConfig(endpoint={self.endpoint!r}, hub_name={self.hub_name!r}, "
            f"key_name={self.key_name!r}, use_development_emulator={self.use_development_emulator})"
        )

    @classmethod
    def from_connection_string(cls, conn_str: str, hub_name: Optional[str] = None) -> 'ConnectionConfig':
        """
        Parse a full connection string.

        Args:
            conn_str: 'Endpoint=...;SharedAccessKeyName=...;SharedAccessKey=...;'
            hub_name: Target hub, used only when the string has no EntityPath

        Raises:
            ConfigurationError: If a required part is missing
        """
        parts = {}
        for segment in conn_str.split(';'):
            segment = segment.strip()
            if not segment:
                continue
            key, sep, value = segment.partition('=')
            if not sep:
                raise ConfigurationError(f"Malformed connection string segment: '{key}'")
            parts[key.strip().lower()] = value.strip()

        for required in ('endpoint', 'sharedaccesskeyname', 'sharedaccesskey'):
            if not parts.get(required):
                raise ConfigurationError(f"Connection string is missing '{required}'")

        hub = parts.get('entitypath') or hub_name
        if not hub:
            raise ConfigurationError("Event Hub name missing: set hub_name or EntityPath")

        return cls(
            endpoint=parts['endpoint'],
            hub_name=hub,
            credential=parts['sharedaccesskey'],
            key_name=parts['sharedaccesskeyname'],
            use_development_emulator=parts.get('usedevelopmentemulator', '').lower() == 'true',
        )

    @classmethod
    def from_config(cls, config: 'Config') -> 'ConnectionConfig':
        """Build from the event_hub section; a connection_string wins over separate fields."""
        eh_config = config.get('event_hub', {})
        if isinstance(eh_config, Config):
            eh_config = eh_config.to_dict()

        conn_str = eh_config.get('connection_string')
        if conn_str:
            return cls.from_connection_string(conn_str, hub_name=eh_config.get('hub_name'))

        return cls(
            endpoint=eh_config.get('endpoint'),
            hub_name=eh_config.get('hub_name'),
            credential=eh_config.get('credential'),
            key_name=eh_config.get('shared_access_key_name') or DEFAULT_KEY_NAME,
            use_development_emulator=_as_bool(eh_config.get('use_development_emulator', False)),
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


class Config:
    """
    Application configuration loaded from YAML with environment variable substitution.

    Usage:
        config = Config.load('config.yaml')
        hub_name = config.event_hub.hub_name
    """

    def __init__(self, config_dict: Dict[str, Any], validate: bool = True):
        self._config = config_dict
        if validate:
            self._validate()

    def __getattr__(self, name: str) -> Any:
        """Allow dot notation access to configuration."""
        if name.startswith('_'):
            return object.__getattribute__(self, name)

        if name in self._config:
            value = self._config[name]
            # Recursively wrap dictionaries for dot notation
            if isinstance(value, dict):
                return Config(value, validate=False)
            return value

        raise AttributeError(f"Configuration key '{name}' not found")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with optional default."""
        try:
            return self.__getattr__(key)
        except AttributeError:
            return default

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return self._config.copy()

    def _validate(self):
        """Validate required configuration fields."""
        if not isinstance(self._config, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        if not isinstance(self._config.get('event_hub'), dict):
            raise ConfigurationError("Missing required configuration section: event_hub")

    @classmethod
    def load(cls, config_path: str = 'config.yaml', env_path: str = '.env',
             required: bool = True) -> 'Config':
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file
            env_path: Path to .env file (optional)
            required: If False, fall back to DEFAULT_CONFIG when the file is absent

        Returns:
            Config object

        Raises:
            ConfigurationError: If configuration is invalid or files not found
        """
        # Load environment variables from .env file if it exists
        if env_path and os.path.exists(env_path):
            load_dotenv(env_path)

        if os.path.exists(config_path):
            with open(config_path, 'r') as f:
                try:
                    raw_config = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        elif required:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        else:
            raw_config = DEFAULT_CONFIG

        # Substitute environment variables
        config_dict = cls._substitute_env_vars(raw_config)

        return cls(config_dict)

    @classmethod
    def _substitute_env_vars(cls, obj: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} and ${VAR_NAME:-default}.

        Args:
            obj: Configuration object (dict, list, str, etc.)

        Returns:
            Object with substituted values
        """
        if isinstance(obj, dict):
            return {key: cls._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [cls._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            # Match ${VAR_NAME} or ${VAR_NAME:-default}
            pattern = r'\$\{([^}:]+)(?::-([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default = match.group(2)
                value = os.getenv(var_name)
                if value is None:
                    if default is not None:
                        return default
                    raise ConfigurationError(
                        f"Environment variable '{var_name}' not found. "
                        f"Please set it in your .env file or environment."
                    )
                return value

            return re.sub(pattern, replace_var, obj)
        else:
            return obj
