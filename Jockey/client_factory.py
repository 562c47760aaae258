""" Client Factory with file and environment configuration """

import os, json
from dataclasses import fields, replace
from typing import Any, Dict, Optional

from .base import ClientConfig
from .top import SyncJockeyClient, AsyncJockeyClient

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), 'jockey_config.json')

# Environment variable -> (config field, parser)
ENV_OVERRIDES = {
    'JOCKEY_USER_AGENT': ('user_agent', str),
    'JOCKEY_BUFFER_PAGES': ('buffer_pages', int),
    'JOCKEY_MAX_LINE_LENGTH': ('max_line_length', int),
    'JOCKEY_CONNECT_TIMEOUT': ('connect_timeout', float),
    'JOCKEY_READ_TIMEOUT': ('read_timeout', float),
    'JOCKEY_VERIFY_TLS': ('verify_tls', lambda value: value.strip().lower() in ('1', 'true', 'yes', 'on')),
}


def _read_config_file(path: str) -> Dict[str, Any]:
    """Load raw configuration values from a JSON file."""
    try:
        with open(path, 'r') as f: raw_config = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at {path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in configuration file {path}: {e}")

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")

    known = {f.name for f in fields(ClientConfig)}
    unknown = set(raw_config) - known
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {', '.join(sorted(unknown))}")
    return raw_config


def _env_overrides(environ) -> Dict[str, Any]:
    overrides = {}
    for env_var, (name, parse) in ENV_OVERRIDES.items():
        value = environ.get(env_var)
        if value is None or value == '':
            continue
        try:
            overrides[name] = parse(value)
        except ValueError:
            raise ValueError(f"Invalid value for {env_var}: {value!r}")
    return overrides


def load_client_config(path: Optional[str] = None, environ=None) -> ClientConfig:
    """Build a ClientConfig from a JSON file (the packaged defaults when path is None)
    and JOCKEY_* environment variables, which take precedence."""
    raw_config = _read_config_file(path or DEFAULT_CONFIG_PATH)
    raw_config.update(_env_overrides(os.environ if environ is None else environ))
    return ClientConfig(**raw_config)


class ClientFactory:
    """Factory class for creating clients from configuration."""

    @staticmethod
    def _build_config(config: Optional[ClientConfig], overrides: Dict[str, Any]) -> ClientConfig:
        config = config or load_client_config()
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **overrides) if overrides else config

    @staticmethod
    def create_sync_client(config: Optional[ClientConfig] = None, middleware=None,
                           **overrides) -> SyncJockeyClient:
        """Create a synchronous client; keyword overrides replace config fields."""
        return SyncJockeyClient(ClientFactory._build_config(config, overrides), middleware)

    @staticmethod
    def create_async_client(config: Optional[ClientConfig] = None, middleware=None,
                            **overrides) -> AsyncJockeyClient:
        """Create an asynchronous client; keyword overrides replace config fields."""
        return AsyncJockeyClient(ClientFactory._build_config(config, overrides), middleware)


# Convenience functions
def create_sync_client(**kwargs) -> SyncJockeyClient:
    return ClientFactory.create_sync_client(**kwargs)

def create_async_client(**kwargs) -> AsyncJockeyClient:
    return ClientFactory.create_async_client(**kwargs)
