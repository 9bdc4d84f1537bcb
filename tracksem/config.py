"""
Configuration for TrackSem.

Defaults live here. A JSON file passed with ``--config`` is merged over
them, and environment variables win over both.
"""

import copy
import json
import os
from typing import Any, Dict, Optional

from .core.exceptions import ConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    'database_type': 'sqlite',
    'database_config': {'database_path': os.path.join('data', 'tracksem.db')},
    'identity_provider': 'supabase',
    'identity_config': {'url': '', 'anon_key': ''},
    'session_cookie': 'tracksem-session',
    'code_verifier_cookie': 'tracksem-code-verifier',
    'cookie_secure': False,
    'cors_origins': ['*'],
    'host': '0.0.0.0',
    'port': 8000,
    'log_level': 'info',
}

# environment variable -> (section, key); section None means top level
ENV_OVERRIDES = {
    'TRACKSEM_DATABASE_TYPE': (None, 'database_type'),
    'TRACKSEM_DATABASE_PATH': ('database_config', 'database_path'),
    'TRACKSEM_IDENTITY_PROVIDER': (None, 'identity_provider'),
    'SUPABASE_URL': ('identity_config', 'url'),
    'SUPABASE_ANON_KEY': ('identity_config', 'anon_key'),
    'TRACKSEM_LOG_LEVEL': (None, 'log_level'),
    'TRACKSEM_HOST': (None, 'host'),
    'TRACKSEM_PORT': (None, 'port'),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Build the effective configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        _merge(config, file_config)

    environ = os.environ if environ is None else environ
    for variable, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if not value:
            continue
        target = config if section is None else config.setdefault(section, {})
        target[key] = value

    try:
        config['port'] = int(config['port'])
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {config['port']!r}")

    return config
