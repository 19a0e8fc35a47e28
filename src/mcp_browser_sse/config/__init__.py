"""Configuration management for the SSE browser server."""

from .environment import (
    CREDENTIAL_SOURCES,
    Credentials,
    get_env_config,
    resolve_credentials,
)

__all__ = [
    "CREDENTIAL_SOURCES",
    "Credentials",
    "get_env_config",
    "resolve_credentials",
]
