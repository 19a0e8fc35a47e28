"""Environment configuration and credential resolution."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import logging
logger = logging.getLogger(__name__)

from ..errors import MissingCredentialsError


# field name -> (query parameter, request header, environment variable)
CREDENTIAL_SOURCES = {
    "browserbase_api_key": ("browserbase_api_key", "x-browserbase-api-key", "BROWSERBASE_API_KEY"),
    "browserbase_project_id": ("browserbase_project_id", "x-browserbase-project-id", "BROWSERBASE_PROJECT_ID"),
    "openai_api_key": ("openai_api_key", "x-openai-api-key", "OPENAI_API_KEY"),
}


@dataclass(frozen=True)
class Credentials:
    """
    Resolved credentials for one connection attempt.

    Attributes:
        browserbase_api_key: Automation platform API key
        browserbase_project_id: Automation platform project identifier
        openai_api_key: Model provider key used for instruction resolution
        sources: Field name -> "query" | "header" | "env" for every present field
    """

    browserbase_api_key: Optional[str] = None
    browserbase_project_id: Optional[str] = None
    openai_api_key: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict, compare=False)

    def missing(self) -> List[str]:
        """Names of the absent fields, as their query parameter names."""
        return [name for name in CREDENTIAL_SOURCES if not getattr(self, name)]

    def require(self) -> "Credentials":
        """Raises MissingCredentialsError naming every absent field."""
        missing = self.missing()
        if missing:
            raise MissingCredentialsError(missing)
        return self

    def __repr__(self) -> str:
        # Never leak secrets into logs.
        present = ", ".join(f"{k}<{v}>" for k, v in self.sources.items())
        return f"Credentials({present or 'empty'})"


def _first_string(container: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    """First non-empty string stored under `key`, supporting multi-dicts and list values."""
    if container is None:
        return None
    if hasattr(container, "getlist"):
        values = container.getlist(key)
        value = values[0] if values else None
    else:
        value = container.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def resolve_credentials(
    query: Optional[Mapping[str, Any]],
    headers: Optional[Mapping[str, Any]],
    environ: Optional[Mapping[str, str]] = None,
) -> Credentials:
    """
    Resolve the three credential fields for a connection attempt.

    Precedence per field: query parameter, then request header, then process
    environment. Empty values count as absent.
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, Optional[str]] = {}
    sources: Dict[str, str] = {}
    for name, (query_key, header_key, env_key) in CREDENTIAL_SOURCES.items():
        for source, container, key in (
            ("query", query, query_key),
            ("header", headers, header_key),
            ("env", environ, env_key),
        ):
            value = _first_string(container, key)
            if value:
                values[name] = value
                sources[name] = source
                break
        else:
            values[name] = None

    creds = Credentials(sources=sources, **values)
    logger.debug(f"Credential sources: {sources}")
    return creds


def get_env_config() -> dict:
    """
    Read process-level settings from the environment.

    Optional:   PORT (default 8080)
                MCP_HOST (default 0.0.0.0)
                MCP_LOG_LEVEL (default INFO)
                OPENAI_MODEL (default gpt-4o-mini)
    """
    port_env = (os.getenv("PORT") or "8080").strip()
    if not port_env.isdigit():
        raise EnvironmentError(f"PORT must be numeric, got {port_env!r}.")
    port = int(port_env)
    if not 0 < port <= 65535:
        raise EnvironmentError(f"PORT out of range: {port}")

    host = (os.getenv("MCP_HOST") or "0.0.0.0").strip() or "0.0.0.0"
    log_level = (os.getenv("MCP_LOG_LEVEL") or "INFO").strip().upper() or "INFO"
    model = (os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip() or "gpt-4o-mini"

    return {
        "host": host,
        "port": port,
        "log_level": log_level,
        "model": model,
    }
