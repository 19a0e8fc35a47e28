"""
Global constants and configuration defaults.
No dependencies - safe to import from anywhere.
"""

import os

# ============================================================================
# Transport Configuration
# ============================================================================

SSE_ENDPOINT = "/sse"
"""Path clients open to start a streaming session."""

MESSAGE_ENDPOINT = "/messages"
"""Path clients post correlated JSON-RPC messages to."""

SESSION_ID_PARAM = "sessionId"
"""Query parameter carrying the session identity on posted messages."""


# ============================================================================
# Automation Configuration
# ============================================================================

NAVIGATION_TIMEOUT_MS = int(os.getenv("MCP_NAVIGATION_TIMEOUT_MS", "60000"))
"""Default upper bound for a navigation, in milliseconds."""

MAX_OBSERVE_ELEMENTS = int(os.getenv("MCP_MAX_OBSERVE_ELEMENTS", "150"))
"""Maximum number of interactive elements offered to the instruction resolver."""


# ============================================================================
# Operation Log Configuration
# ============================================================================

OPERATION_LOG_MAX_LINES = int(os.getenv("MCP_OPERATION_LOG_MAX_LINES", "200"))
"""Lines kept per session in the operation log."""

OPERATION_LOG_EXCERPT_LINES = int(os.getenv("MCP_OPERATION_LOG_EXCERPT_LINES", "50"))
"""Lines appended to failed instruction-driven tool results."""


# ============================================================================
# Browserbase Configuration
# ============================================================================

BROWSERBASE_API_URL = os.getenv("BROWSERBASE_API_URL", "https://api.browserbase.com/v1")
"""Base URL of the Browserbase REST API."""

BROWSERBASE_HTTP_TIMEOUT_SECS = int(os.getenv("BROWSERBASE_HTTP_TIMEOUT_SECS", "30"))
"""Timeout for Browserbase REST calls in seconds."""


__all__ = [
    "SSE_ENDPOINT",
    "MESSAGE_ENDPOINT",
    "SESSION_ID_PARAM",
    "NAVIGATION_TIMEOUT_MS",
    "MAX_OBSERVE_ELEMENTS",
    "OPERATION_LOG_MAX_LINES",
    "OPERATION_LOG_EXCERPT_LINES",
    "BROWSERBASE_API_URL",
    "BROWSERBASE_HTTP_TIMEOUT_SECS",
]
