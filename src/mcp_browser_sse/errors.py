"""
Exception taxonomy for the session and dispatch layer.

Connection establishment:  MissingCredentialsError, ProvisioningError
Routing (per message):     SessionNotFoundError, DeliveryError
Startup checks:            DuplicateToolError
Operation faults:          AutomationError (always converted to a ToolResult)
"""

from typing import Iterable


class BrowserSSEError(Exception):
    """Base class for all errors raised by mcp_browser_sse."""


class MissingCredentialsError(BrowserSSEError):
    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required credentials: {', '.join(self.missing)}")


class ProvisioningError(BrowserSSEError):
    """No session identity or automation handle could be obtained."""


class SessionNotFoundError(BrowserSSEError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No active SSE connection for session {session_id}")


class DeliveryError(BrowserSSEError):
    """A posted message could not be handed to the session's protocol stream."""

    def __init__(self, session_id: str, reason: str = "connection is not writable"):
        self.session_id = session_id
        super().__init__(f"Could not deliver message to session {session_id}: {reason}")


class DuplicateToolError(BrowserSSEError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate tool name in catalog: {name}")


class AutomationError(BrowserSSEError):
    """The automation engine could not carry out an operation."""


__all__ = [
    "BrowserSSEError",
    "MissingCredentialsError",
    "ProvisioningError",
    "SessionNotFoundError",
    "DeliveryError",
    "DuplicateToolError",
    "AutomationError",
]
