# mcp_browser_sse/decorators/__init__.py
#
# Re-exports decorators from their respective modules.

from .ensure import ensure_session_active
from .envelope import tool_envelope

__all__ = [
    "ensure_session_active",
    "tool_envelope",
]
