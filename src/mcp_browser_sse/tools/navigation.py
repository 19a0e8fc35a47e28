"""Navigation tool implementation."""

from ..constants import NAVIGATION_TIMEOUT_MS
from ..decorators import ensure_session_active, tool_envelope
from ..results import ToolResult
from .catalog import NavigateArgs


@tool_envelope("Failed to navigate")
@ensure_session_active
async def browser_navigate(args: NavigateArgs, ctx) -> ToolResult:
    """Navigate and wait for DOMContentLoaded, up to `timeout` ms (default 60000)."""
    await ctx.handle.goto(args.url, args.timeout or NAVIGATION_TIMEOUT_MS)
    return ToolResult.text(f"Navigated to: {args.url}")


__all__ = ["browser_navigate"]
