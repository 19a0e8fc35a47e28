# mcp_browser_sse/decorators/ensure.py
import logging
import functools

from ..results import ToolResult

logger = logging.getLogger(__name__)


def ensure_session_active(fn):
    """
    Short-circuit a tool handler when its session's browser is gone.

    A handler can still be reached after teardown started (the client
    disconnected while a posted message was in flight); in that case the
    released handle must not be touched.
    """
    @functools.wraps(fn)
    async def wrapper(args, ctx):
        handle = getattr(ctx, "handle", None)
        if handle is None or getattr(handle, "closed", False):
            logger.info(f"{fn.__name__} skipped: session {getattr(ctx, 'session_id', None)} has no live browser")
            return ToolResult.failure(
                "Browser session is no longer active. Reconnect to start a new session."
            )
        return await fn(args, ctx)
    return wrapper
