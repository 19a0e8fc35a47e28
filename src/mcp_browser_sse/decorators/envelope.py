# mcp_browser_sse/decorators/envelope.py

import asyncio
import inspect
import logging
import functools
from typing import Callable

from ..results import ToolResult, operation_log_item


__all__ = [
    "tool_envelope",
]

logger = logging.getLogger(__name__)


def _operation_log_lines(ctx) -> list:
    handle = getattr(ctx, "handle", None)
    oplog = getattr(handle, "operation_log", None)
    if oplog is None:
        return []
    return oplog.excerpt()


def tool_envelope(error_prefix: str, include_operation_logs: bool = False):
    """
    Decorator for tool handlers `async (args, ctx) -> ToolResult`:
      - On success: passes a ToolResult through; any other return value is
        normalised to a text result.
      - On error: returns ToolResult.failure(f"{error_prefix}: {err}"), with an
        "Operation logs:" excerpt appended when include_operation_logs is set.
      - asyncio.CancelledError is never swallowed.
    """

    def _normalize(value) -> ToolResult:
        if isinstance(value, ToolResult):
            return value
        if value is None:
            return ToolResult.text("")
        return ToolResult.text(value if isinstance(value, str) else repr(value))

    def decorator(func: Callable):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"tool_envelope expects an async handler, got {func!r}")

        @functools.wraps(func)
        async def wrapper(args, ctx):
            try:
                result = await func(args, ctx)
            except asyncio.CancelledError:
                # Preserve cooperative cancellation semantics
                raise
            except Exception as e:
                logger.warning(f"{func.__name__} failed: {e.__class__.__name__}: {e}")
                extra = []
                if include_operation_logs:
                    extra.append(operation_log_item(_operation_log_lines(ctx)))
                return ToolResult.failure(f"{error_prefix}: {e}", *extra)
            return _normalize(result)

        wrapper.error_prefix = error_prefix
        wrapper.include_operation_logs = include_operation_logs
        return wrapper

    return decorator
