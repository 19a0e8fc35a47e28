"""Screenshot tool implementation."""

import asyncio
import datetime
import logging
from typing import Awaitable, Callable, Optional, Set

from ..decorators import ensure_session_active, tool_envelope
from ..results import ToolResult
from .catalog import ScreenshotArgs

logger = logging.getLogger(__name__)

# Strong references to in-flight notifications; the loop only keeps weak ones.
_background_tasks: Set[asyncio.Task] = set()


def screenshot_name(now: Optional[datetime.datetime] = None) -> str:
    """`screenshot-<ISO-8601 UTC, millisecond precision>` with ':' replaced by '-'."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    stamp = now.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    stamp = f"{stamp}.{now.microsecond // 1000:03d}Z"
    return f"screenshot-{stamp.replace(':', '-')}"


def _unique_name(store, session_id: str, name: str) -> str:
    taken = {r.name for r in store.list(session_id)}
    if name not in taken:
        return name
    n = 1
    while f"{name}-{n}" in taken:
        n += 1
    return f"{name}-{n}"


def notify_in_background(notify: Callable[[], Awaitable[None]]) -> asyncio.Task:
    """Send a notification without delaying the tool result. Failures are only logged."""

    async def _send():
        try:
            await notify()
        except Exception as e:
            logger.warning(f"resources/list_changed notification failed: {e}")

    task = asyncio.ensure_future(_send())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


@tool_envelope("Failed to take screenshot", include_operation_logs=True)
@ensure_session_active
async def screenshot(args: ScreenshotArgs, ctx) -> ToolResult:
    """
    Capture the viewport as PNG.

    The image is stored under this session before the result is returned;
    the resources/list_changed notification follows asynchronously.
    """
    data = await ctx.handle.screenshot()
    name = _unique_name(ctx.store, ctx.session_id, screenshot_name())
    ctx.store.add(ctx.session_id, name, data, "image/png")
    notify_in_background(ctx.notify_resources_changed)
    return ToolResult.image(f"Screenshot taken with name: {name}", data, "image/png")


__all__ = ["screenshot", "screenshot_name", "notify_in_background"]
