"""
Tool dispatcher: validates arguments and routes a call to its handler.

One call always yields exactly one ToolResult. Unknown tools and invalid
arguments are reported as error results rather than raised, so a bad call never
takes down the session.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from ..resources import ResourceStore
from ..results import ToolResult
from .catalog import ToolCatalog

logger = logging.getLogger(__name__)

Handler = Callable[[Any, "ToolContext"], Awaitable[ToolResult]]


async def _no_notify() -> None:
    return None


@dataclass
class ToolContext:
    """
    What a handler may touch: its own session's handle and resources.

    Attributes:
        session_id: Identity of the calling session
        handle: The session's automation handle (BrowserSession)
        store: Shared resource store, keyed by session_id
        notify_resources_changed: Sends `notifications/resources/list_changed`
            to this session's client
    """

    session_id: str
    handle: Any
    store: ResourceStore
    notify_resources_changed: Callable[[], Awaitable[None]] = _no_notify


def format_validation_error(name: str, err: ValidationError) -> str:
    lines = [f"Invalid arguments for {name}:"]
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "(root)"
        lines.append(f"  {loc}: {e.get('msg')}")
    return "\n".join(lines)


class ToolDispatcher:
    """
    Args:
        catalog: Declared tools
        handlers: Mapping tool name -> async (args_model, ctx) -> ToolResult.
            Defaults to the built-in handler table.

    Raises:
        ValueError: if the catalog and the handler table do not name exactly
            the same tools.
    """

    def __init__(self, catalog: ToolCatalog, handlers: Optional[Mapping[str, Handler]] = None):
        if handlers is None:
            from . import HANDLERS
            handlers = HANDLERS
        declared = set(catalog.names())
        implemented = set(handlers)
        missing = sorted(declared - implemented)
        extra = sorted(implemented - declared)
        if missing or extra:
            raise ValueError(
                f"Tool catalog and handlers disagree (no handler: {missing}, not catalogued: {extra})"
            )
        self._catalog = catalog
        self._handlers: Dict[str, Handler] = dict(handlers)

    @property
    def catalog(self) -> ToolCatalog:
        return self._catalog

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]], ctx: ToolContext) -> ToolResult:
        spec = self._catalog.get(name)
        if spec is None:
            logger.warning(f"Unknown tool requested: {name} (session {ctx.session_id})")
            return ToolResult.failure(f"Unknown tool: {name}")

        try:
            args = spec.input_model.model_validate(dict(arguments or {}))
        except ValidationError as e:
            logger.info(f"Rejected arguments for {name} (session {ctx.session_id})")
            return ToolResult.failure(format_validation_error(name, e))

        logger.info(f"Tool call: {name} (session {ctx.session_id})")
        try:
            result = await self._handlers[name](args, ctx)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Unhandled error in tool {name}")
            return ToolResult.failure(f"Error in {name}: {e}")

        if not isinstance(result, ToolResult):
            logger.error(f"Tool {name} returned {type(result).__name__}, expected ToolResult")
            return ToolResult.failure(f"Error in {name}: handler returned no result")
        return result


__all__ = ["ToolContext", "ToolDispatcher", "format_validation_error"]
