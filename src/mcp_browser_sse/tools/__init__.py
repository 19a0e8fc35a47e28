# mcp_browser_sse/tools/__init__.py
"""
MCP tool implementations - async handlers that return ToolResult envelopes.

This package contains:
- The tool catalog (names, descriptions, pydantic input models)
- One handler per catalogued tool, `async (args, ctx) -> ToolResult`
- The dispatcher that validates arguments and routes calls
"""

from .catalog import (
    CORE_TOOLS,
    EXTENDED_TOOLS,
    ToolCatalog,
    ToolSpec,
    default_catalog,
)

from .navigation import (
    browser_navigate,
)

from .interaction import (
    browser_act,
    browser_observe,
)

from .extraction import (
    browser_extract,
    browser_detect_forms,
    browser_detect_ctas,
    browser_detect_products,
    browser_snapshot_dom,
    browser_detect_scrollers,
)

from .screenshots import (
    screenshot,
)

from .debugging import (
    browser_custom_eval,
    browser_ping,
    browser_get_metrics,
    browser_inject_event_tracker,
    browser_get_tracked_events,
)

HANDLERS = {
    # Core
    "browser_navigate": browser_navigate,
    "browser_act": browser_act,
    "browser_extract": browser_extract,
    "browser_observe": browser_observe,
    "screenshot": screenshot,
    "browser_custom_eval": browser_custom_eval,
    "browser_ping": browser_ping,
    # Extended
    "browser_detect_forms": browser_detect_forms,
    "browser_detect_ctas": browser_detect_ctas,
    "browser_detect_products": browser_detect_products,
    "browser_snapshot_dom": browser_snapshot_dom,
    "browser_get_metrics": browser_get_metrics,
    "browser_detect_scrollers": browser_detect_scrollers,
    "browser_inject_event_tracker": browser_inject_event_tracker,
    "browser_get_tracked_events": browser_get_tracked_events,
}

from .dispatcher import ToolContext, ToolDispatcher  # noqa: E402

__all__ = [
    # Catalog
    'CORE_TOOLS',
    'EXTENDED_TOOLS',
    'ToolCatalog',
    'ToolSpec',
    'default_catalog',
    # Dispatch
    'HANDLERS',
    'ToolContext',
    'ToolDispatcher',
]
