"""Debugging and diagnostic tool implementations."""

import json

from ..decorators import ensure_session_active, tool_envelope
from ..results import ToolResult
from .catalog import CustomEvalArgs

METRICS_URI = "browser://metrics/page"
TRACKED_EVENTS_URI = "browser://events/tracked"

PING_TEXT = "This is the mcp_browser_sse server."

METRICS_SCRIPT = """
const perf = window.performance;
const mem = perf && perf.memory ? {
  usedJSHeapSize: perf.memory.usedJSHeapSize,
  totalJSHeapSize: perf.memory.totalJSHeapSize,
  jsHeapSizeLimit: perf.memory.jsHeapSizeLimit,
} : null;
return {
  page_metrics: {
    nodes: document.getElementsByTagName('*').length,
    scripts: document.scripts.length,
    images: document.images.length,
    stylesheets: document.styleSheets.length,
    frames: window.frames.length,
    jsHeap: mem,
  },
  performance_timing: JSON.parse(JSON.stringify(perf.timing)),
  resources: perf.getEntriesByType('resource').map((r) => ({
    name: r.name,
    entryType: r.entryType,
    startTime: r.startTime,
    duration: r.duration,
    initiatorType: r.initiatorType,
  })),
};
"""

# Installs the addEventListener wrapper once per document; re-injecting only
# resets the recorded list.
EVENT_TRACKER_SCRIPT = """
window.__trackedEvents = [];
if (!window.__eventTrackerInstalled) {
  const orig = EventTarget.prototype.addEventListener;
  EventTarget.prototype.addEventListener = function (type, listener, opts) {
    const target = this.tagName || (this.constructor && this.constructor.name) || String(this);
    (window.__trackedEvents = window.__trackedEvents || []).push({ target: target, type: type });
    return orig.call(this, type, listener, opts);
  };
  window.__eventTrackerInstalled = true;
}
return true;
"""

TRACKED_EVENTS_SCRIPT = "return window.__trackedEvents || [];"


@tool_envelope("Error in custom_eval")
@ensure_session_active
async def browser_custom_eval(args: CustomEvalArgs, ctx) -> ToolResult:
    value = await ctx.handle.evaluate_expression(args.script)
    return ToolResult.text("Result:\n" + json.dumps(value, indent=2, ensure_ascii=False, default=str))


@tool_envelope("Error in ping")
async def browser_ping(args, ctx) -> ToolResult:
    return ToolResult.text(PING_TEXT)


@tool_envelope("Error in get_metrics")
@ensure_session_active
async def browser_get_metrics(args, ctx) -> ToolResult:
    metrics = await ctx.handle.evaluate(METRICS_SCRIPT) or {}
    payload = {
        "page_metrics": metrics.get("page_metrics"),
        "performance_timing": metrics.get("performance_timing"),
        "resources": metrics.get("resources") or [],
    }
    return ToolResult.json_resource(METRICS_URI, payload)


@tool_envelope("Error injecting event tracker")
@ensure_session_active
async def browser_inject_event_tracker(args, ctx) -> ToolResult:
    await ctx.handle.evaluate(EVENT_TRACKER_SCRIPT)
    return ToolResult.text("Event tracker injected")


@tool_envelope("Error reading tracked events")
@ensure_session_active
async def browser_get_tracked_events(args, ctx) -> ToolResult:
    events = await ctx.handle.evaluate(TRACKED_EVENTS_SCRIPT) or []
    return ToolResult.json_resource(TRACKED_EVENTS_URI, events)


__all__ = [
    "browser_custom_eval",
    "browser_ping",
    "browser_get_metrics",
    "browser_inject_event_tracker",
    "browser_get_tracked_events",
]
