"""Instruction-driven interaction tools (act, observe)."""

import json

from ..decorators import ensure_session_active, tool_envelope
from ..results import ToolResult
from .catalog import ActArgs, ObserveArgs


@tool_envelope("Failed to perform action", include_operation_logs=True)
@ensure_session_active
async def browser_act(args: ActArgs, ctx) -> ToolResult:
    await ctx.handle.act(args.action, args.variables)
    return ToolResult.text(f"Action performed: {args.action}")


@tool_envelope("Failed to observe", include_operation_logs=True)
@ensure_session_active
async def browser_observe(args: ObserveArgs, ctx) -> ToolResult:
    observations = await ctx.handle.observe(args.instruction)
    return ToolResult.text(f"Observations: {json.dumps(observations, ensure_ascii=False)}")


__all__ = ["browser_act", "browser_observe"]
