# tests/tests_decorators/test_decorators.py
import types
import asyncio
import pytest

from mcp_browser_sse.decorators import tool_envelope
from mcp_browser_sse.results import ToolResult
from mcp_browser_sse.utils import OperationLog

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()!


def make_ctx(log_lines=()):
    oplog = OperationLog(label="test")
    for line in log_lines:
        oplog.record(line)
    handle = types.SimpleNamespace(operation_log=oplog, closed=False)
    return types.SimpleNamespace(session_id="s-1", handle=handle)


# -----------------------
# tool_envelope tests
# -----------------------

def test_tool_envelope_passes_result_through(event_loop):
    @tool_envelope("Failed to navigate")
    async def ok(args, ctx):
        return ToolResult.text("Navigated to: https://example.com")

    result = event_loop.run_until_complete(ok(None, make_ctx()))
    assert not result.is_error
    assert result.texts() == ["Navigated to: https://example.com"]


def test_tool_envelope_wraps_exception_with_prefix(event_loop):
    @tool_envelope("Failed to navigate")
    async def boom(args, ctx):
        raise RuntimeError("timeout")

    result = event_loop.run_until_complete(boom(None, make_ctx(["step one"])))
    assert result.is_error
    assert result.texts() == ["Failed to navigate: timeout"]


def test_tool_envelope_appends_operation_logs(event_loop):
    @tool_envelope("Failed to perform action", include_operation_logs=True)
    async def boom(args, ctx):
        raise RuntimeError("no match")

    result = event_loop.run_until_complete(boom(None, make_ctx(["step one", "step two"])))
    assert result.is_error
    first, logs = result.texts()
    assert first == "Failed to perform action: no match"
    assert logs.startswith("Operation logs:\n")
    assert logs.index("step one") < logs.index("step two")


def test_tool_envelope_logs_item_present_when_log_is_empty(event_loop):
    @tool_envelope("Failed to observe", include_operation_logs=True)
    async def boom(args, ctx):
        raise RuntimeError("x")

    ctx = types.SimpleNamespace(session_id="s-1", handle=None)
    result = event_loop.run_until_complete(boom(None, ctx))
    assert result.texts() == ["Failed to observe: x", "Operation logs:\n"]


def test_tool_envelope_propagates_cancelled_error(event_loop):
    @tool_envelope("Failed")
    async def cancelled(args, ctx):
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        event_loop.run_until_complete(cancelled(None, make_ctx()))


def test_tool_envelope_normalises_plain_return_values(event_loop):
    @tool_envelope("Failed")
    async def returns_str(args, ctx):
        return "plain text"

    @tool_envelope("Failed")
    async def returns_dict(args, ctx):
        return {"a": 1}

    assert event_loop.run_until_complete(returns_str(None, make_ctx())).texts() == ["plain text"]
    assert event_loop.run_until_complete(returns_dict(None, make_ctx())).texts() == ["{'a': 1}"]


def test_tool_envelope_rejects_sync_functions():
    with pytest.raises(TypeError):
        @tool_envelope("Failed")
        def not_async(args, ctx):
            return None


def test_tool_envelope_exposes_configuration():
    @tool_envelope("Failed to take screenshot", include_operation_logs=True)
    async def handler(args, ctx):
        return ToolResult.text("ok")

    assert handler.error_prefix == "Failed to take screenshot"
    assert handler.include_operation_logs is True
    assert handler.__name__ == "handler"


# -----------------------
# ToolResult tests
# -----------------------

def test_tool_result_requires_content():
    with pytest.raises(ValueError):
        ToolResult([])


def test_tool_result_to_call_tool_result():
    call_result = ToolResult.failure("Failed to navigate: x", "detail").to_call_tool_result()
    assert call_result.isError is True
    assert [c.text for c in call_result.content] == ["Failed to navigate: x", "detail"]
