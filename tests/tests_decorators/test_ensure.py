# tests/tests_decorators/test_ensure.py
import types
import pytest

from mcp_browser_sse.decorators import ensure_session_active, tool_envelope
from mcp_browser_sse.results import ToolResult

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()!


def make_handler(calls):
    @ensure_session_active
    async def handler(args, ctx):
        calls.append(ctx.session_id)
        return ToolResult.text("ran")
    return handler


@pytest.mark.parametrize("handle", [
    None,
    types.SimpleNamespace(closed=True),
])
def test_ensure_session_active_blocks_without_live_handle(event_loop, handle):
    calls = []
    ctx = types.SimpleNamespace(session_id="s-1", handle=handle)
    result = event_loop.run_until_complete(make_handler(calls)(None, ctx))
    assert result.is_error
    assert result.texts() == ["Browser session is no longer active. Reconnect to start a new session."]
    assert calls == []


def test_ensure_session_active_runs_with_live_handle(event_loop):
    calls = []
    ctx = types.SimpleNamespace(session_id="s-1", handle=types.SimpleNamespace(closed=False))
    result = event_loop.run_until_complete(make_handler(calls)(None, ctx))
    assert result.texts() == ["ran"]
    assert calls == ["s-1"]


def test_ensure_inside_envelope_keeps_its_own_message(event_loop):
    @tool_envelope("Failed to navigate")
    @ensure_session_active
    async def handler(args, ctx):
        raise AssertionError("must not run")

    ctx = types.SimpleNamespace(session_id="s-1", handle=None)
    result = event_loop.run_until_complete(handler(None, ctx))
    assert result.is_error
    assert "no longer active" in result.texts()[0]
