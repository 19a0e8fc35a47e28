"""SSE transport: message routing, termination, and the event stream itself."""

import json
import asyncio

import anyio
import pytest
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.routing import Route
from starlette.testclient import TestClient

from mcp_browser_sse.errors import DeliveryError, SessionNotFoundError
from mcp_browser_sse.sessions import SessionRegistry
from mcp_browser_sse.transport import SseSessionTransport

from _utils import active_session

PING = {"jsonrpc": "2.0", "id": 1, "method": "ping"}


class RecordingConnection:
    def __init__(self, fail=None):
        self.delivered = []
        self.fail = fail

    async def deliver(self, message):
        if self.fail is not None:
            raise self.fail
        self.delivered.append(message)


def post_client(transport):
    app = Starlette(routes=[Route("/messages", endpoint=transport.handle_post_message, methods=["POST"])])
    return TestClient(app)


# ---------------------------------------------------------------------------
# POST routing
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("body", [json.dumps(PING), "not json", ""])
def test_post_without_session_id_is_400_regardless_of_body(body):
    client = post_client(SseSessionTransport(SessionRegistry()))
    response = client.post("/messages", content=body)
    assert response.status_code == 400
    assert response.text == "Missing sessionId parameter"


def test_post_to_unknown_session_is_503():
    client = post_client(SseSessionTransport(SessionRegistry()))
    response = client.post("/messages?sessionId=ghost", json=PING)
    assert response.status_code == 503
    assert response.text == "No active SSE connection for session ghost"


def test_removed_session_answers_with_registry_error():
    registry = SessionRegistry()
    sid = registry.create(RecordingConnection())
    registry.remove(sid)
    client = post_client(SseSessionTransport(registry))
    response = client.post(f"/messages?sessionId={sid}", json=PING)
    assert response.status_code == 503
    assert response.text == str(SessionNotFoundError(sid))


def test_post_is_delivered_to_its_own_session_only():
    registry = SessionRegistry()
    a, b = RecordingConnection(), RecordingConnection()
    sid_a = registry.create(a)
    registry.create(b)
    client = post_client(SseSessionTransport(registry))

    response = client.post(f"/messages?sessionId={sid_a}", json=PING)

    assert response.status_code == 202
    assert response.text == "Accepted"
    assert len(a.delivered) == 1 and b.delivered == []
    delivered = a.delivered[0]
    assert isinstance(delivered, SessionMessage)
    assert delivered.message.root.method == "ping"


def test_unparsable_body_is_400_and_error_is_forwarded():
    registry = SessionRegistry()
    conn = RecordingConnection()
    sid = registry.create(conn)
    client = post_client(SseSessionTransport(registry))

    response = client.post(f"/messages?sessionId={sid}", content="{not json")

    assert response.status_code == 400
    assert response.text == "Could not parse message"
    assert len(conn.delivered) == 1
    assert isinstance(conn.delivered[0], ValidationError)


def test_delivery_failure_is_500():
    registry = SessionRegistry()
    sid = registry.create(RecordingConnection(fail=DeliveryError("x", "protocol stream is closed")))
    client = post_client(SseSessionTransport(registry))
    response = client.post(f"/messages?sessionId={sid}", json=PING)
    assert response.status_code == 500


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------

def test_close_and_error_run_cleanup_exactly_once(event_loop):
    registry = SessionRegistry()
    cleaned = []

    async def cleanup(session):
        cleaned.append(session.session_id)

    transport = SseSessionTransport(registry, cleanup=cleanup)
    session = active_session()
    connection, read_stream = transport.open_connection(session)
    sid = session.session_id
    assert sid in registry and connection.is_writable()

    async def scenario():
        first = await connection.on_error(RuntimeError("socket reset"))
        second = await connection.on_close()
        third = await connection.on_error(RuntimeError("again"))
        return first, second, third

    assert event_loop.run_until_complete(scenario()) == (True, False, False)
    assert cleaned == [sid]
    assert sid not in registry
    assert not connection.is_writable()

    with pytest.raises(DeliveryError):
        event_loop.run_until_complete(connection.deliver(SessionMessage(types.JSONRPCMessage.model_validate(PING))))

    response = post_client(transport).post(f"/messages?sessionId={sid}", json=PING)
    assert response.status_code == 503


def test_cleanup_failure_still_unregisters(event_loop):
    registry = SessionRegistry()

    async def cleanup(session):
        raise RuntimeError("release failed")

    transport = SseSessionTransport(registry, cleanup=cleanup)
    session = active_session()
    connection, _ = transport.open_connection(session)
    event_loop.run_until_complete(connection.on_close())
    assert len(registry) == 0


def test_registration_failure_registers_nothing():
    from mcp_browser_sse.errors import ProvisioningError

    registry = SessionRegistry(id_factory=lambda: "")
    transport = SseSessionTransport(registry)
    session = active_session()
    with pytest.raises(ProvisioningError):
        transport.open_connection(session)
    assert len(registry) == 0
    assert session.connection is None


def test_endpoint_uri_respects_root_path():
    transport = SseSessionTransport(SessionRegistry())
    assert transport.endpoint_uri({"root_path": ""}, "abc") == "/messages?sessionId=abc"
    assert transport.endpoint_uri({"root_path": "/mcp/"}, "abc") == "/mcp/messages?sessionId=abc"


# ---------------------------------------------------------------------------
# Full stream over raw ASGI callables
# ---------------------------------------------------------------------------

@pytest.fixture
def fresh_sse_app_status(monkeypatch):
    # sse-starlette keeps a process-wide exit event; each test has its own loop.
    from sse_starlette import sse
    monkeypatch.setattr(sse.AppStatus, "should_exit_event", None, raising=False)


def sse_scope():
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/sse",
        "raw_path": b"/sse",
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "server": ("testserver", 80),
        "client": ("testclient", 50000),
    }


def post_request(session_id, payload):
    from starlette.requests import Request

    body = json.dumps(payload).encode()
    sent = []

    async def receive():
        if not sent:
            sent.append(True)
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/messages",
        "root_path": "",
        "query_string": f"sessionId={session_id}".encode(),
        "headers": [(b"content-type", b"application/json")],
    }
    return Request(scope, receive)


def test_stream_sends_endpoint_then_forwards_protocol_frames(event_loop, fresh_sse_app_status):
    registry = SessionRegistry()
    cleaned = []

    async def cleanup(session):
        cleaned.append(session.session_id)

    transport = SseSessionTransport(registry, cleanup=cleanup)
    session = active_session()
    received = []

    async def run_protocol(read_stream, write_stream):
        async with write_stream:
            async for item in read_stream:
                received.append(item)
                request = item.message.root
                reply = types.JSONRPCResponse(jsonrpc="2.0", id=request.id, result={"echo": request.method})
                await write_stream.send(SessionMessage(types.JSONRPCMessage(reply)))

    async def scenario():
        chunks = []
        disconnect = asyncio.Event()
        posted = []

        async def receive():
            await disconnect.wait()
            return {"type": "http.disconnect"}

        async def post():
            response = await transport.handle_post_message(post_request(session.session_id, PING))
            posted.append(response.status_code)

        async def send(message):
            if message["type"] != "http.response.body":
                return
            body = message.get("body", b"")
            chunks.append(body)
            if b"event: endpoint" in body:
                asyncio.ensure_future(post())
            if b"event: message" in body:
                disconnect.set()

        await transport.connect_sse(sse_scope(), receive, send, session, run_protocol)
        return b"".join(chunks).decode(), posted

    stream, posted = event_loop.run_until_complete(asyncio.wait_for(scenario(), timeout=10))

    sid = session.session_id
    assert stream.index("event: endpoint") < stream.index("event: message")
    assert f"data: /messages?sessionId={sid}" in stream
    assert '"echo":"ping"' in stream
    assert posted == [202]
    assert len(received) == 1
    assert cleaned == [sid]
    assert sid not in registry


def test_protocol_failure_routes_to_same_cleanup(event_loop, fresh_sse_app_status):
    registry = SessionRegistry()
    cleaned = []

    async def cleanup(session):
        cleaned.append(session.session_id)

    transport = SseSessionTransport(registry, cleanup=cleanup)
    session = active_session()

    async def run_protocol(read_stream, write_stream):
        await anyio.sleep(0)
        raise RuntimeError("protocol crashed")

    async def receive():
        await anyio.sleep_forever()

    async def send(message):
        return None

    event_loop.run_until_complete(
        asyncio.wait_for(transport.connect_sse(sse_scope(), receive, send, session, run_protocol), timeout=10)
    )
    assert cleaned == [session.session_id]
    assert len(registry) == 0
