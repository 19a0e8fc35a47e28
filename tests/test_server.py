"""HTTP surface and per-session protocol servers."""

import base64

import anyio
import pytest
from mcp import types
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from starlette.testclient import TestClient

from mcp_browser_sse.errors import ProvisioningError
from mcp_browser_sse.server import create_app, missing_credentials_message
from mcp_browser_sse.tools import CORE_TOOLS, ToolCatalog

from _utils import FULL_ENV, PNG_BYTES, FakeHandle, FakeProvider, active_session

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()!

CREDENTIAL_QUERY = {
    "browserbase_api_key": "bb-key",
    "browserbase_project_id": "bb-project",
    "openai_api_key": "sk-test",
}


def make_app(provider=None, environ=None):
    provider = provider or FakeProvider()
    app = create_app(provider=provider, environ={} if environ is None else environ)
    return app, provider


# -----------------------
# Plain routes
# -----------------------

def test_alive_and_health():
    app, _ = make_app()
    client = TestClient(app)
    assert client.get("/").text == "MCP Server is alive"
    health = client.get("/health")
    assert health.status_code == 200
    assert health.text == "ok"


def test_cors_allows_any_origin():
    app, _ = make_app()
    response = TestClient(app).get("/health", headers={"Origin": "https://elsewhere.example"})
    assert response.headers["access-control-allow-origin"] == "*"


# -----------------------
# Connection admission
# -----------------------

def test_sse_without_any_credentials_is_401():
    app, provider = make_app()
    response = TestClient(app).get("/sse")
    assert response.status_code == 401
    assert response.text == (
        "Missing required API keys. Provide via headers, query params, or env variables. "
        "Missing: browserbase_api_key, browserbase_project_id, openai_api_key"
    )
    assert provider.provisioned == []


@pytest.mark.parametrize("absent", sorted(CREDENTIAL_QUERY))
def test_sse_names_exactly_the_missing_credential(absent):
    app, provider = make_app()
    params = {k: v for k, v in CREDENTIAL_QUERY.items() if k != absent}
    response = TestClient(app).get("/sse", params=params)
    assert response.status_code == 401
    assert response.text.endswith(f"Missing: {absent}")
    assert provider.provisioned == []
    assert len(app.state.browser_server.registry) == 0


def test_provision_failure_is_500_and_registers_nothing():
    app, provider = make_app(FakeProvider(fail=ProvisioningError("no browsers left")))
    response = TestClient(app).get("/sse", params=CREDENTIAL_QUERY)
    assert response.status_code == 500
    assert response.text == "Server error: no browsers left"
    assert len(provider.provisioned) == 1
    assert len(app.state.browser_server.registry) == 0


def test_credentials_from_environment_reach_the_provider():
    app, provider = make_app(FakeProvider(fail=ProvisioningError("stop here")), environ=FULL_ENV)
    response = TestClient(app).get("/sse", headers={"x-openai-api-key": "sk-header"})
    assert response.status_code == 500
    (credentials,) = provider.provisioned
    assert credentials.openai_api_key == "sk-header"
    assert credentials.browserbase_api_key == "bb-key"
    assert credentials.sources == {
        "browserbase_api_key": "env",
        "browserbase_project_id": "env",
        "openai_api_key": "header",
    }


def test_message_route_is_mounted():
    app, _ = make_app()
    client = TestClient(app)
    assert client.post("/messages", json={}).status_code == 400
    assert client.post("/messages?sessionId=nobody", json={}).status_code == 503


def test_missing_credentials_message():
    assert missing_credentials_message(["openai_api_key"]).endswith("Missing: openai_api_key")


def test_declared_mcp_range_keeps_lowlevel_handler_decorators():
    from pathlib import Path
    from mcp.server.lowlevel import Server

    pyproject = (Path(__file__).resolve().parent.parent / "pyproject.toml").read_text()
    assert '"mcp>=1.9,<2"' in pyproject
    for decorator in ("list_tools", "list_resources", "read_resource"):
        assert callable(getattr(Server, decorator, None)), decorator


def test_catalog_handler_mismatch_fails_at_startup():
    with pytest.raises(ValueError):
        create_app(provider=FakeProvider(), catalog=ToolCatalog(CORE_TOOLS), environ={})


# -----------------------
# Per-session protocol servers
# -----------------------

def list_request():
    return types.ListResourcesRequest(method="resources/list")


def read_request(uri):
    return types.ReadResourceRequest(method="resources/read", params=types.ReadResourceRequestParams(uri=uri))


def test_resources_are_scoped_to_their_session(event_loop):
    app, _ = make_app()
    browser_server = app.state.browser_server
    a, b = active_session(), active_session()
    a.session_id, b.session_id = "session-a", "session-b"
    browser_server.store.add("session-a", "shot", PNG_BYTES)

    server_a = browser_server.build_protocol_server(a)
    server_b = browser_server.build_protocol_server(b)

    listed_a = event_loop.run_until_complete(server_a.request_handlers[types.ListResourcesRequest](list_request()))
    listed_b = event_loop.run_until_complete(server_b.request_handlers[types.ListResourcesRequest](list_request()))
    assert [str(r.uri) for r in listed_a.root.resources] == ["screenshot://shot"]
    assert [r.mimeType for r in listed_a.root.resources] == ["image/png"]
    assert listed_b.root.resources == []

    read = event_loop.run_until_complete(
        server_a.request_handlers[types.ReadResourceRequest](read_request("screenshot://shot"))
    )
    (contents,) = read.root.contents
    assert base64.b64decode(contents.blob) == PNG_BYTES
    assert contents.mimeType == "image/png"

    with pytest.raises(ValueError):
        event_loop.run_until_complete(
            server_b.request_handlers[types.ReadResourceRequest](read_request("screenshot://shot"))
        )


def test_cleanup_releases_handle_and_evicts_resources(event_loop):
    app, provider = make_app()
    browser_server = app.state.browser_server
    handle = FakeHandle()
    session = active_session(handle)
    session.session_id = "gone"
    browser_server.store.add("gone", "shot", PNG_BYTES)
    browser_server.store.add("kept", "shot", PNG_BYTES)

    event_loop.run_until_complete(browser_server._cleanup_session(session))

    assert provider.released == [handle]
    assert handle.closed
    assert browser_server.store.list("gone") == []
    assert len(browser_server.store.list("kept")) == 1


def test_protocol_round_trip_over_memory_streams(event_loop):
    app, _ = make_app()
    browser_server = app.state.browser_server
    session = active_session(FakeHandle())
    session.session_id = "round-trip"
    server = browser_server.build_protocol_server(session)

    async def scenario():
        changed = anyio.Event()

        async def message_handler(message):
            if isinstance(message, types.ServerNotification) and isinstance(
                message.root, types.ResourceListChangedNotification
            ):
                changed.set()

        async with create_connected_server_and_client_session(server, message_handler=message_handler) as client:
            tools = await client.list_tools()
            ping = await client.call_tool("browser_ping", {})
            unknown = await client.call_tool("browser_teleport", {})
            shot = await client.call_tool("screenshot", {"summary": "landing page"})
            with anyio.fail_after(5):
                await changed.wait()
            resources = await client.list_resources()
            blob = await client.read_resource(resources.resources[0].uri)
            with pytest.raises(McpError):
                await client.read_resource("screenshot://never-taken")
        return tools, ping, unknown, shot, resources, blob

    tools, ping, unknown, shot, resources, blob = event_loop.run_until_complete(scenario())

    assert len(tools.tools) == 15
    assert ping.isError is False
    assert ping.content[0].text == "This is the mcp_browser_sse server."
    assert unknown.isError is True
    assert unknown.content[0].text == "Unknown tool: browser_teleport"

    assert shot.isError is False
    assert shot.content[0].text.startswith("Screenshot taken with name: screenshot-")
    assert shot.content[1].type == "image"
    assert shot.content[1].mimeType == "image/png"

    assert len(resources.resources) == 1
    assert base64.b64decode(blob.contents[0].blob) == PNG_BYTES
