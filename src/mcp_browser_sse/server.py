"""
Application wiring: routes, per-session MCP servers, cleanup.

Every SSE connection gets:
  - its own resolved credentials (checked before anything is provisioned),
  - its own remote browser (the automation handle),
  - its own low-level MCP protocol server, bound to that session.

Nothing about a session is kept in module-level state; the registry, the
resource store and the handle provider are created here and passed down.
"""

import logging
from typing import Mapping, Optional
from urllib.parse import unquote

from mcp import types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from . import __version__
from .browser import BrowserbaseProvider, HandleProvider
from .config import resolve_credentials
from .constants import MESSAGE_ENDPOINT, SSE_ENDPOINT
from .context import Session
from .errors import MissingCredentialsError, ProvisioningError
from .resources import ResourceStore
from .sessions import SessionRegistry
from .tools import ToolCatalog, ToolContext, ToolDispatcher, default_catalog
from .transport import SseSessionTransport

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp_browser_sse"
SCREENSHOT_SCHEME = "screenshot://"


def missing_credentials_message(missing) -> str:
    return (
        "Missing required API keys. Provide via headers, query params, or env variables. "
        f"Missing: {', '.join(missing)}"
    )


def _resource_name(uri) -> str:
    text = unquote(str(uri))
    if text.startswith(SCREENSHOT_SCHEME):
        text = text[len(SCREENSHOT_SCHEME):]
    return text.rstrip("/")


class BrowserSSEServer:
    """
    Owns the shared collaborators and builds one protocol server per session.

    Args:
        provider: Produces and releases automation handles
        registry: Session identity -> connection
        store: Per-session resources (screenshots)
        catalog: Tools every session exposes
        environ: Environment used as the lowest-precedence credential source
    """

    def __init__(
        self,
        provider: HandleProvider,
        registry: SessionRegistry,
        store: ResourceStore,
        catalog: ToolCatalog,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.provider = provider
        self.registry = registry
        self.store = store
        self.dispatcher = ToolDispatcher(catalog)
        self.environ = environ
        self.transport = SseSessionTransport(registry, cleanup=self._cleanup_session)

    # ------------------------------------------------------------------
    # Session teardown
    # ------------------------------------------------------------------

    async def _cleanup_session(self, session: Session) -> None:
        """Release the handle and evict resources. Runs once per session."""
        try:
            await self.provider.release(session.handle)
        except Exception as e:
            logger.error(f"Failed to release browser for session {session.session_id}: {e}")
        evicted = self.store.clear(session.session_id)
        logger.info(f"Session {session.session_id} cleaned up ({evicted} resource(s) evicted)")

    # ------------------------------------------------------------------
    # Per-session protocol server
    # ------------------------------------------------------------------

    def build_protocol_server(self, session: Session) -> Server:
        server = Server(SERVER_NAME, version=__version__)
        dispatcher = self.dispatcher
        store = self.store

        @server.list_tools()
        async def list_tools():
            return dispatcher.catalog.as_mcp_tools()

        async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
            client_session = server.request_context.session

            async def notify_resources_changed():
                await client_session.send_resource_list_changed()

            ctx = ToolContext(
                session_id=session.session_id,
                handle=session.handle,
                store=store,
                notify_resources_changed=notify_resources_changed,
            )
            result = await dispatcher.dispatch(req.params.name, req.params.arguments, ctx)
            return types.ServerResult(result.to_call_tool_result())

        # Registered directly so error results keep every content item and the
        # isError flag exactly as the dispatcher produced them.
        server.request_handlers[types.CallToolRequest] = call_tool

        @server.list_resources()
        async def list_resources():
            return [
                types.Resource(uri=r.uri, name=r.name, mimeType=r.mime_type)
                for r in store.list(session.session_id)
            ]

        @server.read_resource()
        async def read_resource(uri):
            name = _resource_name(uri)
            try:
                resource = store.get(session.session_id, name)
            except KeyError:
                raise ValueError(f"Resource not found: {uri}") from None
            return [ReadResourceContents(content=resource.data, mime_type=resource.mime_type)]

        return server

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def handle_sse(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        credentials = resolve_credentials(request.query_params, request.headers, self.environ)
        try:
            credentials.require()
        except MissingCredentialsError as e:
            logger.warning(f"Rejected SSE connection: missing {', '.join(e.missing)}")
            response = PlainTextResponse(missing_credentials_message(e.missing), status_code=401)
            await response(scope, receive, send)
            return

        logger.info(f"New SSE connection with {credentials!r}")
        try:
            handle = await self.provider.provision(credentials)
        except Exception as e:
            logger.error(f"Failed to provision browser: {e}")
            await PlainTextResponse(f"Server error: {e}", status_code=500)(scope, receive, send)
            return

        session = Session(credentials=credentials)
        session.activate(handle)
        server = self.build_protocol_server(session)
        init_options = server.create_initialization_options(
            notification_options=NotificationOptions(resources_changed=True),
        )

        async def run_protocol(read_stream, write_stream):
            await server.run(read_stream, write_stream, init_options)

        try:
            await self.transport.connect_sse(scope, receive, send, session, run_protocol)
        except ProvisioningError as e:
            # Registration failed before the stream started; nothing is registered.
            logger.error(f"Failed to register SSE session: {e}")
            session.mark_closed()
            await self.provider.release(handle)
            await PlainTextResponse(f"Server error: {e}", status_code=500)(scope, receive, send)

    async def alive(self, request: Request) -> PlainTextResponse:
        return PlainTextResponse("MCP Server is alive")

    async def health(self, request: Request) -> PlainTextResponse:
        return PlainTextResponse("ok")


class SseEndpoint:
    """Raw ASGI endpoint; the SSE response is written straight to `send`."""

    def __init__(self, server: BrowserSSEServer):
        self.server = server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.server.handle_sse(scope, receive, send)


def create_app(
    provider: Optional[HandleProvider] = None,
    registry: Optional[SessionRegistry] = None,
    store: Optional[ResourceStore] = None,
    catalog: Optional[ToolCatalog] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Starlette:
    """
    Build the Starlette application.

    Raises:
        DuplicateToolError: if the catalog declares a tool name twice.
        ValueError: if the catalog and the handler table disagree.
    """
    server = BrowserSSEServer(
        provider=provider if provider is not None else BrowserbaseProvider(),
        registry=registry if registry is not None else SessionRegistry(),
        store=store if store is not None else ResourceStore(),
        catalog=catalog if catalog is not None else default_catalog(),
        environ=environ,
    )

    app = Starlette(
        routes=[
            Route("/", endpoint=server.alive, methods=["GET"]),
            Route("/health", endpoint=server.health, methods=["GET"]),
            Route(SSE_ENDPOINT, endpoint=SseEndpoint(server), methods=["GET"]),
            Route(MESSAGE_ENDPOINT, endpoint=server.transport.handle_post_message, methods=["POST"]),
        ],
        middleware=[
            Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]),
        ],
    )
    app.state.browser_server = server
    return app


__all__ = ["BrowserSSEServer", "SseEndpoint", "create_app", "missing_credentials_message"]
