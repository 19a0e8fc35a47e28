"""
SSE transport with an explicit session registry.

One GET opens a long-lived event stream. The first event tells the client
where to POST its JSON-RPC messages (`/messages?sessionId=<id>`); every frame
the protocol server produces afterwards is forwarded as a `message` event, in
production order.

Posted messages are routed by session identity through the SessionRegistry:

    missing sessionId          -> 400
    unknown / closed session   -> 503
    unparsable JSON-RPC body   -> 400
    stream no longer writable  -> 500
    delivered                  -> 202

Both terminal signals of a connection (close and error) run the same cleanup,
exactly once.
"""

import logging
import contextlib
from urllib.parse import quote
from typing import Any, Awaitable, Callable, Optional, Union

import anyio
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..constants import MESSAGE_ENDPOINT, SESSION_ID_PARAM
from ..context import Session
from ..errors import DeliveryError, SessionNotFoundError
from ..sessions import SessionRegistry

logger = logging.getLogger(__name__)

CleanupCallback = Callable[[Session], Awaitable[None]]
ProtocolRunner = Callable[[Any, Any], Awaitable[None]]


class SessionConnection:
    """
    One streaming connection, bound to one Session.

    Holds the writer end of the stream that feeds the session's protocol
    server; posted messages are handed over through `deliver`.
    """

    def __init__(self, session: Session, read_stream_writer, on_terminated: CleanupCallback):
        self.session = session
        self._read_stream_writer = read_stream_writer
        self._on_terminated = on_terminated

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id

    def is_writable(self) -> bool:
        return self.session.is_active()

    async def deliver(self, message: Union[SessionMessage, Exception]) -> None:
        """
        Hand a parsed message (or a parse error) to the protocol server.

        Raises:
            DeliveryError: if the connection is closed or its stream is gone.
        """
        if not self.is_writable():
            raise DeliveryError(self.session_id, "session is closed")
        try:
            await self._read_stream_writer.send(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise DeliveryError(self.session_id, "protocol stream is closed") from e

    async def on_close(self) -> bool:
        return await self.terminate("closed")

    async def on_error(self, exc: BaseException) -> bool:
        logger.error(f"SSE error ({self.session_id}): {exc.__class__.__name__}: {exc}")
        return await self.terminate("error")

    async def terminate(self, reason: str) -> bool:
        """
        Run cleanup once. Returns True for the call that actually cleaned up.
        """
        if not self.session.mark_closed():
            return False
        logger.info(f"SSE session closed ({reason}): {self.session_id}")
        # Cleanup must finish even when the surrounding scope is being cancelled.
        with anyio.CancelScope(shield=True):
            with contextlib.suppress(Exception):
                await self._read_stream_writer.aclose()
            await self._on_terminated(self.session)
        return True


class SseSessionTransport:
    """
    Accepts streaming connections and routes posted messages to them.

    Args:
        registry: Session registry shared by all connections
        cleanup: Called once per terminated session, after registry removal
            (release the automation handle, evict stored resources, ...)
        endpoint: Path clients post messages to
    """

    def __init__(
        self,
        registry: SessionRegistry,
        cleanup: Optional[CleanupCallback] = None,
        endpoint: str = MESSAGE_ENDPOINT,
    ):
        self._registry = registry
        self._cleanup = cleanup
        self._endpoint = endpoint

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def _on_terminated(self, session: Session) -> None:
        self._registry.remove(session.session_id)
        if self._cleanup is not None:
            try:
                await self._cleanup(session)
            except Exception as e:
                logger.error(f"Cleanup failed for session {session.session_id}: {e}", exc_info=True)

    def open_connection(self, session: Session):
        """
        Register a connection for an ACTIVE session.

        Returns:
            (connection, read_stream) where read_stream feeds the protocol server.

        Raises:
            ProvisioningError: if the registry cannot allocate an identity.
        """
        read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
        connection = SessionConnection(session, read_stream_writer, self._on_terminated)
        try:
            session.session_id = self._registry.create(connection)
        except Exception:
            read_stream_writer.close()
            read_stream.close()
            raise
        session.connection = connection
        return connection, read_stream

    def endpoint_uri(self, scope: Scope, session_id: str) -> str:
        root_path = scope.get("root_path", "")
        full_path = root_path.rstrip("/") + self._endpoint
        return f"{quote(full_path)}?{SESSION_ID_PARAM}={session_id}"

    async def connect_sse(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        session: Session,
        run_protocol: ProtocolRunner,
    ) -> None:
        """
        Serve one streaming connection until the client leaves or the protocol ends.

        Raises:
            ProvisioningError: before anything is sent, if no identity could be
                allocated. Nothing is registered in that case.
        """
        connection, read_stream = self.open_connection(session)
        session_id = session.session_id
        logger.info(f"SSE session established: {session_id}")

        write_stream, write_stream_reader = anyio.create_memory_object_stream(0)
        sse_stream_writer, sse_stream_reader = anyio.create_memory_object_stream(0)
        endpoint_uri = self.endpoint_uri(scope, session_id)

        async def sse_writer():
            async with sse_stream_writer, write_stream_reader:
                await sse_stream_writer.send({"event": "endpoint", "data": endpoint_uri})
                async for session_message in write_stream_reader:
                    await sse_stream_writer.send({
                        "event": "message",
                        "data": session_message.message.model_dump_json(by_alias=True, exclude_none=True),
                    })

        async def stream_events():
            try:
                await EventSourceResponse(
                    content=sse_stream_reader,
                    data_sender_callable=sse_writer,
                )(scope, receive, send)
            finally:
                logger.info(f"Client disconnected: {session_id}")
                # Ending the protocol's input lets the protocol server wind down.
                await connection.on_close()
                with contextlib.suppress(Exception):
                    await write_stream_reader.aclose()

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(stream_events)
                await run_protocol(read_stream, write_stream)
                tg.cancel_scope.cancel()
        except Exception as exc:
            await connection.on_error(exc)
        finally:
            await connection.on_close()

    async def handle_post_message(self, request: Request) -> Response:
        session_id = request.query_params.get(SESSION_ID_PARAM)
        if not session_id:
            return Response("Missing sessionId parameter", status_code=400)

        try:
            connection = self._registry.lookup(session_id)
        except SessionNotFoundError as e:
            logger.warning(f"POST for unknown session {session_id}")
            return Response(str(e), status_code=503)

        body = await request.body()
        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as err:
            logger.warning(f"Could not parse message for session {session_id}: {err}")
            with contextlib.suppress(DeliveryError):
                await connection.deliver(err)
            return Response("Could not parse message", status_code=400)

        logger.debug(f"POST to SSE transport (session {session_id})")
        try:
            await connection.deliver(SessionMessage(message))
        except DeliveryError as e:
            logger.error(f"Error handling message for session {session_id}: {e}")
            return Response("Internal server error", status_code=500)
        return Response("Accepted", status_code=202)


__all__ = ["SessionConnection", "SseSessionTransport"]
