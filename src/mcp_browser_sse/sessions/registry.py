"""
Session registry: session identity -> streaming connection.

Constructed once at application start and handed to the transport; there is
no module-level session map.
"""

import uuid
import logging
from typing import Any, Callable, Dict, Optional

from ..errors import ProvisioningError, SessionNotFoundError

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return uuid.uuid4().hex


class SessionRegistry:
    """
    Owns the mapping from session identity to connection.

    All operations are single dict steps (insert / lookup / delete), so no
    locking is needed on the event loop.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_session_id):
        self._id_factory = id_factory
        self._connections: Dict[str, Any] = {}

    def create(self, connection: Any) -> str:
        """
        Allocate a fresh identity, bind it to `connection` and return it.

        Raises:
            ProvisioningError: if no usable identity could be obtained. Nothing
                is registered in that case.
        """
        try:
            session_id = self._id_factory()
        except Exception as e:
            raise ProvisioningError(f"Failed to obtain session ID: {e}") from e
        if not session_id:
            raise ProvisioningError("Failed to obtain session ID from transport")
        if session_id in self._connections:
            raise ProvisioningError(f"Session ID already in use: {session_id}")
        self._connections[session_id] = connection
        logger.debug(f"Registered session {session_id} ({len(self._connections)} active)")
        return session_id

    def lookup(self, session_id: str) -> Any:
        """Raises SessionNotFoundError when `session_id` is not registered."""
        try:
            return self._connections[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def remove(self, session_id: str) -> Optional[Any]:
        """Idempotent; unknown ids are a no-op. Returns the removed connection, if any."""
        connection = self._connections.pop(session_id, None)
        if connection is not None:
            logger.debug(f"Removed session {session_id} ({len(self._connections)} active)")
        return connection

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)


__all__ = ["SessionRegistry"]
