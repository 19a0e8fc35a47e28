"""In-memory store for per-session binary resources (screenshots)."""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Dict, List

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class StoredResource:
    session_id: str
    name: str
    data: bytes
    mime_type: str = "image/png"
    created_at: datetime.datetime = field(default_factory=_utcnow)

    @property
    def uri(self) -> str:
        return f"screenshot://{self.name}"


class ResourceStore:
    """
    Keyed by (session_id, name).

    Every mutation is a single dict operation, so concurrent sessions on the
    event loop never interleave inside one.
    """

    def __init__(self):
        self._by_session: Dict[str, Dict[str, StoredResource]] = {}

    def add(self, session_id: str, name: str, data: bytes, mime_type: str = "image/png") -> StoredResource:
        resource = StoredResource(session_id=session_id, name=name, data=data, mime_type=mime_type)
        self._by_session.setdefault(session_id, {})[name] = resource
        logger.debug(f"Stored resource {name!r} for session {session_id} ({len(data)} bytes)")
        return resource

    def get(self, session_id: str, name: str) -> StoredResource:
        """Raises KeyError when the session has no resource under `name`."""
        return self._by_session.get(session_id, {})[name]

    def list(self, session_id: str) -> List[StoredResource]:
        return list(self._by_session.get(session_id, {}).values())

    def clear(self, session_id: str) -> int:
        """Evict every resource of a session. Returns the number evicted."""
        evicted = self._by_session.pop(session_id, None) or {}
        if evicted:
            logger.info(f"Evicted {len(evicted)} resource(s) for session {session_id}")
        return len(evicted)

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_session.values())


__all__ = ["ResourceStore", "StoredResource"]
