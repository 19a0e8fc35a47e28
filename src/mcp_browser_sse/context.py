"""
Per-connection session state.

Each SSE connection owns exactly one Session. The Session owns its automation
handle exclusively; no other session may use it.

Lifecycle:
    PENDING  connection accepted, handle not attached yet
    ACTIVE   credentials validated, handle attached, registered
    CLOSED   terminal; cleanup has run (exactly once)
"""

import enum
import datetime
from typing import Any, Optional
from dataclasses import dataclass, field

from .config import Credentials


class SessionState(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class Session:
    """
    State for one streaming connection.

    Attributes:
        session_id: Opaque server-generated identity (set on registration)
        credentials: Resolved credentials the handle was provisioned with
        handle: Automation handle, exclusively owned by this session
        connection: The transport-level connection wrapper
        created_at: UTC creation time
        state: Current lifecycle state
    """

    credentials: Optional[Credentials] = None
    handle: Optional[Any] = None
    session_id: Optional[str] = None
    connection: Optional[Any] = None
    created_at: datetime.datetime = field(default_factory=_utcnow)
    state: SessionState = SessionState.PENDING

    def activate(self, handle: Any) -> None:
        """Attach the automation handle and move PENDING -> ACTIVE."""
        if self.state is not SessionState.PENDING:
            raise RuntimeError(f"Cannot activate session in state {self.state.value}")
        self.handle = handle
        self.state = SessionState.ACTIVE

    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def mark_closed(self) -> bool:
        """
        One-shot close marker.

        Returns True only for the first caller; every later call returns False.
        """
        if self.state is SessionState.CLOSED:
            return False
        self.state = SessionState.CLOSED
        return True


__all__ = [
    "Session",
    "SessionState",
]
