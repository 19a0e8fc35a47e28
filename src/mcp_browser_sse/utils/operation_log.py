"""Bounded per-session log of what the automation engine attempted."""

import datetime
import logging
from collections import deque
from typing import List, Optional

from ..constants import OPERATION_LOG_MAX_LINES, OPERATION_LOG_EXCERPT_LINES

logger = logging.getLogger(__name__)


class OperationLog:
    """
    Keeps the most recent engine steps for one session.

    Lines are mirrored to the module logger at DEBUG so they also land in the
    process log.
    """

    def __init__(self, maxlen: int = OPERATION_LOG_MAX_LINES, label: Optional[str] = None):
        self._lines = deque(maxlen=maxlen)
        self.label = label

    def record(self, message: str) -> None:
        stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%H:%M:%S")
        self._lines.append(f"[{stamp}] {message}")
        logger.debug(f"[{self.label or '-'}] {message}")

    def excerpt(self, lines: int = OPERATION_LOG_EXCERPT_LINES) -> List[str]:
        if lines <= 0:
            return []
        return list(self._lines)[-lines:]

    def clear(self) -> None:
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)


__all__ = ["OperationLog"]
