"""Small shared utilities."""

from .operation_log import OperationLog
from .retry import retry_op

__all__ = ["OperationLog", "retry_op"]
