"""
Domain errors for reconciliation and auditing.

Callers distinguish three outcomes:
- ValidationError: the request itself is wrong (empty input, unknown target).
- ConflictError: the pair is already reconciled; nothing was written.
- StoreError: the record store rejected a read or write.

AuditWriteFailure never reaches callers of the services; it is raised by the
audit repository and reported on the operational log channel instead.
"""

from __future__ import annotations

from typing import Optional


class ReconciliationError(Exception):
    """Base class for errors raised by the reconciliation core."""


class ValidationError(ReconciliationError, ValueError):
    """Missing or malformed input, or a referenced record does not exist."""


class ConflictError(ReconciliationError):
    """The pair is already reconciled, or the record changed since it was read."""


class StoreError(ReconciliationError, RuntimeError):
    """The record store rejected a read or write."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class AuditWriteFailure(StoreError):
    """An audit entry could not be persisted."""


__all__ = [
    "ReconciliationError",
    "ValidationError",
    "ConflictError",
    "StoreError",
    "AuditWriteFailure",
]
