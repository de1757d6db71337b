"""
Audit trail service.

Contract:
- append / append_batch never raise. Auditing must not block the mutation it
  accompanies, so failures are reported on the `audit.failures` logger and
  returned as an AuditWriteResult with ok=False. Callers that care (e.g. the
  link service) pass `ok` on to their own callers.
- query reads one page of a sale's trail, newest first. `total` counts every
  matching entry regardless of the page window; a page past the end returns
  no items and the same total.

Known gap: a state change can succeed while its audit append fails. That
case is logged, never silently dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from config import get_settings
from domain.audit import AuditAction, AuditLogEntryInput, AuditPage
from domain.errors import ValidationError
from repositories.audit_repository import insert_audit_entries, query_audit_entries

logger = logging.getLogger(__name__)

# Operational channel for audit writes that could not be persisted.
failure_logger = logging.getLogger("audit.failures")


@dataclass(frozen=True, slots=True)
class AuditWriteResult:
    ok: bool
    written: int
    error: Optional[str] = None


def _report_failure(entries: Sequence[AuditLogEntryInput], error: Exception) -> AuditWriteResult:
    failure_logger.error(
        "Failed to record audit entries",
        extra={
            "sale_ids": sorted({str(entry.sale_id) for entry in entries}),
            "actions": [entry.action.value for entry in entries],
            "entry_count": len(entries),
            "error": str(error),
        },
    )
    return AuditWriteResult(ok=False, written=0, error=str(error))


def append(entry: AuditLogEntryInput) -> AuditWriteResult:
    """Append one audit entry (best effort, never raises)."""

    return append_batch([entry])


def append_batch(entries: Sequence[AuditLogEntryInput]) -> AuditWriteResult:
    """
    Append entries in one write, in order (best effort, never raises).

    An empty sequence is a no-op and touches no store.
    """

    entries = list(entries)
    if not entries:
        return AuditWriteResult(ok=True, written=0)

    try:
        written = insert_audit_entries(entries)
    except Exception as e:  # audit must never break the caller's flow
        return _report_failure(entries, e)

    logger.debug(
        "Recorded audit entries",
        extra={"entry_count": written, "actions": [entry.action.value for entry in entries]},
    )
    return AuditWriteResult(ok=True, written=written)


def query(
    sale_id: UUID,
    page: int = 1,
    page_size: Optional[int] = None,
    *,
    action: Optional[AuditAction] = None,
) -> AuditPage:
    """
    Read one page of a sale's audit trail.

    Args:
        sale_id: Sale whose trail is read
        page: 1-based page number
        page_size: Entries per page (defaults to AUDIT_PAGE_SIZE)
        action: Optional action filter

    Raises:
        ValidationError: page or page_size below 1
        StoreError: the store rejected the read
    """

    if page_size is None:
        page_size = get_settings().audit_page_size
    if page < 1:
        raise ValidationError("page must be >= 1")
    if page_size < 1:
        raise ValidationError("page_size must be >= 1")

    offset = (page - 1) * page_size
    items, total = query_audit_entries(sale_id, offset=offset, limit=page_size, action=action)

    return AuditPage(items=items, total=total, page=page, page_size=page_size, action=action)


__all__ = [
    "AuditWriteResult",
    "append",
    "append_batch",
    "query",
]
