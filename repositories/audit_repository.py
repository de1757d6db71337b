"""
Audit log repository (persistence).

Append and read operations for the `audit_log_vendas` table. Entries are
never updated or deleted from here.

Ordering: created_at descending, then `seq` descending. `seq` is an identity
column assigned at insert time, so entries sharing a timestamp come back
latest-inserted first.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from domain.audit import (
    AuditAction,
    AuditLogEntry,
    AuditLogEntryInput,
    AuditOrigin,
    deserialize_value,
    serialize_value,
)
from domain.errors import AuditWriteFailure, StoreError
from repositories import client as db
from repositories._support import (
    RANGE_NOT_SATISFIABLE,
    execute,
    parse_optional_uuid,
    parse_utc_datetime,
    rows_of,
)

_AUDIT_TABLE: str = "audit_log_vendas"


def entry_to_row(entry: AuditLogEntryInput) -> dict[str, Any]:
    """Build the insert payload for one entry, serializing prior/new values."""

    return {
        "venda_id": str(entry.sale_id),
        "user_id": str(entry.actor.user_id) if entry.actor.user_id else None,
        "user_nome": entry.actor.display_name or None,
        "acao": entry.action.value,
        "campo": entry.field or None,
        "valor_anterior": serialize_value(entry.prior_value),
        "valor_novo": serialize_value(entry.new_value),
        "origem": entry.origin.value,
        "metadata": dict(entry.metadata) if entry.metadata else None,
    }


def _row_to_entry(row: Mapping[str, Any]) -> AuditLogEntry:
    """Convert a Supabase row into an AuditLogEntry."""

    try:
        action = AuditAction(str(row["acao"]))
        origin = AuditOrigin(str(row.get("origem") or AuditOrigin.UI.value))
    except ValueError as e:
        raise StoreError(f"Unexpected audit row {row.get('id')}: {e}") from None

    return AuditLogEntry(
        entry_id=UUID(str(row["id"])),
        sale_id=UUID(str(row["venda_id"])),
        action=action,
        origin=origin,
        created_at=parse_utc_datetime(row["created_at"]),
        user_id=parse_optional_uuid(row.get("user_id")),
        user_name=row.get("user_nome"),
        field=row.get("campo"),
        prior_value=deserialize_value(row.get("valor_anterior")),
        new_value=deserialize_value(row.get("valor_novo")),
        metadata=row.get("metadata"),
    )


def insert_audit_entries(entries: Sequence[AuditLogEntryInput]) -> int:
    """
    Insert entries in a single write, preserving order.

    Returns:
        Number of entries written

    Raises:
        AuditWriteFailure: serialization or store failure
    """

    if not entries:
        return 0

    try:
        rows = [entry_to_row(entry) for entry in entries]
    except (TypeError, ValueError) as e:
        raise AuditWriteFailure(f"Failed to serialize audit entry: {e}") from e

    try:
        execute(db.get_supabase().table(_AUDIT_TABLE).insert(rows), "insert audit entries")
    except StoreError as e:
        raise AuditWriteFailure(str(e)) from e
    return len(rows)


def _filtered(query: Any, sale_id: UUID, action: Optional[AuditAction]) -> Any:
    query = query.eq("venda_id", str(sale_id))
    if action is not None:
        query = query.eq("acao", action.value)
    return query


def count_audit_entries(sale_id: UUID, action: Optional[AuditAction] = None) -> int:
    query = _filtered(db.get_supabase().table(_AUDIT_TABLE).select("id", count="exact"), sale_id, action)
    response = execute(query.limit(1), "count audit log")
    return int(getattr(response, "count", None) or 0)


def query_audit_entries(
    sale_id: UUID,
    offset: int,
    limit: int,
    action: Optional[AuditAction] = None,
) -> tuple[List[AuditLogEntry], int]:
    """
    Read one window of a sale's audit trail, newest first.

    Returns:
        (entries in the window, total matching entries)
    """

    query = _filtered(db.get_supabase().table(_AUDIT_TABLE).select("*", count="exact"), sale_id, action)
    query = query.order("created_at", desc=True).order("seq", desc=True).range(offset, offset + limit - 1)

    try:
        response = execute(query, "query audit log")
    except StoreError as e:
        if e.code != RANGE_NOT_SATISFIABLE:
            raise
        # Window starts past the last entry.
        return [], count_audit_entries(sale_id, action)

    rows = rows_of(response)
    total = getattr(response, "count", None)
    if total is None:
        total = len(rows)
    return [_row_to_entry(row) for row in rows], int(total)


__all__ = [
    "entry_to_row",
    "insert_audit_entries",
    "count_audit_entries",
    "query_audit_entries",
]
