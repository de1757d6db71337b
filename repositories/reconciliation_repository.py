"""
Reconciliation link repository (persistence).

This module provides *only* persistence operations for ReconciliationLink.
The store enforces the pair-uniqueness invariant with a partial unique index
(see sql/reconciliation_constraints.sql); this module surfaces violations of
that index as ConflictError so callers can tell "already reconciled" apart
from other failures.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.errors import ConflictError
from domain.reconciliation import LinkStatus, MatchType, ReconciliationLink
from repositories import client as db
from repositories._support import (
    execute,
    parse_optional_datetime,
    parse_optional_uuid,
    rows_of,
    to_iso_utc,
)

_LINKS_TABLE: str = "conciliacoes"

ALREADY_RECONCILED = "Sale or carrier record is already reconciled"


def _row_to_link(row: Mapping[str, Any]) -> ReconciliationLink:
    """Convert a Supabase row into a ReconciliationLink."""

    return ReconciliationLink(
        link_id=UUID(str(row["id"])),
        sale_id=UUID(str(row["venda_interna_id"])),
        carrier_record_id=UUID(str(row["linha_operadora_id"])),
        match_type=MatchType(str(row["tipo_match"])),
        score=int(row.get("score_match") or 0),
        status=LinkStatus(str(row["status_final"])),
        validated_by=parse_optional_uuid(row.get("validado_por")),
        validated_at=parse_optional_datetime(row.get("validado_em")),
        note=row.get("observacao"),
        created_at=parse_optional_datetime(row.get("created_at")),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def find_reconciled_link(sale_id: UUID, carrier_record_id: UUID) -> Optional[ReconciliationLink]:
    """Return the reconciled link for this exact pair, if any."""

    response = execute(
        db.get_supabase()
        .table(_LINKS_TABLE)
        .select("*")
        .eq("venda_interna_id", str(sale_id))
        .eq("linha_operadora_id", str(carrier_record_id))
        .eq("status_final", LinkStatus.CONCILIADO.value)
        .limit(1),
        "check existing link",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_link(rows[0])


def insert_link(
    sale_id: UUID,
    carrier_record_id: UUID,
    match_type: MatchType,
    score: int,
    status: LinkStatus,
    validated_by: Optional[UUID],
    validated_at: Optional[datetime],
    note: Optional[str],
) -> ReconciliationLink:
    """
    Insert a new link.

    Raises:
        ConflictError: the store's uniqueness constraint rejected the insert
        StoreError: any other store failure
    """

    link_id = uuid4()
    now = datetime.now(timezone.utc)

    link = ReconciliationLink(
        link_id=link_id,
        sale_id=sale_id,
        carrier_record_id=carrier_record_id,
        match_type=match_type,
        score=score,
        status=status,
        validated_by=validated_by,
        validated_at=validated_at,
        note=note,
        created_at=now,
        updated_at=now,
    )

    payload: dict[str, Any] = {
        "id": str(link_id),
        "venda_interna_id": str(sale_id),
        "linha_operadora_id": str(carrier_record_id),
        "tipo_match": match_type.value,
        "score_match": score,
        "status_final": status.value,
        "validado_por": str(validated_by) if validated_by else None,
        "validado_em": to_iso_utc(validated_at, name="validated_at") if validated_at else None,
        "observacao": note,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }

    execute(
        db.get_supabase().table(_LINKS_TABLE).insert(payload),
        "insert link",
        conflict_message=ALREADY_RECONCILED,
    )
    return link


def get_link_by_id(link_id: UUID) -> Optional[ReconciliationLink]:
    response = execute(
        db.get_supabase().table(_LINKS_TABLE).select("*").eq("id", str(link_id)).limit(1),
        "get link",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_link(rows[0])


def update_link_status(
    link_id: UUID,
    expected_status: LinkStatus,
    new_status: LinkStatus,
) -> ReconciliationLink:
    """
    Change a link's final status, only if it still holds `expected_status`.

    The validator columns keep recording who reconciled the pair.

    Raises:
        ConflictError: the link's status changed since it was read
    """

    payload: dict[str, Any] = {
        "status_final": new_status.value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    response = execute(
        db.get_supabase()
        .table(_LINKS_TABLE)
        .update(payload)
        .eq("id", str(link_id))
        .eq("status_final", expected_status.value),
        "update link status",
    )

    rows = rows_of(response)
    if not rows:
        raise ConflictError(f"Link {link_id} is no longer '{expected_status.value}'")
    return _row_to_link(rows[0])


def list_links_for_sale(sale_id: UUID) -> List[ReconciliationLink]:
    """All links (any status) for a sale, most recent first."""

    response = execute(
        db.get_supabase()
        .table(_LINKS_TABLE)
        .select("*")
        .eq("venda_interna_id", str(sale_id))
        .order("created_at", desc=True),
        "list links",
    )
    return [_row_to_link(row) for row in rows_of(response)]


__all__ = [
    "ALREADY_RECONCILED",
    "find_reconciled_link",
    "insert_link",
    "get_link_by_id",
    "update_link_status",
    "list_links_for_sale",
]
