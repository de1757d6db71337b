"""
Sale repository (persistence).

This module provides *only* persistence operations for the SaleRecord domain
entity. Status-transition rules live in the sale status service; this module
only reads sale records and applies conditional status updates.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.carrier import normalize_protocol
from domain.errors import ConflictError
from domain.sale import InternalStatus, SaleRecord
from repositories import client as db
from repositories._support import (
    execute,
    ilike_pattern,
    parse_date,
    parse_decimal,
    parse_optional_datetime,
    parse_optional_uuid,
    rows_of,
)

# Supabase table name for internal sale records.
# Keep this aligned with your database schema.
_SALES_TABLE: str = "vendas_internas"

# Columns matched by the manual-link candidate search.
_SEARCH_COLUMNS = ("protocolo_interno", "cpf_cnpj", "cliente_nome", "identificador_make", "telefone")


def _row_to_sale(row: Mapping[str, Any]) -> SaleRecord:
    """Convert a Supabase row into a SaleRecord."""

    seller = row.get("usuario") or {}
    return SaleRecord(
        sale_id=UUID(str(row["id"])),
        seller_id=UUID(str(row["usuario_id"])),
        customer_name=str(row.get("cliente_nome") or ""),
        sale_date=parse_date(row["data_venda"]),
        internal_status=InternalStatus(str(row["status_interno"])),
        company_id=parse_optional_uuid(row.get("empresa_id")),
        carrier_id=parse_optional_uuid(row.get("operadora_id")),
        protocol=normalize_protocol(row.get("protocolo_interno")),
        tax_id=row.get("cpf_cnpj"),
        phone=row.get("telefone"),
        make_id=row.get("identificador_make"),
        value=parse_decimal(row.get("valor")),
        notes=row.get("observacoes"),
        seller_name=seller.get("nome"),
        created_at=parse_optional_datetime(row.get("created_at")),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def get_sale_by_id(sale_id: UUID) -> Optional[SaleRecord]:
    """
    Retrieve a single sale record by its ID.

    Returns:
        SaleRecord or None if not found
    """

    response = execute(
        db.get_supabase().table(_SALES_TABLE).select("*").eq("id", str(sale_id)).limit(1),
        "get sale",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_sale(rows[0])


def search_sales(term: str, limit: int) -> List[SaleRecord]:
    """
    Case-insensitive substring search over protocol, tax id, customer name,
    make identifier and phone (OR-combined).

    The caller is responsible for rejecting empty terms.
    """

    pattern = ilike_pattern(term)
    filters = ",".join(f"{column}.ilike.{pattern}" for column in _SEARCH_COLUMNS)

    response = execute(
        db.get_supabase()
        .table(_SALES_TABLE)
        .select("*, usuario:usuarios(nome)")
        .or_(filters)
        .limit(limit),
        "search sales",
    )
    return [_row_to_sale(row) for row in rows_of(response)]


def update_internal_status(
    sale_id: UUID,
    expected_status: InternalStatus,
    new_status: InternalStatus,
) -> None:
    """
    Move a sale from `expected_status` to `new_status`.

    The update only applies while the stored status still equals
    `expected_status`, so two concurrent transitions cannot both succeed.

    Raises:
        ConflictError: the stored status changed since it was read
    """

    payload: dict[str, Any] = {
        "status_interno": new_status.value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    response = execute(
        db.get_supabase()
        .table(_SALES_TABLE)
        .update(payload)
        .eq("id", str(sale_id))
        .eq("status_interno", expected_status.value),
        "update sale status",
    )

    if not rows_of(response):
        raise ConflictError(
            f"Sale {sale_id} is no longer in status '{expected_status.value}'"
        )


__all__ = [
    "get_sale_by_id",
    "search_sales",
    "update_internal_status",
]
