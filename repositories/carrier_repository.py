"""
Carrier record repository (persistence).

Read-only access to imported carrier report lines. Imports and corrections
happen outside the reconciliation core.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.carrier import CarrierRecord, CarrierStatus, normalize_protocol
from repositories import client as db
from repositories._support import (
    execute,
    ilike_pattern,
    parse_decimal,
    parse_optional_datetime,
    rows_of,
)

_CARRIER_TABLE: str = "linha_operadora"

_SEARCH_COLUMNS = ("protocolo_operadora", "cpf_cnpj", "cliente_nome", "telefone")


def _row_to_carrier_record(row: Mapping[str, Any]) -> CarrierRecord:
    """Convert a Supabase row into a CarrierRecord."""

    return CarrierRecord(
        carrier_record_id=UUID(str(row["id"])),
        carrier_name=str(row["operadora"]),
        carrier_status=CarrierStatus(str(row["status_operadora"])),
        protocol=normalize_protocol(row.get("protocolo_operadora")),
        tax_id=row.get("cpf_cnpj"),
        customer_name=row.get("cliente_nome"),
        phone=row.get("telefone"),
        plan=row.get("plano"),
        value=parse_decimal(row.get("valor")),
        value_lq=parse_decimal(row.get("valor_lq")),
        reference_period=row.get("quinzena_ref"),
        source_file=row.get("arquivo_origem"),
        created_at=parse_optional_datetime(row.get("created_at")),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def get_carrier_record_by_id(carrier_record_id: UUID) -> Optional[CarrierRecord]:
    response = execute(
        db.get_supabase()
        .table(_CARRIER_TABLE)
        .select("*")
        .eq("id", str(carrier_record_id))
        .limit(1),
        "get carrier record",
    )
    rows = rows_of(response)
    if not rows:
        return None
    return _row_to_carrier_record(rows[0])


def search_carrier_records(term: str, limit: int) -> List[CarrierRecord]:
    """
    Case-insensitive substring search over protocol, tax id, customer name
    and phone (OR-combined).
    """

    pattern = ilike_pattern(term)
    filters = ",".join(f"{column}.ilike.{pattern}" for column in _SEARCH_COLUMNS)

    response = execute(
        db.get_supabase().table(_CARRIER_TABLE).select("*").or_(filters).limit(limit),
        "search carrier records",
    )
    return [_row_to_carrier_record(row) for row in rows_of(response)]


__all__ = [
    "get_carrier_record_by_id",
    "search_carrier_records",
]
