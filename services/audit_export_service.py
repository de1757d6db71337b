"""
CSV export of a sale's audit trail.

Reads every page of the trail through the audit service and renders one CSV
row per entry, newest first, with values rendered the way the audit panel
shows them.

Security:
- CSV Injection Prevention: text cells are sanitized so spreadsheet apps do
  not evaluate them as formulas
- Security Logging: a warning is logged whenever characters are stripped
"""

from __future__ import annotations

import csv
import logging
import re
from io import StringIO
from typing import Iterator, List, Optional
from uuid import UUID

from domain.audit import EMPTY_VALUE_PLACEHOLDER, AuditAction, AuditLogEntry, render_value
from services import audit_service

logger = logging.getLogger(__name__)

EXPORT_PAGE_SIZE = 200

CSV_COLUMNS = [
    "Data",
    "Acao",
    "Usuario",
    "Campo",
    "Valor Anterior",
    "Valor Novo",
    "Origem",
]

_FORMULA_PREFIXES = {"=", "+", "-", "@", "\t", "\r"}
_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


def sanitize_csv_field(value: Optional[str], field_name: str = "unknown") -> str:
    """
    Strip leading characters that trigger formula execution in Excel/Sheets.

    Plain numbers (including negatives) and the empty-value placeholder are
    kept as they are.

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "Valor Novo")
        # Returns "HYPERLINK(...)" and logs a warning
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    if text == EMPTY_VALUE_PLACEHOLDER or _NUMBER.match(text):
        return text

    stripped_chars = []
    while text and text[0] in _FORMULA_PREFIXES:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def iter_audit_trail(
    sale_id: UUID,
    *,
    action: Optional[AuditAction] = None,
    page_size: Optional[int] = None,
) -> Iterator[AuditLogEntry]:
    """Yield every entry of a sale's trail, newest first, one page at a time."""

    page_size = page_size or EXPORT_PAGE_SIZE
    page = 1
    while True:
        result = audit_service.query(sale_id, page=page, page_size=page_size, action=action)
        yield from result.items
        if page >= result.page_count:
            return
        page += 1


def entry_to_csv_row(entry: AuditLogEntry) -> dict[str, str]:
    row = {
        "Data": entry.created_at.isoformat(),
        "Acao": entry.action.label,
        "Usuario": entry.actor_label,
        "Campo": entry.field or "",
        "Valor Anterior": render_value(entry.prior_value),
        "Valor Novo": render_value(entry.new_value),
        "Origem": entry.origin.value,
    }
    return {column: sanitize_csv_field(value, column) for column, value in row.items()}


def generate_audit_csv(sale_id: UUID, *, action: Optional[AuditAction] = None) -> str:
    """
    Render a sale's full audit trail as CSV text.

    Raises:
        StoreError: the store rejected a read
    """

    rows: List[dict[str, str]] = [entry_to_csv_row(e) for e in iter_audit_trail(sale_id, action=action)]

    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)

    logger.info(
        "Generated audit trail CSV",
        extra={"sale_id": str(sale_id), "entry_count": len(rows)},
    )
    return output.getvalue()


__all__ = [
    "CSV_COLUMNS",
    "sanitize_csv_field",
    "iter_audit_trail",
    "entry_to_csv_row",
    "generate_audit_csv",
]
