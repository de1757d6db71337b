"""
Domain: sale audit trail.

An audit entry is an immutable fact describing one state change applied to a
sale. Entries are created exactly once and never mutated or deleted.

Value encoding:
- prior/new values may be any JSON-compatible value (None, str, int, float,
  bool, list, dict, nested). They are stored as JSON text and parsed back on
  read, so a round trip reproduces an equal value.
- Dates, datetimes, Decimals and UUIDs are stored as their string form.

Rendering is a caller concern; `render_value` mirrors what the audit panel
shows for a parsed value (pretty JSON for structures, the literal text
otherwise, "-" for none). `render_stored_value` parses raw column text once
and then renders it.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from .time import require_utc_timestamp

EMPTY_VALUE_PLACEHOLDER = "-"


class AuditAction(str, Enum):
    EDITAR_CAMPO = "EDITAR_CAMPO"
    CONCILIAR = "CONCILIAR"
    DESCONCILIAR = "DESCONCILIAR"
    CONFIRMAR = "CONFIRMAR"
    ESTORNAR = "ESTORNAR"
    REABRIR_CONTESTACAO = "REABRIR_CONTESTACAO"
    MUDAR_STATUS_INTERNO = "MUDAR_STATUS_INTERNO"
    MUDAR_STATUS_MAKE = "MUDAR_STATUS_MAKE"
    ALTERAR_VALOR = "ALTERAR_VALOR"
    IMPORTACAO_REMOVIDA = "IMPORTACAO_REMOVIDA"
    CONCILIAR_LOTE = "CONCILIAR_LOTE"

    @property
    def label(self) -> str:
        return ACTION_LABELS[self]

    @property
    def color(self) -> str:
        return ACTION_COLORS[self]


ACTION_LABELS: Mapping[AuditAction, str] = {
    AuditAction.EDITAR_CAMPO: "Editar Campo",
    AuditAction.CONCILIAR: "Conciliar",
    AuditAction.DESCONCILIAR: "Desconciliar",
    AuditAction.CONFIRMAR: "Confirmar",
    AuditAction.ESTORNAR: "Estornar",
    AuditAction.REABRIR_CONTESTACAO: "Reabrir Contestação",
    AuditAction.MUDAR_STATUS_INTERNO: "Mudar Status",
    AuditAction.MUDAR_STATUS_MAKE: "Mudar Status Make",
    AuditAction.ALTERAR_VALOR: "Alterar Valor",
    AuditAction.IMPORTACAO_REMOVIDA: "Importação Removida",
    AuditAction.CONCILIAR_LOTE: "Conciliar (Lote)",
}

# Badge color tokens used by the UI.
ACTION_COLORS: Mapping[AuditAction, str] = {
    AuditAction.CONCILIAR: "success",
    AuditAction.CONCILIAR_LOTE: "success",
    AuditAction.CONFIRMAR: "success",
    AuditAction.DESCONCILIAR: "destructive",
    AuditAction.ESTORNAR: "destructive",
    AuditAction.EDITAR_CAMPO: "primary",
    AuditAction.MUDAR_STATUS_INTERNO: "warning",
    AuditAction.MUDAR_STATUS_MAKE: "warning",
    AuditAction.ALTERAR_VALOR: "info",
    AuditAction.REABRIR_CONTESTACAO: "muted",
    AuditAction.IMPORTACAO_REMOVIDA: "muted",
}


class AuditOrigin(str, Enum):
    UI = "UI"
    API = "API"


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Acting user, as supplied by the identity provider.

    The core never authenticates; it only records who acted.
    """

    user_id: Optional[UUID]
    display_name: Optional[str] = None
    role: Optional[str] = None  # admin, supervisor, vendedor


SYSTEM_ACTOR = Actor(user_id=None, display_name=None, role=None)


@dataclass(frozen=True, slots=True)
class AuditLogEntryInput:
    """An audit entry waiting to be appended."""

    sale_id: UUID
    action: AuditAction
    actor: Actor = SYSTEM_ACTOR
    field: Optional[str] = None
    prior_value: Any = None
    new_value: Any = None
    origin: AuditOrigin = AuditOrigin.UI
    metadata: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """A persisted audit entry, with values already parsed back."""

    entry_id: UUID
    sale_id: UUID
    action: AuditAction
    origin: AuditOrigin
    created_at: datetime
    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    field: Optional[str] = None
    prior_value: Any = None
    new_value: Any = None
    metadata: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    @property
    def actor_label(self) -> str:
        return self.user_name or "Sistema"


@dataclass(frozen=True, slots=True)
class AuditPage:
    items: Sequence[AuditLogEntry]
    total: int
    page: int
    page_size: int
    action: Optional[AuditAction] = None

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Value of type {type(value).__name__} is not serializable for the audit trail")


def serialize_value(value: Any) -> Optional[str]:
    """Encode a prior/new value as JSON text; None stays None (stored as NULL)."""

    if value is None:
        return None
    return json.dumps(value, default=_json_default, ensure_ascii=False)


def deserialize_value(raw: Any) -> Any:
    """
    Parse a stored prior/new value.

    Strings are parsed as JSON; anything that is not valid JSON text is
    returned unchanged. Non-string values (already decoded by the store) are
    returned as-is.
    """

    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


def render_value(value: Any) -> str:
    """
    Human-readable rendering of an already parsed audit value.

    Strings are shown literally; use `render_stored_value` for raw column text.
    """

    if value is None:
        return EMPTY_VALUE_PLACEHOLDER
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=_json_default)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_stored_value(raw: Any) -> str:
    """Render a raw `valor_anterior` / `valor_novo` column value (parsed once)."""

    return render_value(deserialize_value(raw))


__all__ = [
    "AuditAction",
    "AuditOrigin",
    "Actor",
    "SYSTEM_ACTOR",
    "AuditLogEntryInput",
    "AuditLogEntry",
    "AuditPage",
    "ACTION_LABELS",
    "ACTION_COLORS",
    "serialize_value",
    "deserialize_value",
    "render_value",
    "render_stored_value",
]
