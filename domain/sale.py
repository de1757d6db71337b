"""
Domain: internal sale records ("vendas internas").

Sale records are created by sellers and never physically deleted; they move
through the internal status machine instead:

    nova -> enviada -> aguardando -> confirmada | cancelada
    enviada -> contestacao_enviada -> contestacao_procedente | contestacao_improcedente

Terminal states: confirmada, cancelada, contestacao_procedente,
contestacao_improcedente. Each transition is audited by the status service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp


class InternalStatus(str, Enum):
    NOVA = "nova"
    ENVIADA = "enviada"
    AGUARDANDO = "aguardando"
    CONFIRMADA = "confirmada"
    CANCELADA = "cancelada"
    CONTESTACAO_ENVIADA = "contestacao_enviada"
    CONTESTACAO_PROCEDENTE = "contestacao_procedente"
    CONTESTACAO_IMPROCEDENTE = "contestacao_improcedente"

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: "InternalStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: Mapping[InternalStatus, frozenset[InternalStatus]] = {
    InternalStatus.NOVA: frozenset({InternalStatus.ENVIADA}),
    InternalStatus.ENVIADA: frozenset({InternalStatus.AGUARDANDO, InternalStatus.CONTESTACAO_ENVIADA}),
    InternalStatus.AGUARDANDO: frozenset({InternalStatus.CONFIRMADA, InternalStatus.CANCELADA}),
    InternalStatus.CONFIRMADA: frozenset(),
    InternalStatus.CANCELADA: frozenset(),
    InternalStatus.CONTESTACAO_ENVIADA: frozenset(
        {InternalStatus.CONTESTACAO_PROCEDENTE, InternalStatus.CONTESTACAO_IMPROCEDENTE}
    ),
    InternalStatus.CONTESTACAO_PROCEDENTE: frozenset(),
    InternalStatus.CONTESTACAO_IMPROCEDENTE: frozenset(),
}


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Internally originated sale, owned by the seller who created it.

    Only the fields the reconciliation core reads are modelled here.
    """

    sale_id: UUID
    seller_id: UUID
    customer_name: str
    sale_date: date
    internal_status: InternalStatus
    company_id: Optional[UUID] = None
    carrier_id: Optional[UUID] = None
    protocol: Optional[str] = None
    tax_id: Optional[str] = None
    phone: Optional[str] = None
    make_id: Optional[str] = None  # identifier in the external sales tool
    value: Optional[Decimal] = None
    notes: Optional[str] = None
    seller_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)
