"""
Domain: reconciliation links ("conciliações").

A ReconciliationLink asserts that one sale record and one carrier record
describe the same sale.

Invariants (enforced by the store, checked by the link service):
- At most one link with status `conciliado` per (sale, carrier) pair.
- A sale has at most one reconciled link; a carrier record likewise.
- Manual links always carry score 100.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp

MANUAL_MATCH_SCORE = 100


class MatchType(str, Enum):
    PROTOCOLO = "protocolo"
    CPF = "cpf"
    TELEFONE = "telefone"
    MANUAL = "manual"


class LinkStatus(str, Enum):
    CONCILIADO = "conciliado"
    DIVERGENTE = "divergente"
    NAO_ENCONTRADO = "nao_encontrado"


class AnchorType(str, Enum):
    """Which side of the pair a candidate search starts from."""

    SALE = "sale"
    CARRIER = "carrier"


@dataclass(frozen=True, slots=True)
class ReconciliationLink:
    link_id: UUID
    sale_id: UUID
    carrier_record_id: UUID
    match_type: MatchType
    score: int
    status: LinkStatus
    validated_by: Optional[UUID] = None
    validated_at: Optional[datetime] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValidationError("score must be between 0 and 100")
        if self.match_type is MatchType.MANUAL and self.score != MANUAL_MATCH_SCORE:
            raise ValidationError("manual links must have score 100")
        if self.validated_at is not None:
            require_utc_timestamp("validated_at", self.validated_at)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_reconciled(self) -> bool:
        return self.status is LinkStatus.CONCILIADO


@dataclass(frozen=True, slots=True)
class CandidateSummary:
    """One search hit offered to the caller when creating a manual link."""

    record_id: UUID
    record_type: AnchorType
    label: str
    sublabel: str
    extra: Optional[str] = None
