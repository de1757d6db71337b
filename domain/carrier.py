"""
Domain: carrier report lines ("linha operadora").

Carrier records are imported from carrier-provided reports and are read-only
inside the reconciliation core.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp

_SEVEN_DIGITS = re.compile(r"^\d{7}$")


class CarrierStatus(str, Enum):
    APROVADO = "aprovado"
    INSTALADO = "instalado"
    CANCELADO = "cancelado"
    PENDENTE = "pendente"


def normalize_protocol(protocol: Optional[str]) -> Optional[str]:
    """
    Normalize a protocol code.

    Blank values become None; a code made of exactly 7 digits is left-padded
    with a single zero (carriers drop the leading zero in some exports).
    """

    if not protocol:
        return None
    trimmed = protocol.strip()
    if not trimmed:
        return None
    if _SEVEN_DIGITS.match(trimmed):
        return "0" + trimmed
    return trimmed


@dataclass(frozen=True, slots=True)
class CarrierRecord:
    carrier_record_id: UUID
    carrier_name: str
    carrier_status: CarrierStatus
    protocol: Optional[str] = None
    tax_id: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    plan: Optional[str] = None
    value: Optional[Decimal] = None
    value_lq: Optional[Decimal] = None
    reference_period: Optional[str] = None  # bi-weekly reference ("quinzena")
    source_file: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def effective_value(self) -> Optional[Decimal]:
        """The LQ value when present and non-zero, otherwise the nominal value.

        None when neither is a non-zero amount.
        """

        if self.value_lq:
            return self.value_lq
        return self.value or None
