"""
Sale internal-status transitions.

Every transition is validated against the status machine in domain/sale.py,
applied with a conditional update (so a concurrent transition cannot be
overwritten), and recorded as exactly one MUDAR_STATUS_INTERNO audit entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from domain.audit import Actor, AuditAction, AuditLogEntryInput, AuditOrigin
from domain.errors import ValidationError
from domain.sale import InternalStatus
from repositories import sale_repository
from services import audit_service

logger = logging.getLogger(__name__)

STATUS_FIELD = "status_interno"


@dataclass(frozen=True, slots=True)
class StatusChangeOutcome:
    sale_id: UUID
    previous: InternalStatus
    current: InternalStatus
    audit_recorded: bool


def change_internal_status(
    sale_id: UUID,
    new_status: InternalStatus | str,
    actor: Actor,
    *,
    origin: AuditOrigin = AuditOrigin.UI,
) -> StatusChangeOutcome:
    """
    Move a sale to `new_status`.

    Raises:
        ValidationError: unknown sale or status, or transition not allowed
        ConflictError: the sale's status changed concurrently
        StoreError: the store rejected a read or the update
    """

    try:
        new_status = InternalStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown internal status: {new_status!r}") from None

    sale = sale_repository.get_sale_by_id(sale_id)
    if sale is None:
        raise ValidationError(f"Sale not found: {sale_id}")

    previous = sale.internal_status
    if not previous.can_transition_to(new_status):
        raise ValidationError(
            f"Transition not allowed: {previous.value} -> {new_status.value}"
        )

    sale_repository.update_internal_status(sale_id, expected_status=previous, new_status=new_status)
    logger.info(
        "Sale status changed",
        extra={"sale_id": str(sale_id), "from": previous.value, "to": new_status.value},
    )

    audit = audit_service.append(
        AuditLogEntryInput(
            sale_id=sale_id,
            action=AuditAction.MUDAR_STATUS_INTERNO,
            actor=actor,
            field=STATUS_FIELD,
            prior_value=previous.value,
            new_value=new_status.value,
            origin=origin,
        )
    )

    return StatusChangeOutcome(
        sale_id=sale_id,
        previous=previous,
        current=new_status,
        audit_recorded=audit.ok,
    )


__all__ = ["StatusChangeOutcome", "change_internal_status"]
