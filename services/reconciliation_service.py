"""
Reconciliation link service.

Handles:
- Candidate search for the manual-link flow (sale -> carrier lines, or
  carrier line -> sales)
- Manual link creation with duplicate prevention
- Link removal (un-reconcile)
- One audit entry per link state change

Uniqueness of reconciled links per pair is ultimately enforced by the store
(partial unique index). The pre-check here gives a clean error in the common
case; the index decides races between concurrent callers, and the loser gets
ConflictError just the same.

Audit writes are best effort: when the link change succeeds and the audit
append fails, the outcome is still a success with audit_recorded=False and
the failure is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from config import get_settings
from domain.audit import Actor, AuditAction, AuditLogEntryInput, AuditOrigin
from domain.carrier import CarrierRecord
from domain.errors import ConflictError, ValidationError
from domain.reconciliation import (
    MANUAL_MATCH_SCORE,
    AnchorType,
    CandidateSummary,
    LinkStatus,
    MatchType,
    ReconciliationLink,
)
from domain.sale import SaleRecord
from repositories import carrier_repository, reconciliation_repository, sale_repository
from repositories._support import clean_search_term
from services import audit_service

logger = logging.getLogger(__name__)

MANUAL_LINK_FIELD = "vinculo_manual"
LINK_STATUS_FIELD = "status_final"


@dataclass(frozen=True, slots=True)
class LinkOutcome:
    """
    Result of a link state change.

    link: the link as persisted
    audit_recorded: False when the change succeeded but its audit entry could
        not be written (see the audit.failures log)
    """

    link: ReconciliationLink
    audit_recorded: bool


def format_brl(value: Optional[Decimal]) -> Optional[str]:
    """Format a monetary value as Brazilian reais (R$ 1.234,56)."""

    if value is None:
        return None
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def _carrier_candidate(record: CarrierRecord) -> CandidateSummary:
    return CandidateSummary(
        record_id=record.carrier_record_id,
        record_type=AnchorType.CARRIER,
        label=f"{record.carrier_name} - {record.customer_name or 'Sem nome'}",
        sublabel=f"Protocolo: {record.protocol or '-'} | CPF: {record.tax_id or '-'}",
        extra=format_brl(record.effective_value),
    )


def _sale_candidate(sale: SaleRecord) -> CandidateSummary:
    return CandidateSummary(
        record_id=sale.sale_id,
        record_type=AnchorType.SALE,
        label=f"{sale.customer_name} - {sale.seller_name or 'Sem vendedor'}",
        sublabel=(
            f"Protocolo: {sale.protocol or '-'} | CPF: {sale.tax_id or '-'} "
            f"| ID Make: {sale.make_id or '-'}"
        ),
        extra=format_brl(sale.value) if sale.value else None,
    )


def search_candidates(
    anchor_type: AnchorType | str,
    anchor_id: UUID,
    query: str,
    *,
    limit: Optional[int] = None,
) -> List[CandidateSummary]:
    """
    Search records of the *other* type that could be linked to the anchor.

    Matches protocol, tax id, customer name or phone (case-insensitive
    substring, OR-combined). Each call queries the store again; nothing is
    kept between calls.

    An empty query returns no candidates and does not touch the store.

    Raises:
        ValidationError: unknown anchor type
        StoreError: the store rejected the search
    """

    try:
        anchor_type = AnchorType(anchor_type)
    except ValueError:
        raise ValidationError(f"Unknown anchor type: {anchor_type!r}") from None

    term = clean_search_term(query or "")
    if not term:
        return []

    if limit is None:
        limit = get_settings().candidate_search_limit

    if anchor_type is AnchorType.SALE:
        candidates = [_carrier_candidate(r) for r in carrier_repository.search_carrier_records(term, limit)]
    else:
        candidates = [_sale_candidate(s) for s in sale_repository.search_sales(term, limit)]

    logger.debug(
        "Candidate search",
        extra={"anchor_type": anchor_type.value, "anchor_id": str(anchor_id), "results": len(candidates)},
    )
    return candidates


def create_manual_link(
    sale_id: UUID,
    carrier_record_id: UUID,
    actor: Actor,
    note: Optional[str] = None,
    *,
    origin: AuditOrigin = AuditOrigin.UI,
    source_screen: str = "divergencias",
) -> LinkOutcome:
    """
    Manually link a sale record to a carrier record.

    Process:
    1. Both records must exist
    2. The pair must not already have a reconciled link
    3. Insert link (manual, score 100, conciliado, validated by actor, now)
    4. Append a CONCILIAR audit entry carrying the carrier id and note

    Raises:
        ValidationError: a record does not exist
        ConflictError: the pair (or either side) is already reconciled; nothing written
        StoreError: the store rejected a read or the insert
    """

    if sale_repository.get_sale_by_id(sale_id) is None:
        raise ValidationError(f"Sale not found: {sale_id}")
    if carrier_repository.get_carrier_record_by_id(carrier_record_id) is None:
        raise ValidationError(f"Carrier record not found: {carrier_record_id}")

    if reconciliation_repository.find_reconciled_link(sale_id, carrier_record_id) is not None:
        raise ConflictError(reconciliation_repository.ALREADY_RECONCILED)

    clean_note = (note or "").strip() or None

    link = reconciliation_repository.insert_link(
        sale_id=sale_id,
        carrier_record_id=carrier_record_id,
        match_type=MatchType.MANUAL,
        score=MANUAL_MATCH_SCORE,
        status=LinkStatus.CONCILIADO,
        validated_by=actor.user_id,
        validated_at=datetime.now(timezone.utc),
        note=clean_note,
    )
    logger.info(
        "Manual link created",
        extra={"link_id": str(link.link_id), "sale_id": str(sale_id), "carrier_record_id": str(carrier_record_id)},
    )

    audit = audit_service.append(
        AuditLogEntryInput(
            sale_id=sale_id,
            action=AuditAction.CONCILIAR,
            actor=actor,
            field=MANUAL_LINK_FIELD,
            prior_value=None,
            new_value={"linha_operadora_id": str(carrier_record_id), "observacao": clean_note},
            origin=origin,
            metadata={"tipo_match": MatchType.MANUAL.value, "origem_tela": source_screen},
        )
    )
    if not audit.ok:
        logger.warning(
            "Manual link created without audit entry",
            extra={"link_id": str(link.link_id), "sale_id": str(sale_id)},
        )

    return LinkOutcome(link=link, audit_recorded=audit.ok)


def remove_link(
    link_id: UUID,
    actor: Actor,
    *,
    new_status: LinkStatus | str = LinkStatus.DIVERGENTE,
    reason: Optional[str] = None,
    origin: AuditOrigin = AuditOrigin.UI,
) -> LinkOutcome:
    """
    Take a reconciled link out of the reconciled state.

    The link row is kept (history) and moved to `new_status`; a DESCONCILIAR
    audit entry records the prior and new status.

    Raises:
        ValidationError: unknown link, link not reconciled, or new_status is conciliado
        ConflictError: the link changed concurrently
        StoreError: the store rejected a read or the update
    """

    try:
        new_status = LinkStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown link status: {new_status!r}") from None
    if new_status is LinkStatus.CONCILIADO:
        raise ValidationError("new_status must be divergente or nao_encontrado")

    link = reconciliation_repository.get_link_by_id(link_id)
    if link is None:
        raise ValidationError(f"Link not found: {link_id}")
    if not link.is_reconciled:
        raise ValidationError(f"Link {link_id} is not reconciled (status: {link.status.value})")

    updated = reconciliation_repository.update_link_status(
        link_id,
        expected_status=LinkStatus.CONCILIADO,
        new_status=new_status,
    )
    logger.info(
        "Link removed",
        extra={"link_id": str(link_id), "sale_id": str(link.sale_id), "new_status": new_status.value},
    )

    metadata = {"link_id": str(link_id), "linha_operadora_id": str(link.carrier_record_id)}
    if reason:
        metadata["motivo"] = reason.strip()

    audit = audit_service.append(
        AuditLogEntryInput(
            sale_id=link.sale_id,
            action=AuditAction.DESCONCILIAR,
            actor=actor,
            field=LINK_STATUS_FIELD,
            prior_value=link.status.value,
            new_value=new_status.value,
            origin=origin,
            metadata=metadata,
        )
    )
    if not audit.ok:
        logger.warning(
            "Link removed without audit entry",
            extra={"link_id": str(link_id), "sale_id": str(link.sale_id)},
        )

    return LinkOutcome(link=updated, audit_recorded=audit.ok)


def list_links_for_sale(sale_id: UUID) -> List[ReconciliationLink]:
    return reconciliation_repository.list_links_for_sale(sale_id)


__all__ = [
    "LinkOutcome",
    "format_brl",
    "search_candidates",
    "create_manual_link",
    "remove_link",
    "list_links_for_sale",
]
