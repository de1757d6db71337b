"""
Reconciliation API Endpoints.

Endpoints for the manual-link flow: search candidates for an anchor record,
link a sale to a carrier record, and remove a link.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_actor, to_http_error
from api.models import (
    CandidateListResponse,
    CandidateResponse,
    LinkOutcomeResponse,
    LinkResponse,
    ManualLinkRequest,
)
from domain.audit import Actor
from domain.errors import ReconciliationError
from domain.reconciliation import ReconciliationLink
from services import reconciliation_service

router = APIRouter()


def link_to_response(link: ReconciliationLink) -> LinkResponse:
    return LinkResponse(
        link_id=link.link_id,
        sale_id=link.sale_id,
        carrier_record_id=link.carrier_record_id,
        match_type=link.match_type.value,
        score=link.score,
        status=link.status.value,
        validated_by=link.validated_by,
        validated_at=link.validated_at,
        note=link.note,
    )


@router.get(
    "/reconciliation/candidates",
    response_model=CandidateListResponse,
    summary="Search Link Candidates",
    description="Search records of the other type that could be linked to the anchor record."
)
def search_link_candidates(
    anchor_type: str = Query(..., description="'sale' or 'carrier'"),
    anchor_id: UUID = Query(..., description="ID of the anchor record"),
    q: str = Query("", description="Protocol, CPF/CNPJ, customer name or phone"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum results"),
):
    """
    Search candidates for a manual link.

    **Anchor types:**
    - `sale`: searches carrier report lines
    - `carrier`: searches internal sales

    An empty `q` returns an empty list.

    **Example request:**
    ```
    GET /api/v1/reconciliation/candidates?anchor_type=sale&anchor_id=...&q=0123
    ```
    """
    try:
        candidates = reconciliation_service.search_candidates(anchor_type, anchor_id, q, limit=limit)
    except ReconciliationError as e:
        raise to_http_error(e)

    items = [
        CandidateResponse(
            record_id=c.record_id,
            record_type=c.record_type.value,
            label=c.label,
            sublabel=c.sublabel,
            extra=c.extra,
        )
        for c in candidates
    ]
    return CandidateListResponse(items=items, total_count=len(items))


@router.post(
    "/reconciliation/links",
    response_model=LinkOutcomeResponse,
    status_code=201,
    summary="Create Manual Link",
    description="Link a sale record to a carrier record and record it in the sale's audit trail."
)
def create_manual_link(request: ManualLinkRequest, actor: Actor = Depends(get_actor)):
    """
    Manually reconcile a sale with a carrier report line.

    **Process:**
    1. Validates both records exist
    2. Rejects the link if the pair (or either side) is already reconciled
    3. Stores the link as manual, score 100, reconciled by the acting user
    4. Appends a CONCILIAR entry to the sale's audit trail

    **Errors:**
    - 404 if either record does not exist
    - 409 if already reconciled

    `audit_recorded` is false when the link was saved but the audit entry
    could not be written.

    **Example request:**
    ```json
    {
      "sale_id": "123e4567-e89b-12d3-a456-426614174000",
      "carrier_record_id": "123e4567-e89b-12d3-a456-426614174001",
      "note": "Protocol typed with a missing digit by the seller"
    }
    ```
    """
    try:
        outcome = reconciliation_service.create_manual_link(
            request.sale_id,
            request.carrier_record_id,
            actor,
            request.note,
        )
    except ReconciliationError as e:
        raise to_http_error(e)

    return LinkOutcomeResponse(link=link_to_response(outcome.link), audit_recorded=outcome.audit_recorded)


@router.delete(
    "/reconciliation/links/{link_id}",
    response_model=LinkOutcomeResponse,
    summary="Remove Link",
    description="Take a reconciled link out of the reconciled state."
)
def remove_link(
    link_id: str,
    new_status: str = Query("divergente", description="'divergente' or 'nao_encontrado'"),
    reason: Optional[str] = Query(None, max_length=2000),
    actor: Actor = Depends(get_actor),
):
    """
    Un-reconcile a link.

    The link is kept for history with its status set to `new_status`, and a
    DESCONCILIAR entry is appended to the sale's audit trail.
    """
    try:
        link_uuid = UUID(link_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid UUID format for link_id")

    try:
        outcome = reconciliation_service.remove_link(link_uuid, actor, new_status=new_status, reason=reason)
    except ReconciliationError as e:
        raise to_http_error(e)

    return LinkOutcomeResponse(link=link_to_response(outcome.link), audit_recorded=outcome.audit_recorded)
