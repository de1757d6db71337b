"""
Sales API Endpoints.

Per-sale views and actions: reconciliation links, internal status changes and
the audit trail.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_actor, to_http_error
from api.models import (
    AuditEntryResponse,
    AuditPageResponse,
    LinkListResponse,
    StatusChangeRequest,
    StatusChangeResponse,
)
from api.routers.reconciliation import link_to_response
from domain.audit import Actor, AuditAction, render_value
from domain.errors import ReconciliationError
from services import audit_service, reconciliation_service, sale_status_service

router = APIRouter()


def _parse_sale_id(sale_id: str) -> UUID:
    try:
        return UUID(sale_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid UUID format for sale_id")


@router.get(
    "/sales/{sale_id}/links",
    response_model=LinkListResponse,
    summary="List Sale Links",
    description="All reconciliation links of a sale, newest first."
)
def list_sale_links(sale_id: str):
    sale_uuid = _parse_sale_id(sale_id)
    try:
        links = reconciliation_service.list_links_for_sale(sale_uuid)
    except ReconciliationError as e:
        raise to_http_error(e)

    items = [link_to_response(link) for link in links]
    return LinkListResponse(items=items, total_count=len(items))


@router.post(
    "/sales/{sale_id}/status",
    response_model=StatusChangeResponse,
    summary="Change Internal Status",
    description="Move a sale to a new internal status and record it in the audit trail."
)
def change_sale_status(sale_id: str, request: StatusChangeRequest, actor: Actor = Depends(get_actor)):
    """
    Change a sale's internal status.

    **Allowed transitions:**
    - `nova` -> `enviada`
    - `enviada` -> `aguardando`, `contestacao_enviada`
    - `aguardando` -> `confirmada`, `cancelada`
    - `contestacao_enviada` -> `contestacao_procedente`, `contestacao_improcedente`

    Any other transition is rejected with 400; a concurrent change returns 409.
    """
    sale_uuid = _parse_sale_id(sale_id)
    try:
        outcome = sale_status_service.change_internal_status(sale_uuid, request.status, actor)
    except ReconciliationError as e:
        raise to_http_error(e)

    return StatusChangeResponse(
        sale_id=outcome.sale_id,
        previous=outcome.previous.value,
        current=outcome.current.value,
        audit_recorded=outcome.audit_recorded,
    )


@router.get(
    "/sales/{sale_id}/audit",
    response_model=AuditPageResponse,
    summary="Sale Audit Trail",
    description="One page of a sale's audit trail, newest first."
)
def get_sale_audit_trail(
    sale_id: str,
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: Optional[int] = Query(None, ge=1, le=200, description="Entries per page"),
    action: Optional[str] = Query(None, description="Filter by action (e.g. CONCILIAR)"),
):
    """
    Read a page of the audit trail.

    `total` always counts every matching entry; a page past the end returns
    an empty `items` list with the same `total`.

    **Example response:**
    ```json
    {
      "items": [
        {
          "action": "CONCILIAR",
          "action_label": "Conciliar",
          "field": "vinculo_manual",
          "prior_display": "-",
          "new_display": "{\\n  \\"linha_operadora_id\\": \\"...\\"\\n}"
        }
      ],
      "total": 1,
      "page": 1,
      "page_size": 20,
      "page_count": 1
    }
    ```
    """
    sale_uuid = _parse_sale_id(sale_id)

    action_filter = None
    if action:
        try:
            action_filter = AuditAction(action)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown audit action: {action}")

    try:
        result = audit_service.query(sale_uuid, page=page, page_size=page_size, action=action_filter)
    except ReconciliationError as e:
        raise to_http_error(e)

    items = [
        AuditEntryResponse(
            entry_id=entry.entry_id,
            action=entry.action.value,
            action_label=entry.action.label,
            user_id=entry.user_id,
            user_name=entry.actor_label,
            field=entry.field,
            prior_value=entry.prior_value,
            new_value=entry.new_value,
            prior_display=render_value(entry.prior_value),
            new_display=render_value(entry.new_value),
            origin=entry.origin.value,
            metadata=entry.metadata,
            created_at=entry.created_at,
        )
        for entry in result.items
    ]
    return AuditPageResponse(
        items=items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        page_count=result.page_count,
    )
