"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Period Models
# ============================================================================

class PeriodResponse(BaseModel):
    """Resolved date window for a period preset."""
    preset: str
    start: date
    end: date
    payment_date: Optional[date] = None

    class Config:
        json_schema_extra = {
            "example": {
                "preset": "commission",
                "start": "2024-01-01",
                "end": "2024-01-31",
                "payment_date": "2024-03-15"
            }
        }


# ============================================================================
# Reconciliation Models
# ============================================================================

class CandidateResponse(BaseModel):
    """One record that can be linked to the anchor record."""
    record_id: UUID
    record_type: str  # "sale" or "carrier"
    label: str
    sublabel: str
    extra: Optional[str] = None


class CandidateListResponse(BaseModel):
    items: List[CandidateResponse]
    total_count: int


class ManualLinkRequest(BaseModel):
    """Request to manually link a sale record to a carrier record."""
    sale_id: UUID = Field(..., description="Internal sale record ID")
    carrier_record_id: UUID = Field(..., description="Carrier report line ID")
    note: Optional[str] = Field(None, max_length=2000, description="Reason or remarks for the manual link")

    class Config:
        json_schema_extra = {
            "example": {
                "sale_id": "123e4567-e89b-12d3-a456-426614174000",
                "carrier_record_id": "123e4567-e89b-12d3-a456-426614174001",
                "note": "Protocol typed with a missing digit by the seller"
            }
        }


class LinkResponse(BaseModel):
    link_id: UUID
    sale_id: UUID
    carrier_record_id: UUID
    match_type: str
    score: int
    status: str
    validated_by: Optional[UUID] = None
    validated_at: Optional[datetime] = None
    note: Optional[str] = None


class LinkOutcomeResponse(BaseModel):
    """Link change result; audit_recorded is False if the audit entry was not written."""
    link: LinkResponse
    audit_recorded: bool


class LinkListResponse(BaseModel):
    items: List[LinkResponse]
    total_count: int


# ============================================================================
# Sale Status Models
# ============================================================================

class StatusChangeRequest(BaseModel):
    status: str = Field(..., description="Target internal status (e.g. 'enviada')")


class StatusChangeResponse(BaseModel):
    sale_id: UUID
    previous: str
    current: str
    audit_recorded: bool


# ============================================================================
# Audit Models
# ============================================================================

class AuditEntryResponse(BaseModel):
    entry_id: UUID
    action: str
    action_label: str
    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    field: Optional[str] = None
    prior_value: Any = None
    new_value: Any = None
    prior_display: str
    new_display: str
    origin: str
    metadata: Optional[dict] = None
    created_at: datetime


class AuditPageResponse(BaseModel):
    items: List[AuditEntryResponse]
    total: int
    page: int
    page_size: int
    page_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "total": 42,
                "page": 1,
                "page_size": 20,
                "page_count": 3
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Conflict",
                "detail": "Sale or carrier record is already reconciled",
                "status_code": 409
            }
        }
