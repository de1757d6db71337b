"""
Shared request dependencies and error mapping.

The identity provider in front of this API has already authenticated the
caller; it forwards the acting user in headers.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException

from domain.audit import Actor
from domain.errors import ConflictError, StoreError, ValidationError


def get_actor(
    x_user_id: Optional[str] = Header(None, description="Acting user ID"),
    x_user_name: Optional[str] = Header(None, description="Acting user display name"),
    x_user_role: Optional[str] = Header(None, description="Acting user role"),
) -> Actor:
    user_id = None
    if x_user_id:
        try:
            user_id = UUID(x_user_id)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid UUID format for X-User-Id")
    return Actor(user_id=user_id, display_name=x_user_name, role=x_user_role)


def to_http_error(error: Exception) -> HTTPException:
    """Map a core error to the HTTP status callers should see."""

    if isinstance(error, ValidationError):
        status_code = 404 if "not found" in str(error).lower() else 400
        return HTTPException(status_code=status_code, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=502, detail=f"Record store error: {error}")
    return HTTPException(status_code=500, detail=f"Unexpected error: {error}")
