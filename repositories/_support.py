"""
Shared helpers for the Supabase repositories.

Row parsing and query execution live here so every repository maps store
failures the same way:
- postgrest APIError / response.error -> StoreError
- SQLSTATE 23505 (unique violation) -> ConflictError, when the caller says so
- transport errors and timeouts (httpx) -> StoreError
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from domain.errors import ConflictError, StoreError
from domain.time import require_utc_timestamp

UNIQUE_VIOLATION = "23505"
RANGE_NOT_SATISFIABLE = "PGRST103"
_FILTER_UNSAFE = frozenset(",()%*_\\\"")


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Unsupported date type: {type(value)!r}")


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def parse_optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def execute(query: Any, action: str, *, conflict_message: Optional[str] = None) -> Any:
    """
    Execute a PostgREST query builder and return the response.

    Args:
        query: Builder returned by supabase.table(...)...
        action: Short description used in error messages ("insert link")
        conflict_message: When set, unique violations raise ConflictError with this message

    Raises:
        ConflictError: unique violation and conflict_message was given
        StoreError: any other store or transport failure
    """

    try:
        response = query.execute()
    except APIError as e:
        code = getattr(e, "code", None)
        if conflict_message is not None and str(code) == UNIQUE_VIOLATION:
            raise ConflictError(conflict_message) from None
        message = getattr(e, "message", None) or str(e)
        raise StoreError(f"Failed to {action}: {message}", code=str(code) if code else None) from e
    except httpx.HTTPError as e:
        raise StoreError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        code = getattr(error, "code", None)
        if conflict_message is not None and str(code) == UNIQUE_VIOLATION:
            raise ConflictError(conflict_message)
        raise StoreError(f"Failed to {action}: {error}", code=str(code) if code else None)

    return response


def rows_of(response: Any) -> list[dict[str, Any]]:
    return list(getattr(response, "data", None) or [])


def clean_search_term(term: str) -> str:
    """
    Strip characters that would break out of a PostgREST `or=(...)` filter.

    Clause delimiters (comma, parentheses), quotes and the LIKE wildcards
    (`%`, `*`, `_`) are dropped from user input.
    """

    return "".join(ch for ch in term if ch not in _FILTER_UNSAFE).strip()


def ilike_pattern(term: str) -> str:
    return f"%{clean_search_term(term)}%"
