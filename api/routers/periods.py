"""
Period API Endpoints.

Resolves period presets (current month, previous month, custom, commission)
to concrete date windows in the business timezone.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from api.dependencies import to_http_error
from api.models import PeriodResponse
from config import get_settings
from domain.errors import ReconciliationError
from domain.period import resolve_period
from domain.time import utc_now

router = APIRouter()


@router.get(
    "/periods/{preset}",
    response_model=PeriodResponse,
    summary="Resolve Period",
    description="Resolve a period preset to a start/end date window."
)
def get_period(
    preset: str,
    start: Optional[date] = Query(None, description="Start date (custom preset only)"),
    end: Optional[date] = Query(None, description="End date (custom preset only)"),
):
    """
    Resolve a period preset relative to the current date in the business timezone.

    **Presets:**
    - `current_month`: first to last day of this month
    - `previous_month`: first to last day of last month
    - `custom`: requires `start` and `end`
    - `commission`: the month whose commission is paid next, plus the payment date

    **Commission rule:**
    Commission for a month is paid on the 15th of the second month after it.
    Before the 15th the period is two months back; from the 15th on it is last month.

    **Example request:**
    ```
    GET /api/v1/periods/commission
    ```

    **Example response (on 2024-03-10):**
    ```json
    {
      "preset": "commission",
      "start": "2024-01-01",
      "end": "2024-01-31",
      "payment_date": "2024-03-15"
    }
    ```
    """
    try:
        window = resolve_period(preset, utc_now(), start=start, end=end, tz=get_settings().tz)
    except ReconciliationError as e:
        raise to_http_error(e)

    return PeriodResponse(
        preset=preset,
        start=window.start,
        end=window.end,
        payment_date=window.payment_date,
    )
