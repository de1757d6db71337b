"""
Domain: business period windows.

Pure date arithmetic used to scope which records are listed for
reconciliation. All calendar fields are taken in the business timezone,
regardless of the caller's locale.

Rules implemented here:
- current_month: first..last day of the month containing `now`.
- previous_month: first..last day of the month before.
- custom: caller-supplied bounds, returned as-is (start <= end required).
- commission: payroll cutoff on the 15th.
  - day < 15:  period = month M-2, paid on the 15th of M
  - day >= 15: period = month M-1, paid on the 15th of M+1
  Day 15 itself counts as "after payday".
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

from .errors import ValidationError
from .time import business_date

BUSINESS_TIMEZONE = ZoneInfo("America/Sao_Paulo")
PAYDAY = 15


class PeriodPreset(str, Enum):
    CURRENT_MONTH = "current_month"
    PREVIOUS_MONTH = "previous_month"
    CUSTOM = "custom"
    COMMISSION = "commission"


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Closed date interval [start, end], with a payment date for commission windows."""

    start: date
    end: date
    payment_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError("period start must be on or before period end")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def as_date_strings(self) -> tuple[str, str]:
        """Bounds formatted as yyyy-MM-dd, ready for store filters."""

        return self.start.isoformat(), self.end.isoformat()


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_window(year: int, month: int) -> PeriodWindow:
    """Window covering one whole calendar month."""

    last_day = calendar.monthrange(year, month)[1]
    return PeriodWindow(start=date(year, month, 1), end=date(year, month, last_day))


def resolve_commission_period(now: datetime | date, tz: tzinfo = BUSINESS_TIMEZONE) -> PeriodWindow:
    """
    Commission window and payment date for `now`.

    Total over any instant; see the module docstring for the cutoff rule.
    """

    today = business_date(now, tz)

    if today.day < PAYDAY:
        ref_year, ref_month = _shift_month(today.year, today.month, -2)
        pay_year, pay_month = today.year, today.month
    else:
        ref_year, ref_month = _shift_month(today.year, today.month, -1)
        pay_year, pay_month = _shift_month(today.year, today.month, 1)

    window = month_window(ref_year, ref_month)
    return PeriodWindow(
        start=window.start,
        end=window.end,
        payment_date=date(pay_year, pay_month, PAYDAY),
    )


def resolve_period(
    preset: PeriodPreset | str,
    now: datetime | date,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    tz: tzinfo = BUSINESS_TIMEZONE,
) -> PeriodWindow:
    """
    Resolve a named preset to a PeriodWindow.

    Args:
        preset: PeriodPreset (or its string value)
        now: Reference instant or business date (naive datetimes are wall-clock
            time in `tz`)
        start, end: Bounds for the custom preset only
        tz: Business timezone used for calendar fields

    Raises:
        ValidationError: unknown preset, or custom bounds missing/inverted
    """

    try:
        preset = PeriodPreset(preset)
    except ValueError:
        raise ValidationError(f"Unknown period preset: {preset!r}") from None

    if preset is PeriodPreset.CUSTOM:
        if start is None or end is None:
            raise ValidationError("custom period requires both start and end")
        return PeriodWindow(start=start, end=end)

    if preset is PeriodPreset.COMMISSION:
        return resolve_commission_period(now, tz)

    today = business_date(now, tz)
    if preset is PeriodPreset.CURRENT_MONTH:
        return month_window(today.year, today.month)

    year, month = _shift_month(today.year, today.month, -1)
    return month_window(year, month)


@dataclass(frozen=True, slots=True)
class PeriodSelection:
    """
    A caller's period filter choice.

    Callers own persistence of this value (e.g. a settings record keyed by
    user); the core only resolves it.
    """

    preset: PeriodPreset = PeriodPreset.CURRENT_MONTH
    custom_start: Optional[date] = None
    custom_end: Optional[date] = None

    def resolve(self, now: datetime | date, tz: tzinfo = BUSINESS_TIMEZONE) -> PeriodWindow:
        return resolve_period(self.preset, now, start=self.custom_start, end=self.custom_end, tz=tz)

    def to_dict(self) -> dict[str, Any]:
        return {
            "preset": self.preset.value,
            "custom_start": self.custom_start.isoformat() if self.custom_start else None,
            "custom_end": self.custom_end.isoformat() if self.custom_end else None,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PeriodSelection":
        start = data.get("custom_start")
        end = data.get("custom_end")
        try:
            return PeriodSelection(
                preset=PeriodPreset(data.get("preset", PeriodPreset.CURRENT_MONTH.value)),
                custom_start=date.fromisoformat(start) if start else None,
                custom_end=date.fromisoformat(end) if end else None,
            )
        except ValueError as e:
            raise ValidationError(f"Invalid period selection: {e}") from None


__all__ = [
    "BUSINESS_TIMEZONE",
    "PeriodPreset",
    "PeriodWindow",
    "PeriodSelection",
    "month_window",
    "resolve_period",
    "resolve_commission_period",
]
