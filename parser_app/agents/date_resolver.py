"""Turn the model's date strings into local timestamps.

The model is asked for UTC ISO-8601 dates, but only its calendar date is
trusted. The time of day and zone it emits are dropped and the date is pinned
to a fixed local hour, so "2024-01-09T00:00:00Z" stays on January 9th in a
UTC-8 zone instead of sliding back to the 8th.

Relative phrases ("yesterday", "last Saturday") are resolved by the model from
the date and weekday in the prompt; nothing here does date arithmetic.
"""

from __future__ import annotations

from datetime import date, datetime, time, tzinfo
from typing import NamedTuple, Optional

from shared.domain import MealType

ANCHOR_HOUR = 8

MEAL_ANCHOR_HOURS = {
    MealType.BREAKFAST: 8,
    MealType.LUNCH: 12,
    MealType.SNACK: 15,
    MealType.DINNER: 18,
}


class ResolvedDate(NamedTuple):
    value: datetime
    warning: Optional[str] = None


def parse_calendar_date(raw: str) -> Optional[date]:
    """Calendar date of an ISO-8601 string as written, or None."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def resolve_date(
    raw: Optional[str],
    now: datetime,
    local_zone: tzinfo,
    anchor_hour: int = ANCHOR_HOUR,
) -> ResolvedDate:
    if raw is None:
        return ResolvedDate(now)

    day = parse_calendar_date(raw)
    if day is None:
        return ResolvedDate(now, f"Could not parse date {raw!r}; using the current time")

    return ResolvedDate(datetime.combine(day, time(hour=anchor_hour), tzinfo=local_zone))


def meal_anchor_hour(meal_type: Optional[MealType], default: int = ANCHOR_HOUR) -> int:
    if meal_type is None:
        return default
    return MEAL_ANCHOR_HOURS.get(meal_type, default)


def describe_today(now: datetime) -> str:
    """'2026-10-18 (Sunday)' - the anchor the model needs for relative dates."""
    return f"{now.date().isoformat()} ({now.strftime('%A')})"
