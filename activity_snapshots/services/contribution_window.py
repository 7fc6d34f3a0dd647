from collections.abc import Iterable
from collections.abc import Mapping
from datetime import date
from datetime import datetime
from datetime import timedelta
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from activity_snapshots.core.errors import MalformedInputError


WINDOW_DAYS = 370
WEEK_LENGTH = 7


class ActivityDay(BaseModel):
    """One calendar day of recorded activity."""

    model_config = ConfigDict(frozen=True)

    date: date
    count: int = Field(ge=0)
    level: int = 0


class ContributionWindow(BaseModel):
    """Bounded, week-bucketed calendar window ending at a reference day."""

    total: int
    weeks: list[list[ActivityDay]]


def parse_day_value(raw_value: Any) -> date:
    """Parse an ISO date or timestamp into a day, rejecting anything else."""

    if isinstance(raw_value, datetime):
        return raw_value.date()
    if isinstance(raw_value, date):
        return raw_value
    if not isinstance(raw_value, str) or not raw_value.strip():
        raise MalformedInputError(f"activity day has no usable date: {raw_value!r}")

    text = raw_value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise MalformedInputError(f"activity day date is invalid: {text!r}") from exc


def parse_activity_day(item: ActivityDay | Mapping[str, Any]) -> ActivityDay:
    """Validate one raw upstream day record."""

    if isinstance(item, ActivityDay):
        return item
    if not isinstance(item, Mapping):
        raise MalformedInputError(f"activity day must be a mapping, got {type(item).__name__}")

    parsed_day = parse_day_value(item.get("date"))

    raw_count = item.get("count")
    if not isinstance(raw_count, int) or isinstance(raw_count, bool) or raw_count < 0:
        raise MalformedInputError(f"activity day {parsed_day} has invalid count: {raw_count!r}")

    raw_level = item.get("level", 0)
    if not isinstance(raw_level, int) or isinstance(raw_level, bool):
        raise MalformedInputError(f"activity day {parsed_day} has invalid level: {raw_level!r}")

    return ActivityDay(date=parsed_day, count=raw_count, level=raw_level)


def _day_sort_key(day: ActivityDay) -> tuple[date, int, int]:
    # Count and level break ties between duplicate dates so any input
    # permutation yields the same output.
    return day.date, day.count, day.level


def group_into_weeks(days: Iterable[ActivityDay]) -> list[list[ActivityDay]]:
    """Cut ordered days into consecutive 7-day buckets.

    Buckets are positional, starting from the first day; the remainder
    forms a final shorter bucket.
    """

    weeks: list[list[ActivityDay]] = []
    week: list[ActivityDay] = []

    for day in days:
        week.append(day)
        if len(week) == WEEK_LENGTH:
            weeks.append(week)
            week = []

    if week:
        weeks.append(week)

    return weeks


def filter_window_days(
    days: Iterable[ActivityDay | Mapping[str, Any]],
    reference_today: date,
) -> list[ActivityDay]:
    """Return the ordered days of the window ending at `reference_today`.

    Days outside `[reference_today - 370 days, reference_today]` are
    dropped. A zero-count day dated `reference_today` is appended when the
    window has days but does not reach today.

    Raises:
        MalformedInputError: If any record cannot be parsed.
    """

    if isinstance(reference_today, datetime):
        reference_today = reference_today.date()

    parsed_days = sorted((parse_activity_day(item) for item in days), key=_day_sort_key)
    start_day = reference_today - timedelta(days=WINDOW_DAYS)

    window_days = [day for day in parsed_days if start_day <= day.date <= reference_today]

    if window_days and window_days[-1].date != reference_today:
        window_days.append(ActivityDay(date=reference_today, count=0, level=0))

    return sorted(window_days, key=_day_sort_key)


def normalize_contribution_window(
    days: Iterable[ActivityDay | Mapping[str, Any]],
    reference_today: date,
) -> ContributionWindow:
    """Build the contribution window used by the calendar heatmap."""

    window_days = filter_window_days(days, reference_today)
    total = sum(day.count for day in window_days)
    return ContributionWindow(total=total, weeks=group_into_weeks(window_days))
