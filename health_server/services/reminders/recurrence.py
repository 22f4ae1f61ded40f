"""Next-occurrence calculation for reminder schedules.

Every function here is pure: the current instant is always passed in, never
read from a clock. Weekdays follow the stored convention, Sunday=0 .. Saturday=6.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from dateutil.relativedelta import relativedelta

from .models import Frequency


def sunday_weekday(moment: datetime) -> int:
    """Weekday index with Sunday=0 (Python's own numbering has Monday=0)."""
    return (moment.weekday() + 1) % 7


def _align(anchor: datetime, now: datetime) -> datetime:
    """Express the anchor in now's timezone so wall-clock fields compare.

    A naive anchor is read as wall-clock time in now's timezone; with a naive
    now, an aware anchor keeps only its wall-clock fields.
    """
    if now.tzinfo is None:
        return anchor.replace(tzinfo=None)
    if anchor.tzinfo is None:
        return anchor.replace(tzinfo=now.tzinfo)
    return anchor.astimezone(now.tzinfo)


def _at_anchor_time(day: datetime, anchor: datetime) -> datetime:
    return day.replace(hour=anchor.hour, minute=anchor.minute, second=0, microsecond=0)


def _next_daily(anchor: datetime, now: datetime) -> datetime:
    candidate = _at_anchor_time(now, anchor)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def _next_weekly(anchor: datetime, now: datetime, days_of_week: Iterable[int]) -> datetime:
    allowed = set(days_of_week)
    if not allowed:
        raise ValueError("weekly reminders need at least one day in days_of_week")

    base = _at_anchor_time(now, anchor)
    current = sunday_weekday(now)

    for offset in range(7):
        if (current + offset) % 7 in allowed:
            candidate = base + timedelta(days=offset)
            if candidate > now:
                return candidate

    # Only reached when today is the sole allowed day and its slot has passed
    return base + timedelta(days=7 - current + min(allowed))


def _next_monthly(anchor: datetime, now: datetime) -> Optional[datetime]:
    """One calendar month after the anchor, or None if that is not after now.

    Month ends are clamped (Jan 31 -> Feb 29 in a leap year) rather than
    overflowing into the following month.
    """
    candidate = anchor + relativedelta(months=1)
    return candidate if candidate > now else None


def compute_next(
    anchor: datetime,
    frequency: Union[Frequency, str],
    days_of_week: Optional[Iterable[int]],
    now: datetime,
) -> Optional[datetime]:
    """Return the next instant a reminder should fire, or None if it never will.

    ``anchor`` supplies the time of day (and, for ``once`` and ``monthly``, the
    date). Any non-None result is strictly after ``now``.
    """

    frequency = Frequency(frequency)
    anchor = _align(anchor, now)

    if frequency is Frequency.ONCE:
        return anchor if anchor > now else None
    if frequency is Frequency.DAILY:
        return _next_daily(anchor, now)
    if frequency is Frequency.WEEKLY:
        return _next_weekly(anchor, now, days_of_week or ())
    return _next_monthly(anchor, now)


def project_time_of_day(hour: int, minute: int, now: datetime) -> datetime:
    """Today's instant at hour:minute, or tomorrow's if that has already passed."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate
