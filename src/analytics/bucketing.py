"""
Time Bucketer

Produces contiguous, half-open calendar windows and assigns records to them.

DESIGN DECISION: Window boundaries are computed on calendar dates first and
only then turned into instants at local midnight in the reporting timezone.
This keeps months, quarters and years aligned to the calendar across DST
changes, where a fixed timedelta step would drift by an hour.

Weeks are ISO weeks: they start on Monday.
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, TypeVar

from dateutil.relativedelta import relativedelta

from src.config import get_engine_settings
from src.models.records import FinancialRecord
from src.models.report import Granularity, PeriodRange, TimeWindow


RecordT = TypeVar("RecordT", bound=FinancialRecord)


_STEPS = {
    Granularity.DAY: relativedelta(days=1),
    Granularity.WEEK: relativedelta(weeks=1),
    Granularity.MONTH: relativedelta(months=1),
    Granularity.QUARTER: relativedelta(months=3),
    Granularity.YEAR: relativedelta(years=1),
}


def _local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _in_zone(instant: datetime, tz: tzinfo) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def period_start(day: date, granularity: Granularity) -> date:
    """First calendar day of the period containing day."""
    if granularity == Granularity.DAY:
        return day
    if granularity == Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    if granularity == Granularity.MONTH:
        return day.replace(day=1)
    if granularity == Granularity.QUARTER:
        return day.replace(month=3 * ((day.month - 1) // 3) + 1, day=1)
    return day.replace(month=1, day=1)


def period_label(start: date, granularity: Granularity) -> str:
    """Display label for the period starting on start."""
    if granularity == Granularity.DAY:
        return start.strftime("%d %b")
    if granularity == Granularity.WEEK:
        return f"Week of {start.strftime('%d %b %Y')}"
    if granularity == Granularity.MONTH:
        return start.strftime("%b %Y")
    if granularity == Granularity.QUARTER:
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    return str(start.year)


def build_windows(
    reference: datetime,
    granularity: Granularity,
    period_count: int,
    tz: Optional[tzinfo] = None,
) -> list[TimeWindow]:
    """
    Build period_count consecutive windows ending with the one containing reference.

    Windows are ordered oldest first; the most recent window is last.
    """
    if period_count < 1:
        return []

    granularity = Granularity(granularity)
    tz = tz or get_engine_settings().tzinfo
    step = _STEPS[granularity]
    current = period_start(_in_zone(reference, tz).date(), granularity)

    windows = []
    for offset in range(period_count - 1, -1, -1):
        start = current - step * offset
        end = start + step
        windows.append(TimeWindow(
            label=period_label(start, granularity),
            start=_local_midnight(start, tz),
            end=_local_midnight(end, tz),
        ))
    return windows


def current_period(
    reference: datetime,
    granularity: Granularity,
    tz: Optional[tzinfo] = None,
) -> TimeWindow:
    """The single window of the given granularity containing reference."""
    return build_windows(reference, granularity, 1, tz)[0]


def window_for_range(
    period_range: PeriodRange,
    tz: Optional[tzinfo] = None,
) -> TimeWindow:
    """Turn an inclusive date range into [start 00:00, end + 1 day 00:00)."""
    tz = tz or get_engine_settings().tzinfo
    return TimeWindow(
        label=period_range.label(),
        start=_local_midnight(period_range.start, tz),
        end=_local_midnight(period_range.end + timedelta(days=1), tz),
    )


def preceding_window(window: TimeWindow) -> TimeWindow:
    """The window of identical length immediately before window."""
    start = window.start - window.duration
    last_day = window.start - timedelta(days=1)
    return TimeWindow(
        label=f"{start.strftime('%d %b %Y')} - {last_day.strftime('%d %b %Y')}",
        start=start,
        end=window.start,
    )


def assign_to_window(
    record: FinancialRecord,
    windows: Iterable[TimeWindow],
) -> Optional[TimeWindow]:
    """
    The unique window containing the record's timestamp, or None.

    Records without a timestamp are never assigned.
    """
    if record.occurred_at is None:
        return None
    for window in windows:
        if window.contains(record.occurred_at):
            return window
    return None


def records_in_window(
    records: Iterable[RecordT],
    window: Optional[TimeWindow],
) -> list[RecordT]:
    """Records whose timestamp falls in window; all records when window is None."""
    if window is None:
        return list(records)
    return [record for record in records if window.contains(record.occurred_at)]
