"""
Aggregator

Per-window and per-category sums, counts and percentages, plus the
amount-distribution histogram and the day-of-week spending pattern.

DESIGN DECISION: Sums are Decimal cents, so the category amounts of an
Aggregate add up to its total exactly. Percentages are apportioned with the
largest-remainder method at one decimal place, so they add up to exactly
100.0 whenever the total is positive.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from src.analytics.bucketing import records_in_window
from src.config import get_engine_settings
from src.models.records import ZERO, FinancialRecord, to_money
from src.models.report import (
    Aggregate,
    CategoryShare,
    CategoryStatistics,
    DailySpending,
    DistributionBucket,
    ExpenseLine,
    TimeWindow,
    WeekdayPattern,
)


DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

# Percentages are apportioned in tenths of a percent
_TENTHS_IN_WHOLE = 1000


def percentage(part: Decimal, total: Decimal) -> float:
    """part / total * 100 rounded to one decimal; 0 when total is 0."""
    if not total:
        return 0.0
    return round(float(part / total * 100), 1)


def apportion_percentages(amounts: Sequence[Decimal]) -> list[float]:
    """
    Percentages of each amount in the total, one decimal each, summing to 100.0.

    Largest-remainder method: every share is floored to a tenth of a percent,
    then the leftover tenths go to the shares with the largest remainders
    (earlier positions win ties). Returns all zeros when the total is 0.
    """
    total = sum(amounts, Decimal("0"))
    if total <= 0:
        return [0.0 for _ in amounts]

    exact = [amount * _TENTHS_IN_WHOLE / total for amount in amounts]
    floored = [int(value.to_integral_value(rounding=ROUND_FLOOR)) for value in exact]
    leftover = _TENTHS_IN_WHOLE - sum(floored)

    by_remainder = sorted(
        range(len(amounts)),
        key=lambda index: exact[index] - floored[index],
        reverse=True,
    )
    for index in by_remainder[:leftover]:
        floored[index] += 1

    return [tenths / 10 for tenths in floored]


def _sum_amounts(records: Iterable[FinancialRecord]) -> Decimal:
    return to_money(sum((record.amount for record in records), ZERO))


# =============================================================================
# AGGREGATES
# =============================================================================

def category_totals(records: Iterable[FinancialRecord]) -> dict[str, Decimal]:
    """Amount per category label."""
    default_category = get_engine_settings().default_category
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for record in records:
        totals[record.category or default_category] += record.amount
    return dict(totals)


def category_breakdown(records: Iterable[FinancialRecord]) -> list[CategoryShare]:
    """
    One share per category, largest amount first (ties by category name).

    Empty when the total is 0.
    """
    totals = category_totals(records)
    if sum(totals.values(), ZERO) <= 0:
        return []

    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    percentages = apportion_percentages([amount for _, amount in ordered])
    return [
        CategoryShare(
            category=category,
            amount=to_money(amount),
            percentage_of_total=share,
        )
        for (category, amount), share in zip(ordered, percentages)
    ]


def aggregate(
    records: Iterable[FinancialRecord],
    window: Optional[TimeWindow] = None,
) -> Aggregate:
    """Totals for the records in window (all records when window is None)."""
    selected = records_in_window(records, window)
    return Aggregate(
        window=window,
        total_amount=_sum_amounts(selected),
        transaction_count=len(selected),
        by_category=category_breakdown(selected),
    )


def aggregate_by_window(
    records: Iterable[FinancialRecord],
    windows: Sequence[TimeWindow],
) -> list[Aggregate]:
    """One Aggregate per window, in window order."""
    records = list(records)
    return [aggregate(records, window) for window in windows]


# =============================================================================
# DISTRIBUTION
# =============================================================================

def _edge_label(edge: int) -> str:
    if edge >= 1000 and edge % 1000 == 0:
        return f"{edge // 1000}K"
    return str(edge)


def distribution_labels(edges: Sequence[int]) -> list[str]:
    """Bucket labels for the given upper edges, e.g. 0-100 ... 10K+."""
    lower_bounds = [0, *edges]
    labels = [
        f"{_edge_label(low)}-{_edge_label(high)}"
        for low, high in zip(lower_bounds, edges)
    ]
    labels.append(f"{_edge_label(edges[-1])}+")
    return labels


def distribution(
    records: Iterable[FinancialRecord],
    edges: Optional[Sequence[int]] = None,
) -> list[DistributionBucket]:
    """
    Count records per amount range [edge_{i-1}, edge_i).

    Only non-empty buckets are returned, in edge order. Empty input gives
    an empty distribution.
    """
    edges = list(edges or get_engine_settings().distribution_edges)
    records = list(records)
    if not records:
        return []

    labels = distribution_labels(edges)
    counts = [0] * len(labels)
    for record in records:
        bucket = len(edges)
        for index, edge in enumerate(edges):
            if record.amount < edge:
                bucket = index
                break
        counts[bucket] += 1

    total = len(records)
    return [
        DistributionBucket(
            range=label,
            count=count,
            percentage=round(count / total * 100, 1),
        )
        for label, count in zip(labels, counts)
        if count
    ]


# =============================================================================
# PATTERNS AND SERIES
# =============================================================================

def weekly_pattern(records: Iterable[FinancialRecord]) -> list[WeekdayPattern]:
    """
    Spending per day of week, 0 = Sunday through 6 = Saturday.

    Always 7 entries; average is 0 on days with no records.
    """
    totals = [ZERO] * 7
    counts = [0] * 7
    for record in records:
        if record.occurred_at is None:
            continue
        # isoweekday: Monday = 1 ... Sunday = 7
        weekday = record.occurred_at.isoweekday() % 7
        totals[weekday] += record.amount
        counts[weekday] += 1

    return [
        WeekdayPattern(
            weekday=weekday,
            day=DAY_NAMES[weekday],
            day_short=DAY_NAMES[weekday][:3],
            average_amount=to_money(totals[weekday] / counts[weekday]) if counts[weekday] else ZERO,
            transaction_count=counts[weekday],
            total_amount=to_money(totals[weekday]),
        )
        for weekday in range(7)
    ]


def daily_series(
    records: Iterable[FinancialRecord],
    window: Optional[TimeWindow] = None,
) -> list[DailySpending]:
    """Total per calendar day that has records, oldest first."""
    by_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for record in records_in_window(records, window):
        if record.occurred_at is None:
            continue
        by_day[record.occurred_at.date()] += record.amount

    return [
        DailySpending(
            day=day,
            label=day.strftime("%d %b"),
            amount=to_money(amount),
        )
        for day, amount in sorted(by_day.items())
    ]


def category_statistics(records: Iterable[FinancialRecord]) -> list[CategoryStatistics]:
    """Per-category total, count, average, max, min and share; largest total first."""
    default_category = get_engine_settings().default_category
    amounts: dict[str, list[Decimal]] = defaultdict(list)
    for record in records:
        amounts[record.category or default_category].append(record.amount)

    grand_total = sum((sum(values, ZERO) for values in amounts.values()), ZERO)
    stats = []
    for category, values in amounts.items():
        total = sum(values, ZERO)
        stats.append(CategoryStatistics(
            category=category,
            total=to_money(total),
            count=len(values),
            average=to_money(total / len(values)),
            maximum=max(values),
            minimum=min(values),
            percentage_of_total=percentage(total, grand_total),
        ))

    stats.sort(key=lambda item: (-item.total, item.category))
    return stats


def top_records(
    records: Iterable[FinancialRecord],
    limit: Optional[int] = None,
) -> list[ExpenseLine]:
    """The largest records by amount, as report lines."""
    limit = limit or get_engine_settings().top_expenses_limit
    ordered = sorted(records, key=lambda record: record.amount, reverse=True)
    return [
        ExpenseLine(
            id=record.id,
            occurred_at=record.occurred_at,
            category=record.category,
            amount=record.amount,
            note=record.note,
        )
        for record in ordered[:limit]
    ]
