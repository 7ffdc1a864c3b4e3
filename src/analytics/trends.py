"""
Trend Classifier

Labels a series as increasing, decreasing or stable by comparing the mean of
its leading points with the mean of its trailing points.

The rule is asymmetric and threshold-based so that short, noisy series only
count as moving when the change is clear, and the same input order always
gives the same label.
"""

import math
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional, Union

from src.analytics.aggregator import category_totals
from src.analytics.bucketing import records_in_window
from src.config import EngineSettings, get_engine_settings
from src.models.records import ZERO, FinancialRecord, to_money
from src.models.report import (
    Aggregate,
    TimeWindow,
    TrendDirection,
    TrendPoint,
    TrendSeries,
)


Number = Union[int, float, Decimal]


def _edge_size(length: int, cap: int) -> int:
    return max(1, min(cap, math.ceil(length / 3)))


def classify(
    series: Sequence[Number],
    settings: Optional[EngineSettings] = None,
) -> TrendDirection:
    """
    Classify a series.

    Fewer than 2 points is stable. Otherwise the leading and trailing
    ceil(n/3) points (at least 1, at most 3) are averaged into earlier and
    recent: increasing if recent > earlier * 1.1, decreasing if
    recent < earlier * 0.9, else stable.
    """
    if len(series) < 2:
        return TrendDirection.STABLE

    settings = settings or get_engine_settings()
    values = [float(value) for value in series]
    size = _edge_size(len(values), settings.trend_window_cap)

    earlier = sum(values[:size]) / size
    recent = sum(values[-size:]) / size

    if recent > earlier * settings.trend_increase_factor:
        return TrendDirection.INCREASING
    if recent < earlier * settings.trend_decrease_factor:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def monthly_trend(aggregates: Sequence[Aggregate]) -> TrendDirection:
    """Direction of the totals of consecutive aggregates."""
    return classify([item.total_amount for item in aggregates])


def category_trends(
    records: Iterable[FinancialRecord],
    windows: Sequence[TimeWindow],
    limit: Optional[int] = None,
) -> list[TrendSeries]:
    """
    One series per category across windows, largest total first.

    Categories are those of the records falling in any window; a window
    without spend in a category contributes a 0 point.
    """
    limit = limit or get_engine_settings().category_trend_limit
    records = list(records)

    per_window = [category_totals(records_in_window(records, window)) for window in windows]
    categories = sorted({category for totals in per_window for category in totals})

    series = []
    for category in categories:
        points = [
            TrendPoint(
                period=window.label,
                amount=to_money(totals.get(category, ZERO)),
            )
            for window, totals in zip(windows, per_window)
        ]
        series.append(TrendSeries(
            category=category,
            points=points,
            direction=classify([point.amount for point in points]),
            total_amount=to_money(sum((point.amount for point in points), ZERO)),
        ))

    series.sort(key=lambda item: (-item.total_amount, item.category))
    return series[:limit]
