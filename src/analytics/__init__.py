"""
Analytics Package

Time bucketing, aggregation and trend classification over normalized records.
"""

from src.analytics.aggregator import (
    DAY_NAMES,
    aggregate,
    aggregate_by_window,
    apportion_percentages,
    category_breakdown,
    category_statistics,
    category_totals,
    daily_series,
    distribution,
    distribution_labels,
    percentage,
    top_records,
    weekly_pattern,
)
from src.analytics.bucketing import (
    assign_to_window,
    build_windows,
    current_period,
    period_label,
    period_start,
    preceding_window,
    records_in_window,
    window_for_range,
)
from src.analytics.trends import (
    category_trends,
    classify,
    monthly_trend,
)

__all__ = [
    # Bucketing
    "assign_to_window",
    "build_windows",
    "current_period",
    "period_label",
    "period_start",
    "preceding_window",
    "records_in_window",
    "window_for_range",
    # Aggregation
    "DAY_NAMES",
    "aggregate",
    "aggregate_by_window",
    "apportion_percentages",
    "category_breakdown",
    "category_statistics",
    "category_totals",
    "daily_series",
    "distribution",
    "distribution_labels",
    "percentage",
    "top_records",
    "weekly_pattern",
    # Trends
    "category_trends",
    "classify",
    "monthly_trend",
]
