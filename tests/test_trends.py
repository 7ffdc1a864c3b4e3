"""Tests for trend classification."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from src.analytics import (
    aggregate_by_window,
    build_windows,
    category_trends,
    classify,
    monthly_trend,
)
from src.models.records import ExpenseRecord
from src.models.report import Granularity, TrendDirection


UTC = timezone.utc
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _expense(amount: str, category: str, when: datetime) -> ExpenseRecord:
    return ExpenseRecord(amount=Decimal(amount), occurred_at=when, category=category)


class TestClassify:
    """Tests for the leading/trailing mean rule."""

    @pytest.mark.parametrize("series", [[], [100]])
    def test_short_series_is_stable(self, series):
        """Test that fewer than two points are stable."""
        assert classify(series) == TrendDirection.STABLE

    def test_increasing(self):
        """Test a clear rise."""
        assert classify([100, 100, 100, 150, 150, 150]) == TrendDirection.INCREASING

    def test_decreasing(self):
        """Test a clear fall."""
        assert classify([200, 200, 100, 100]) == TrendDirection.DECREASING

    def test_small_change_is_stable(self):
        """Test that a change within ten percent is stable."""
        assert classify([100, 105]) == TrendDirection.STABLE
        assert classify([100, 95]) == TrendDirection.STABLE

    def test_threshold_is_strict(self):
        """Test that exactly ten percent more is not yet increasing."""
        assert classify([100, 110]) == TrendDirection.STABLE

    def test_edge_size_is_capped_at_three(self):
        """Test that long series average three points at each end."""
        series = [100, 100, 100, 300, 0, 0, 0, 0, 0, 100, 100, 100]
        assert classify(series) == TrendDirection.STABLE

    def test_from_zero(self):
        """Test that any spend after none is increasing."""
        assert classify([Decimal("0"), Decimal("0"), Decimal("50")]) == TrendDirection.INCREASING

    def test_deterministic(self):
        """Test that the same series always gives the same label."""
        series = [3, 1, 4, 1, 5, 9, 2, 6]
        assert len({classify(series) for _ in range(5)}) == 1


class TestSeriesTrends:
    """Tests for trends over windows."""

    def test_monthly_trend(self):
        """Test the direction of monthly totals."""
        windows = build_windows(NOW, Granularity.MONTH, 3, UTC)
        records = [
            _expense("100.00", "Food", datetime(2026, 8, 5, tzinfo=UTC)),
            _expense("100.00", "Food", datetime(2026, 9, 5, tzinfo=UTC)),
            _expense("300.00", "Food", datetime(2026, 10, 5, tzinfo=UTC)),
        ]
        assert monthly_trend(aggregate_by_window(records, windows)) == TrendDirection.INCREASING

    def test_category_trends(self):
        """Test one series per category with zero-filled points."""
        windows = build_windows(NOW, Granularity.MONTH, 3, UTC)
        records = [
            _expense("100.00", "Food", datetime(2026, 8, 5, tzinfo=UTC)),
            _expense("200.00", "Food", datetime(2026, 10, 5, tzinfo=UTC)),
            _expense("50.00", "Travel", datetime(2026, 9, 5, tzinfo=UTC)),
        ]
        food, travel = category_trends(records, windows, limit=5)

        assert food.category == "Food"
        assert [point.amount for point in food.points] == [
            Decimal("100.00"), Decimal("0"), Decimal("200.00"),
        ]
        assert [point.period for point in food.points] == ["Aug 2026", "Sep 2026", "Oct 2026"]
        assert food.direction == TrendDirection.INCREASING
        assert food.total_amount == Decimal("300.00")
        assert travel.direction == TrendDirection.STABLE

    def test_category_trends_limit(self):
        """Test that only the largest categories are kept."""
        windows = build_windows(NOW, Granularity.MONTH, 1, UTC)
        records = [
            _expense("10.00", "A", NOW),
            _expense("30.00", "B", NOW),
        ]
        trends = category_trends(records, windows, limit=1)
        assert [series.category for series in trends] == ["B"]
