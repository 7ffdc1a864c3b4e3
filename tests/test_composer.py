"""Tests for report composition."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from src.models.records import (
    DebtRecord,
    ExpenseRecord,
    InvestmentPlanRecord,
    LoanRecord,
    RecordKind,
    RecordSnapshot,
    RecordStatus,
    StockHoldingRecord,
)
from src.models.report import PeriodRange, ReportOptions, ReportType
from src.normalization import normalize
from src.reports import ReportComposer, build_report, empty_summary


UTC = timezone.utc
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
OCTOBER = PeriodRange(start=date(2026, 10, 1), end=date(2026, 10, 31))


def _expense(amount: str, category: str, when) -> ExpenseRecord:
    return ExpenseRecord(amount=Decimal(amount), category=category, occurred_at=when)


def _snapshot() -> RecordSnapshot:
    """A month of spending plus one of every other kind."""
    return RecordSnapshot(records=(
        _expense("600.00", "Food", datetime(2026, 10, 5, 9, tzinfo=UTC)),
        _expense("300.00", "Travel", datetime(2026, 10, 10, 9, tzinfo=UTC)),
        _expense("100.00", "Bills", datetime(2026, 10, 10, 18, tzinfo=UTC)),
        _expense("500.00", "Food", datetime(2026, 9, 15, tzinfo=UTC)),
        _expense("999.00", "Food", None),
        DebtRecord(kind=RecordKind.DEBT_OWED_BY_ME, amount=Decimal("500.00")),
        DebtRecord(
            kind=RecordKind.DEBT_OWED_BY_ME,
            amount=Decimal("200.00"),
            status=RecordStatus.PAID,
        ),
        DebtRecord(kind=RecordKind.DEBT_OWED_TO_ME, amount=Decimal("250.00")),
        InvestmentPlanRecord(
            amount=Decimal("1000.00"),
            monthly_amount=Decimal("1000.00"),
            annual_return_rate_percent=Decimal("12"),
            duration_months=12,
            start_date=datetime(2026, 1, 1, tzinfo=UTC),
            occurred_at=datetime(2026, 1, 1, tzinfo=UTC),
        ),
        StockHoldingRecord(
            amount=Decimal("1500.00"),
            quantity=Decimal("10"),
            buy_price=Decimal("150.00"),
            current_price=Decimal("175.00"),
        ),
        LoanRecord(
            organization_name="City Bank",
            amount=Decimal("100000.00"),
            principal=Decimal("100000.00"),
            annual_interest_rate_percent=Decimal("12"),
            due_date=datetime(2026, 10, 22, tzinfo=UTC),
        ),
    ))


def _compose(report_type, snapshot=None, period_range=OCTOBER, **options):
    return ReportComposer().compose(
        snapshot if snapshot is not None else _snapshot(),
        report_type,
        period_range,
        ReportOptions(now=NOW, **options),
    )


class TestEmptyInput:
    """Tests for reports over an empty snapshot."""

    @pytest.mark.parametrize("report_type", list(ReportType))
    def test_empty_snapshot_gives_zero_summary(self, report_type):
        """Test that every report type degrades to zeros without insights."""
        report = _compose(report_type, snapshot=RecordSnapshot.empty())
        assert report.report_type == report_type
        assert report.summary == empty_summary(report_type)
        assert report.insights == []
        assert report.insufficient_data is False

    def test_empty_summary_keys(self):
        """Test the summary keys of a monthly report."""
        assert list(empty_summary(ReportType.MONTHLY)) == [
            "totalExpenses", "totalDebts", "totalInvestments",
            "transactionCount", "avgDailySpending", "netWorth",
        ]


class TestMonthlyReport:
    """Tests for the monthly report."""

    def test_summary(self):
        """Test monthly totals over the selected period only."""
        report = _compose(ReportType.MONTHLY)
        summary = report.summary
        assert report.type == "Monthly Report"
        assert report.period_label == "01 Oct 2026 - 31 Oct 2026"
        assert summary["totalExpenses"] == Decimal("1000.00")
        assert summary["transactionCount"] == 3
        assert summary["avgDailySpending"] == Decimal("32.26")
        assert summary["totalDebts"] == Decimal("500.00")
        assert summary["totalInvestments"] == Decimal("2500.00")
        assert summary["netWorth"] == Decimal("2000.00")

    def test_breakdown_and_series(self):
        """Test category shares, daily series and top expenses."""
        report = _compose(ReportType.MONTHLY)
        assert [(s.category, s.percentage_of_total) for s in report.category_breakdown] == [
            ("Food", 60.0), ("Travel", 30.0), ("Bills", 10.0),
        ]
        assert [(p.label, p.amount) for p in report.daily_series] == [
            ("05 Oct", Decimal("600.00")),
            ("10 Oct", Decimal("400.00")),
        ]
        assert report.top_expenses[0].amount == Decimal("600.00")

    def test_insights(self):
        """Test the monthly insights."""
        report = _compose(ReportType.MONTHLY)
        assert report.insights == [
            "Your highest spending category is Food (60.0% of total)",
            "Your highest spending day was 05 Oct with ₹600.00",
            "Your average transaction amount is ₹333.33",
        ]

    def test_budget_status(self):
        """Test the budget section when a budget is given."""
        report = _compose(ReportType.MONTHLY, monthly_budget=Decimal("900"))
        assert report.budget_status.level == "over"
        assert report.budget_status.remaining == Decimal("-100.00")
        assert _compose(ReportType.MONTHLY).budget_status is None

    def test_category_filter(self):
        """Test that a category selection restricts expenses."""
        report = _compose(ReportType.MONTHLY, categories=["Food"])
        assert report.summary["totalExpenses"] == Decimal("600.00")
        assert report.summary["transactionCount"] == 1


class TestCategoryReport:
    """Tests for the category analysis report."""

    def test_statistics(self):
        """Test per-category statistics and summary."""
        report = _compose(ReportType.CATEGORY)
        assert report.summary["totalCategories"] == 3
        assert report.summary["avgPerCategory"] == Decimal("333.33")
        assert report.categories[0].category == "Food"
        assert report.insights[0] == "Food accounts for 60.0% of your spending"


class TestComprehensiveReport:
    """Tests for the comprehensive report."""

    def test_sections(self):
        """Test health, investments, obligations and dues."""
        report = _compose(ReportType.COMPREHENSIVE)
        assert report.type == "Comprehensive Financial Report"
        assert report.summary["totalExpenses"] == Decimal("1000.00")

        health = report.financial_health
        assert health.total_assets == Decimal("2500.00")
        assert health.total_liabilities == Decimal("100500.00")
        assert health.net_worth == Decimal("-98000.00")
        assert health.expense_to_income_ratio == 100.0
        assert health.total_receivables == Decimal("250.00")

        assert report.investments.plan_count == 1
        assert report.investments.stock_count == 1
        assert report.obligations.loan_count == 1
        assert report.obligations.monthly_interest == Decimal("1000.00")

        assert len(report.upcoming_dues) == 1
        assert report.upcoming_dues[0].urgency == "high"

    def test_recommendations(self):
        """Test the three recommendation rules."""
        report = _compose(ReportType.COMPREHENSIVE)
        assert report.recommendations == [
            "Consider reducing expenses as they exceed 80% of estimated income",
            "Consider diversifying spending - Food represents 60.0% of expenses",
            "Focus on debt reduction and increasing investments to improve net worth",
        ]

    def test_known_income(self):
        """Test that a given income replaces the contribution estimate."""
        report = _compose(ReportType.COMPREHENSIVE, monthly_income=Decimal("10000"))
        assert report.financial_health.expense_to_income_ratio == 10.0
        assert not any("reducing expenses" in r for r in report.recommendations)


class TestComparisonReport:
    """Tests for the period comparison report."""

    def test_against_previous_period(self):
        """Test the change against the preceding period of equal length."""
        report = _compose(ReportType.COMPARISON)
        summary = report.summary
        assert summary["currentTotal"] == Decimal("1000.00")
        assert summary["previousTotal"] == Decimal("500.00")
        assert summary["totalChange"] == Decimal("500.00")
        assert summary["percentageChange"] == 100.0
        assert summary["countChange"] == 2
        assert report.comparison.previous_label == "31 Aug 2026 - 30 Sep 2026"
        assert report.insights == [
            "Spending increased by ₹500.00 (100.0%) compared to the previous period"
        ]

    def test_no_previous_spending(self):
        """Test that a zero previous total does not divide by zero."""
        snapshot = RecordSnapshot(records=(
            _expense("50.00", "Food", datetime(2026, 10, 2, tzinfo=UTC)),
        ))
        report = _compose(ReportType.COMPARISON, snapshot=snapshot)
        assert report.summary["percentageChange"] == 0.0
        assert len(report.insights) == 1


class TestAnalyticsReport:
    """Tests for the analytics report."""

    def test_windows_and_cash_flow(self):
        """Test monthly windows, cash flow and patterns."""
        report = _compose(ReportType.ANALYTICS, months=3)
        assert [a.window.label for a in report.monthly_breakdown] == [
            "Aug 2026", "Sep 2026", "Oct 2026",
        ]
        assert report.summary["totalExpenses"] == Decimal("1500.00")
        assert report.summary["avgMonthlySpending"] == Decimal("500.00")
        assert report.summary["transactionCount"] == 4
        assert [row.inflow for row in report.cash_flow] == [Decimal("833.33")] * 3
        assert len(report.weekly_pattern) == 7
        assert len(report.budget_performance) == 3
        assert report.insights


class TestZeroAmountExpenses:
    """Tests for periods whose expenses carry no amount."""

    def _snapshot(self) -> RecordSnapshot:
        return RecordSnapshot(records=(
            _expense("0.00", "Food", datetime(2026, 10, 5, tzinfo=UTC)),
            normalize({"category": "Travel", "date": "2026-10-06"}, RecordKind.EXPENSE),
            DebtRecord(kind=RecordKind.DEBT_OWED_BY_ME, amount=Decimal("500.00")),
        ))

    def test_monthly_keeps_summary(self):
        """Test that zero-amount expenses still count and other totals survive."""
        report = _compose(ReportType.MONTHLY, snapshot=self._snapshot())
        assert report.summary["totalExpenses"] == Decimal("0.00")
        assert report.summary["transactionCount"] == 2
        assert report.summary["totalDebts"] == Decimal("500.00")
        assert report.summary["netWorth"] == Decimal("-500.00")
        assert report.category_breakdown == []
        assert report.insights == []

    def test_comprehensive_keeps_sections(self):
        """Test that the comprehensive report is built rather than emptied."""
        report = _compose(ReportType.COMPREHENSIVE, snapshot=self._snapshot())
        assert report.summary["transactionCount"] == 2
        assert report.summary["totalDebts"] == Decimal("500.00")
        assert report.financial_health.total_liabilities == Decimal("500.00")
        assert report.insights == []
        assert not any("diversifying" in r for r in report.recommendations)

    def test_category_without_spending(self):
        """Test that categories are listed but no insights are drawn."""
        report = _compose(ReportType.CATEGORY, snapshot=self._snapshot())
        assert report.summary["totalCategories"] == 2
        assert report.insights == []

    def test_analytics_without_spending(self):
        """Test that the analytics report counts records but draws no insights."""
        report = _compose(ReportType.ANALYTICS, snapshot=self._snapshot(), months=3)
        assert report.summary["transactionCount"] == 2
        assert report.insights == []


class TestComposerGuarantees:
    """Tests for determinism and failure handling."""

    def test_deterministic(self):
        """Test that one snapshot always gives the same figures."""
        snapshot = _snapshot()
        first = _compose(ReportType.COMPREHENSIVE, snapshot=snapshot)
        second = _compose(ReportType.COMPREHENSIVE, snapshot=snapshot)
        assert first.model_dump(exclude={"generated_at"}) == second.model_dump(exclude={"generated_at"})

    def test_never_raises(self, monkeypatch):
        """Test that an internal error yields an empty report."""
        composer = ReportComposer()

        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(composer, "_monthly", boom)
        report = composer.compose(_snapshot(), ReportType.MONTHLY, OCTOBER, ReportOptions(now=NOW))
        assert report.summary == empty_summary(ReportType.MONTHLY)
        assert report.insights == []

    def test_unknown_report_type(self):
        """Test that an unknown report type raises ValueError."""
        with pytest.raises(ValueError):
            build_report(list(_snapshot().records), "weekly", OCTOBER)

    def test_build_report_accepts_records(self):
        """Test the module-level entry point with a plain list."""
        report = build_report(
            list(_snapshot().records),
            ReportType.MONTHLY,
            OCTOBER,
            ReportOptions(now=NOW),
        )
        assert report.summary["totalExpenses"] == Decimal("1000.00")

    def test_default_period_is_current_month(self):
        """Test that the period defaults to the month of now."""
        report = ReportComposer().compose(
            _snapshot(), ReportType.MONTHLY, options=ReportOptions(now=NOW)
        )
        assert report.period_label == "01 Oct 2026 - 31 Oct 2026"
