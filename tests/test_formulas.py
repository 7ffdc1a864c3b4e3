"""Tests for the financial formulas."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from src.formulas import (
    InvalidSaleError,
    budget_performance,
    budget_status,
    budget_variance,
    days_remaining,
    deadline_status,
    future_value,
    loan_interest_status,
    monthly_interest_amount,
    months_elapsed,
    next_interest_due_date,
    pay_interest,
    project_investment_plan,
    safe_divide,
    sell_stock,
    stock_position,
    upcoming_dues,
    violation_due_date,
)
from src.models.records import (
    DebtRecord,
    InterestPayment,
    InvestmentPlanRecord,
    LoanRecord,
    ObligationRecord,
    RecordKind,
    RecordStatus,
    StockHoldingRecord,
)
from src.models.report import Aggregate, TimeWindow


UTC = timezone.utc
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _holding(quantity: str = "100") -> StockHoldingRecord:
    return StockHoldingRecord(
        name="ACME",
        quantity=Decimal(quantity),
        buy_price=Decimal("150.00"),
        current_price=Decimal("175.00"),
        amount=Decimal(quantity) * Decimal("150.00"),
        buy_date=datetime(2026, 2, 1, tzinfo=UTC),
        occurred_at=datetime(2026, 2, 1, tzinfo=UTC),
        category="Stocks",
    )


def _loan(**overrides) -> LoanRecord:
    fields = dict(
        organization_name="City Bank",
        amount=Decimal("100000.00"),
        principal=Decimal("100000.00"),
        annual_interest_rate_percent=Decimal("12"),
        due_date=datetime(2026, 12, 1, tzinfo=UTC),
    )
    fields.update(overrides)
    return LoanRecord(**fields)


class TestGeneral:
    """Tests for shared helpers."""

    def test_safe_divide(self):
        """Test that a zero denominator yields zero."""
        assert safe_divide(1, 0) == 0
        assert safe_divide(Decimal("10"), 4) == Decimal("2.5")


class TestInvestmentPlans:
    """Tests for investment plan projections."""

    def test_future_value_annuity_due(self):
        """Test the annuity-due value of 1000/month at 12% for a year."""
        assert future_value(1000, 12, 12) == Decimal("12809.33")

    def test_future_value_without_return(self):
        """Test that a zero rate is the plain sum of contributions."""
        assert future_value(1000, 0, 12) == Decimal("12000.00")

    def test_future_value_before_start(self):
        """Test that no months elapsed means no value."""
        assert future_value(1000, 12, 0) == Decimal("0")

    def test_months_elapsed_ignores_day(self):
        """Test calendar-month counting."""
        assert months_elapsed(datetime(2026, 1, 31, tzinfo=UTC), datetime(2026, 2, 1, tzinfo=UTC)) == 1
        assert months_elapsed(datetime(2025, 10, 19, tzinfo=UTC), NOW) == 12
        assert months_elapsed(datetime(2027, 1, 1, tzinfo=UTC), NOW) == 0

    def test_project_investment_plan(self):
        """Test a plan that has run its full duration."""
        plan = InvestmentPlanRecord(
            name="Index Fund",
            monthly_amount=Decimal("1000.00"),
            annual_return_rate_percent=Decimal("12"),
            duration_months=12,
            start_date=datetime(2025, 10, 19, tzinfo=UTC),
        )
        projection = project_investment_plan(plan, NOW)
        assert projection.months_counted == 12
        assert projection.total_invested == Decimal("12000.00")
        assert projection.future_value == Decimal("12809.33")
        assert projection.estimated_gain == Decimal("809.33")
        assert projection.progress_percent == pytest.approx(100.0)

    def test_months_counted_capped_at_duration(self):
        """Test that contributions stop at the plan duration."""
        plan = InvestmentPlanRecord(
            monthly_amount=Decimal("500.00"),
            duration_months=6,
            start_date=datetime(2025, 1, 1, tzinfo=UTC),
        )
        projection = project_investment_plan(plan, NOW)
        assert projection.months_counted == 6
        assert projection.total_invested == Decimal("3000.00")
        assert projection.display_progress_percent == 100.0

    def test_plan_without_duration(self):
        """Test that a zero duration has zero progress."""
        plan = InvestmentPlanRecord(
            monthly_amount=Decimal("500.00"),
            start_date=datetime(2026, 1, 1, tzinfo=UTC),
        )
        assert project_investment_plan(plan, NOW).progress_percent == 0.0


class TestLoans:
    """Tests for loan interest."""

    def test_monthly_interest(self):
        """Test simple monthly interest on the principal."""
        assert monthly_interest_amount(100000, 12) == Decimal("1000.00")

    def test_next_due_after_last_payment(self):
        """Test that interest is next due a month after the last payment."""
        loan = _loan(last_interest_paid_at=datetime(2026, 9, 15, tzinfo=UTC))
        assert next_interest_due_date(loan) == datetime(2026, 10, 15, tzinfo=UTC)

    def test_next_due_from_history(self):
        """Test the last payment taken from the payment history."""
        loan = _loan(interest_payment_history=(
            InterestPayment(paid_at=datetime(2026, 8, 31, tzinfo=UTC), amount=Decimal("1000.00")),
        ))
        assert next_interest_due_date(loan) == datetime(2026, 9, 30, tzinfo=UTC)

    def test_next_due_without_payments(self):
        """Test that an unpaid loan falls back to its due date."""
        assert next_interest_due_date(_loan()) == datetime(2026, 12, 1, tzinfo=UTC)

    def test_loan_interest_status(self):
        """Test that interest is due once the next due date has passed."""
        loan = _loan(last_interest_paid_at=datetime(2026, 9, 1, tzinfo=UTC))
        status = loan_interest_status(loan, NOW)
        assert status.monthly_interest_amount == Decimal("1000.00")
        assert status.is_interest_due is True
        assert status.is_overdue is False

    def test_pay_interest_keeps_principal(self):
        """Test that paying interest appends a payment and leaves principal alone."""
        loan = _loan()
        paid = pay_interest(loan, NOW)
        assert paid.principal == loan.principal
        assert paid.last_interest_paid_at == NOW
        assert len(paid.interest_payment_history) == 1
        assert paid.interest_payment_history[0].amount == Decimal("1000.00")
        assert loan.interest_payment_history == ()


class TestDeadlines:
    """Tests for due dates."""

    def test_days_remaining(self):
        """Test whole days until and past a due date."""
        assert days_remaining(NOW + timedelta(days=5), NOW) == 5
        assert days_remaining(NOW - timedelta(days=3), NOW) == -3
        assert days_remaining(NOW + timedelta(days=4, hours=12), NOW) == 5

    def test_deadline_status_overdue(self):
        """Test overdue days."""
        status = deadline_status(NOW - timedelta(days=3), NOW)
        assert status.is_overdue is True
        assert status.overdue_days == 3

    def test_deadline_status_pending(self):
        """Test a deadline still ahead."""
        status = deadline_status(NOW + timedelta(days=5), NOW)
        assert status.is_overdue is False
        assert status.days_remaining == 5
        assert status.overdue_days == 0

    def test_violation_due_date(self):
        """Test the default grace period."""
        assert violation_due_date(datetime(2026, 10, 1, tzinfo=UTC)) == datetime(2026, 10, 31, tzinfo=UTC)


class TestStocks:
    """Tests for stock positions and sales."""

    def test_stock_position(self):
        """Test gain on a holding."""
        position = stock_position(_holding("10"))
        assert position.total_invested == Decimal("1500.00")
        assert position.current_value == Decimal("1750.00")
        assert position.gain_loss == Decimal("250.00")
        assert position.gain_loss_percent == pytest.approx(16.6667, rel=1e-4)
        assert position.is_profit is True

    def test_full_sale(self):
        """Test that selling everything marks the holding sold."""
        result = sell_stock(_holding("10"), 10, 200, NOW)
        assert result.is_full_sale is True
        assert result.sold is None
        assert result.holding.status == RecordStatus.SOLD
        assert result.holding.sell_price == Decimal("200.00")
        assert result.holding.sell_date == NOW

    def test_partial_sale_conserves_quantity(self):
        """Test that a partial sale splits the holding."""
        holding = _holding("100")
        result = sell_stock(holding, 30, 200, NOW)
        assert result.is_full_sale is False
        assert result.holding.quantity == Decimal("70")
        assert result.sold.quantity == Decimal("30")
        assert result.holding.quantity + result.sold.quantity == holding.quantity
        assert result.holding.amount == Decimal("10500.00")
        assert result.sold.status == RecordStatus.SOLD
        assert result.sold.buy_price == holding.buy_price
        assert result.sold.buy_date == holding.buy_date
        assert holding.quantity == Decimal("100")

    @pytest.mark.parametrize("quantity", [0, -1, 101])
    def test_invalid_quantity(self, quantity):
        """Test that quantities outside (0, held] are rejected."""
        with pytest.raises(InvalidSaleError):
            sell_stock(_holding("100"), quantity, 200, NOW)

    def test_cannot_sell_twice(self):
        """Test that a sold holding cannot be sold again."""
        sold = sell_stock(_holding("10"), 10, 200, NOW).holding
        with pytest.raises(InvalidSaleError):
            sell_stock(sold, 1, 200, NOW)

    def test_invalid_sale_is_value_error(self):
        """Test that callers can catch sale errors as ValueError."""
        with pytest.raises(ValueError):
            sell_stock(_holding("10"), 5, -1, NOW)


class TestBudgets:
    """Tests for budget figures."""

    def test_budget_variance(self):
        """Test overspending against a budget."""
        result = budget_variance(1000, 1200, period="Oct 2026")
        assert result.variance == Decimal("200.00")
        assert result.performance_percent == -20.0

    @pytest.mark.parametrize("spent,level", [(500, "ok"), (850, "warning"), (1200, "over")])
    def test_budget_status_levels(self, spent, level):
        """Test the budget status thresholds."""
        assert budget_status(1000, spent).level == level

    def test_budget_status_remaining(self):
        """Test that overspending leaves a negative remainder."""
        status = budget_status(1000, 1200)
        assert status.remaining == Decimal("-200.00")
        assert status.is_over_budget is True
        assert status.used_percent == 120.0

    def test_budget_performance_against_average(self):
        """Test each window against the average across windows."""
        windows = [
            TimeWindow(label="Sep 2026", start=datetime(2026, 9, 1, tzinfo=UTC), end=datetime(2026, 10, 1, tzinfo=UTC)),
            TimeWindow(label="Oct 2026", start=datetime(2026, 10, 1, tzinfo=UTC), end=datetime(2026, 11, 1, tzinfo=UTC)),
        ]
        aggregates = [
            Aggregate(window=windows[0], total_amount=Decimal("100.00"), transaction_count=1),
            Aggregate(window=windows[1], total_amount=Decimal("300.00"), transaction_count=2),
        ]
        september, october = budget_performance(aggregates)
        assert september.budget == Decimal("200.00")
        assert september.variance == Decimal("-100.00")
        assert october.variance == Decimal("100.00")
        assert october.period == "Oct 2026"

    def test_budget_performance_empty(self):
        """Test that no windows give no rows."""
        assert budget_performance([]) == []


class TestUpcomingDues:
    """Tests for the upcoming dues list."""

    def test_upcoming_dues(self):
        """Test selection, urgency and ordering."""
        records = [
            ObligationRecord(
                kind=RecordKind.TAX,
                amount=Decimal("2000.00"),
                obligation_type="Property Tax",
                due_date=NOW + timedelta(days=20),
            ),
            _loan(due_date=NOW + timedelta(days=3)),
            ObligationRecord(
                kind=RecordKind.VIOLATION,
                amount=Decimal("500.00"),
                status=RecordStatus.PAID,
                due_date=NOW + timedelta(days=2),
            ),
            DebtRecord(
                kind=RecordKind.DEBT_OWED_TO_ME,
                amount=Decimal("300.00"),
                due_date=NOW + timedelta(days=1),
            ),
            DebtRecord(
                kind=RecordKind.DEBT_OWED_BY_ME,
                amount=Decimal("300.00"),
                due_date=NOW - timedelta(days=1),
            ),
            ObligationRecord(
                kind=RecordKind.TAX,
                amount=Decimal("100.00"),
                due_date=NOW + timedelta(days=40),
            ),
        ]
        dues = upcoming_dues(records, NOW)

        assert [due.description for due in dues] == ["City Bank", "Property Tax"]
        assert dues[0].urgency == "high"
        assert dues[0].days_remaining == 3
        assert dues[1].urgency == "medium"

    def test_zero_horizon_selects_nothing(self):
        """Test that an explicit zero-day horizon is not replaced by the default."""
        records = [_loan(due_date=NOW + timedelta(days=3))]
        assert upcoming_dues(records, NOW, horizon_days=0) == []
        assert len(upcoming_dues(records, NOW)) == 1
