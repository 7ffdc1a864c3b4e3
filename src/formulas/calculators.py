"""
Financial Formula Engine

Pure functions, one family per record kind:
- Investment plans: months elapsed, annuity-due future value, progress
- Loans: monthly simple interest, next interest due date, paying interest
- Obligations: days remaining / overdue, violation due dates
- Stock holdings: position economics, selling
- Budgets: variance against a reference budget, budget status
- Upcoming dues across obligation kinds

DESIGN DECISION: No function mutates its input. Operations that "change" a
record (pay_interest, sell_stock) return new frozen records.

Every ratio goes through safe_divide, so a zero denominator yields 0
instead of raising.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from src.config import EngineSettings, get_engine_settings
from src.models.finance import (
    BudgetPerformance,
    BudgetStatus,
    DeadlineStatus,
    InvestmentProjection,
    LoanInterestStatus,
    StockPosition,
    StockSaleResult,
    UpcomingDue,
)
from src.models.records import (
    ZERO,
    DebtRecord,
    FinancialRecord,
    InterestPayment,
    InvestmentPlanRecord,
    LoanRecord,
    ObligationRecord,
    RecordKind,
    RecordStatus,
    StockHoldingRecord,
    to_money,
)
from src.models.report import Aggregate


Number = Union[int, float, Decimal]

_ONE_DAY_SECONDS = 86400


class InvalidSaleError(ValueError):
    """A sale quantity is not between 0 (exclusive) and the quantity held."""
    pass


def _decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def safe_divide(numerator: Number, denominator: Number) -> Decimal:
    """numerator / denominator, or 0 when the denominator is 0."""
    denominator = _decimal(denominator)
    if denominator == 0:
        return Decimal("0")
    return _decimal(numerator) / denominator


def _percent(numerator: Number, denominator: Number) -> float:
    return round(float(safe_divide(numerator, denominator) * 100), 1)


# =============================================================================
# INVESTMENT PLANS
# =============================================================================

def months_elapsed(start: datetime, now: datetime) -> int:
    """
    Calendar months from start to now, ignoring the day of month.

    A plan started on 31 Jan counts 1 month on 1 Feb. Never negative.
    """
    if start.tzinfo is not None and now.tzinfo is not None:
        now = now.astimezone(start.tzinfo)
    diff = (now.year - start.year) * 12 + (now.month - start.month)
    return max(0, diff)


def future_value(monthly_amount: Number, annual_rate_percent: Number, months: int) -> Decimal:
    """
    Annuity-due future value of a fixed monthly contribution.

    r = rate / 12 / 100; FV = m * ((1 + r)^n - 1) / r * (1 + r),
    or m * n when r is 0.
    """
    monthly_amount = _decimal(monthly_amount)
    if months <= 0:
        return ZERO
    rate = _decimal(annual_rate_percent) / 12 / 100
    if rate == 0:
        return to_money(monthly_amount * months)
    growth = (1 + rate) ** months
    return to_money(monthly_amount * (growth - 1) / rate * (1 + rate))


def project_investment_plan(
    plan: InvestmentPlanRecord,
    now: datetime,
) -> InvestmentProjection:
    """Where a plan stands at now: contributions, projected value, progress."""
    elapsed = months_elapsed(plan.start_date, now) if plan.start_date else 0
    counted = min(elapsed, plan.duration_months)

    total_invested = to_money(plan.monthly_amount * counted)
    value = future_value(plan.monthly_amount, plan.annual_return_rate_percent, counted)
    progress = float(safe_divide(counted, plan.duration_months) * 100)

    return InvestmentProjection(
        record_id=plan.id,
        name=plan.name,
        months_counted=counted,
        total_invested=total_invested,
        future_value=value,
        estimated_gain=to_money(value - total_invested),
        progress_percent=progress,
        display_progress_percent=min(progress, 100.0),
    )


# =============================================================================
# LOANS
# =============================================================================

def monthly_interest_amount(principal: Number, annual_rate_percent: Number) -> Decimal:
    """principal * rate / 12 / 100, in cents."""
    return to_money(_decimal(principal) * _decimal(annual_rate_percent) / 12 / 100)


def _last_interest_paid(loan: LoanRecord) -> Optional[datetime]:
    if loan.last_interest_paid_at is not None:
        return loan.last_interest_paid_at
    if loan.interest_payment_history:
        return max(payment.paid_at for payment in loan.interest_payment_history)
    return None


def next_interest_due_date(loan: LoanRecord) -> Optional[datetime]:
    """One calendar month after the last interest payment, else the loan's due date."""
    last_paid = _last_interest_paid(loan)
    if last_paid is not None:
        return last_paid + relativedelta(months=1)
    return loan.due_date


def loan_interest_status(loan: LoanRecord, now: datetime) -> LoanInterestStatus:
    """Monthly interest, when it is next due, and what has been paid so far."""
    next_due = next_interest_due_date(loan)
    is_paid = loan.status == RecordStatus.PAID
    return LoanInterestStatus(
        record_id=loan.id,
        monthly_interest_amount=monthly_interest_amount(
            loan.principal, loan.annual_interest_rate_percent
        ),
        next_interest_due_date=next_due,
        is_interest_due=next_due is not None and now >= next_due and not is_paid,
        is_overdue=loan.due_date is not None and loan.due_date < now and not is_paid,
        total_interest_paid=to_money(
            sum((payment.amount for payment in loan.interest_payment_history), ZERO)
        ),
        payment_count=len(loan.interest_payment_history),
    )


def pay_interest(loan: LoanRecord, now: datetime) -> LoanRecord:
    """
    Record one month's interest payment.

    Returns a new record with the payment appended and last_interest_paid_at
    set to now. Principal is unchanged.
    """
    payment = InterestPayment(
        paid_at=now,
        amount=monthly_interest_amount(loan.principal, loan.annual_interest_rate_percent),
    )
    return loan.model_copy(update={
        "interest_payment_history": (*loan.interest_payment_history, payment),
        "last_interest_paid_at": now,
    })


# =============================================================================
# OBLIGATIONS
# =============================================================================

def days_remaining(due: datetime, now: datetime) -> int:
    """ceil((due - now) / 1 day); negative when overdue."""
    return math.ceil((due - now).total_seconds() / _ONE_DAY_SECONDS)


def deadline_status(due: datetime, now: datetime) -> DeadlineStatus:
    remaining = days_remaining(due, now)
    return DeadlineStatus(
        due_date=due,
        days_remaining=remaining,
        is_overdue=remaining < 0,
        overdue_days=max(0, -remaining),
    )


def violation_due_date(
    violation_date: datetime,
    settings: Optional[EngineSettings] = None,
) -> datetime:
    """A fine is due a fixed number of days (30 by default) after the violation."""
    settings = settings or get_engine_settings()
    return violation_date + timedelta(days=settings.violation_grace_days)


# =============================================================================
# STOCK HOLDINGS
# =============================================================================

def stock_position(holding: StockHoldingRecord) -> StockPosition:
    """Invested value, current value and gain/loss of a holding."""
    invested = to_money(holding.quantity * holding.buy_price)
    current = to_money(holding.quantity * holding.current_price)
    gain_loss = current - invested
    return StockPosition(
        record_id=holding.id,
        name=holding.name,
        quantity=float(holding.quantity),
        total_invested=invested,
        current_value=current,
        gain_loss=gain_loss,
        gain_loss_percent=float(safe_divide(gain_loss, invested) * 100),
        is_profit=gain_loss >= 0,
    )


def sell_stock(
    holding: StockHoldingRecord,
    quantity: Number,
    price: Number,
    sold_at: datetime,
) -> StockSaleResult:
    """
    Sell quantity shares of holding at price.

    Selling everything marks the holding Sold. Selling part of it returns the
    reduced holding plus a new Sold record for the shares sold, keeping the
    buy price and buy date. Quantity is conserved across the two records.

    Raises InvalidSaleError if the holding is already sold, or quantity is
    not in (0, holding.quantity].
    """
    quantity = _decimal(quantity)
    price = to_money(price)

    if holding.is_sold:
        raise InvalidSaleError(f"Holding {holding.id} has already been sold")
    if quantity <= 0:
        raise InvalidSaleError(f"Sale quantity must be positive, got {quantity}")
    if quantity > holding.quantity:
        raise InvalidSaleError(
            f"Cannot sell {quantity} shares; only {holding.quantity} held"
        )
    if price < 0:
        raise InvalidSaleError(f"Sale price cannot be negative, got {price}")

    if quantity == holding.quantity:
        sold = holding.model_copy(update={
            "status": RecordStatus.SOLD,
            "sell_quantity": quantity,
            "sell_price": price,
            "sell_date": sold_at,
        })
        return StockSaleResult(holding=sold, sold=None, is_full_sale=True)

    remaining = holding.quantity - quantity
    reduced = holding.model_copy(update={
        "quantity": remaining,
        "amount": to_money(remaining * holding.buy_price),
    })
    sold = StockHoldingRecord(
        kind=RecordKind.STOCK_HOLDING,
        amount=to_money(quantity * holding.buy_price),
        occurred_at=holding.occurred_at,
        category=holding.category,
        status=RecordStatus.SOLD,
        note=holding.note,
        name=holding.name,
        quantity=quantity,
        buy_price=holding.buy_price,
        current_price=holding.current_price,
        buy_date=holding.buy_date,
        sell_quantity=quantity,
        sell_price=price,
        sell_date=sold_at,
    )
    return StockSaleResult(holding=reduced, sold=sold, is_full_sale=False)


# =============================================================================
# BUDGETS
# =============================================================================

def budget_variance(
    reference_budget: Number,
    actual: Number,
    period: str = "",
) -> BudgetPerformance:
    """
    Compare actual spend with a reference budget.

    variance = actual - budget (positive means over budget);
    performance = (budget - actual) / budget * 100 (positive means under).
    """
    budget = to_money(reference_budget)
    actual = to_money(actual)
    return BudgetPerformance(
        period=period,
        budget=budget,
        actual=actual,
        variance=actual - budget,
        performance_percent=_percent(budget - actual, budget),
    )


def budget_performance(aggregates: Sequence[Aggregate]) -> list[BudgetPerformance]:
    """Each window's spend against the average spend across all windows."""
    if not aggregates:
        return []
    total = sum((item.total_amount for item in aggregates), ZERO)
    average = to_money(safe_divide(total, len(aggregates)))
    return [
        budget_variance(
            average,
            item.total_amount,
            period=item.window.label if item.window else "",
        )
        for item in aggregates
    ]


def budget_status(
    budget: Number,
    spent: Number,
    settings: Optional[EngineSettings] = None,
) -> BudgetStatus:
    """
    A month's budget against spend so far.

    level is "ok" up to the warning threshold (80% by default), "warning"
    up to 100%, and "over" beyond.
    """
    settings = settings or get_engine_settings()
    budget = to_money(budget)
    spent = to_money(spent)
    used = float(safe_divide(spent, budget) * 100)

    if spent > budget:
        level = "over"
    elif used > settings.budget_warning_percent:
        level = "warning"
    else:
        level = "ok"

    return BudgetStatus(
        budget=budget,
        spent=spent,
        remaining=budget - spent,
        is_over_budget=spent > budget,
        used_percent=round(used, 1),
        level=level,
    )


# =============================================================================
# UPCOMING DUES
# =============================================================================

def _due_description(record: FinancialRecord) -> str:
    if isinstance(record, LoanRecord):
        return record.organization_name or "Loan Payment"
    if isinstance(record, ObligationRecord):
        if record.obligation_type:
            return record.obligation_type
        return "Traffic Violation" if record.kind == RecordKind.VIOLATION else "Tax Payment"
    if isinstance(record, DebtRecord):
        return record.counterparty_name or "Debt Repayment"
    return record.category


def upcoming_dues(
    records: Iterable[FinancialRecord],
    now: datetime,
    horizon_days: Optional[int] = None,
    urgent_within_days: Optional[int] = None,
) -> list[UpcomingDue]:
    """
    Unsettled loans, taxes, violations and debts I owe falling due soon.

    A record is included when now < due date < now + horizon. Urgency is
    "high" within urgent_within_days, "medium" otherwise. Soonest first.
    """
    settings = get_engine_settings()
    horizon = now + timedelta(days=(
        settings.upcoming_dues_horizon_days if horizon_days is None else horizon_days
    ))
    urgent_days = (
        settings.urgent_due_days if urgent_within_days is None else urgent_within_days
    )

    dues = []
    for record in records:
        if record.kind not in (
            RecordKind.LOAN,
            RecordKind.TAX,
            RecordKind.VIOLATION,
            RecordKind.DEBT_OWED_BY_ME,
        ):
            continue
        if record.is_settled:
            continue
        due = getattr(record, "due_date", None)
        if due is None or not now < due < horizon:
            continue

        remaining = days_remaining(due, now)
        dues.append(UpcomingDue(
            record_id=record.id,
            kind=record.kind,
            description=_due_description(record),
            amount=record.amount,
            due_date=due,
            days_remaining=remaining,
            urgency="high" if remaining <= urgent_days else "medium",
        ))

    dues.sort(key=lambda item: item.due_date)
    return dues
