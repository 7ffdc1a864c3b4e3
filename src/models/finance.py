"""
Financial Formula Result Models

Outputs of the pure functions in src.formulas: investment projections,
loan interest status, deadlines, stock positions and budget figures.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from src.models.base import ReportModel
from src.models.records import (
    ZERO,
    Money,
    RecordKind,
    StockHoldingRecord,
)


class InvestmentProjection(ReportModel):
    """Where an investment plan stands today."""

    record_id: str
    name: str
    months_counted: int = Field(
        ge=0,
        description="min(months elapsed since start, duration)"
    )
    total_invested: Money
    future_value: Money
    estimated_gain: Money
    progress_percent: float = Field(
        description="Raw months_counted / duration * 100; 0 when duration is 0"
    )
    display_progress_percent: float = Field(
        ge=0.0,
        le=100.0,
        description="Progress capped at 100 for display"
    )


class LoanInterestStatus(ReportModel):
    """Monthly interest position of one loan."""

    record_id: str
    monthly_interest_amount: Money
    next_interest_due_date: Optional[datetime] = None
    is_interest_due: bool = False
    is_overdue: bool = False
    total_interest_paid: Money = ZERO
    payment_count: int = 0


class DeadlineStatus(ReportModel):
    """Days left until (or past) a due date."""

    due_date: datetime
    days_remaining: int
    is_overdue: bool
    overdue_days: int = Field(ge=0)


class StockPosition(ReportModel):
    """
    Economics of one holding.

    gain_loss is the only money figure in the engine that may be negative.
    """

    record_id: str
    name: str
    quantity: float
    total_invested: Money
    current_value: Money
    gain_loss: Money
    gain_loss_percent: float
    is_profit: bool


class StockSaleResult(ReportModel):
    """
    Outcome of selling from a holding.

    Full sale: holding is the original record marked Sold, sold is None.
    Partial sale: holding keeps the remaining quantity, sold is a new
    Sold record for the quantity sold.
    """

    holding: StockHoldingRecord
    sold: Optional[StockHoldingRecord] = None
    is_full_sale: bool


class BudgetPerformance(ReportModel):
    """Actual spend in one period against a reference budget."""

    period: str
    budget: Money
    actual: Money
    variance: Money = Field(description="actual - budget; positive means over")
    performance_percent: float = Field(
        description="(budget - actual) / budget * 100; positive means under"
    )


class BudgetStatus(ReportModel):
    """A month's budget against what has been spent so far."""

    budget: Money
    spent: Money
    remaining: Money
    is_over_budget: bool
    used_percent: float
    level: str = Field(pattern="^(ok|warning|over)$")


class UpcomingDue(ReportModel):
    """An unpaid obligation falling due soon."""

    record_id: str
    kind: RecordKind
    description: str
    amount: Money
    due_date: datetime
    days_remaining: int
    urgency: str = Field(pattern="^(high|medium)$")


class CashFlowRow(ReportModel):
    """Investment inflow against expense outflow for one period."""

    period: str
    inflow: Money
    outflow: Money
    net: Money
