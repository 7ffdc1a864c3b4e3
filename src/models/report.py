"""
Report Models

Derived, read-only values computed fresh from one RecordSnapshot:
time windows, aggregates, trend series and the Report itself.

Field names are snake_case in Python and camelCase on the wire
(report JSON export uses by_alias=True).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import (
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)

from src.models.base import ReportModel
from src.models.finance import (
    BudgetPerformance,
    BudgetStatus,
    CashFlowRow,
    UpcomingDue,
)
from src.models.records import ZERO, Money


# =============================================================================
# ENUMS
# =============================================================================

class Granularity(str, Enum):
    """Calendar period size used to bucket records."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ReportType(str, Enum):
    """The report shapes the composer can build."""
    MONTHLY = "monthly"
    CATEGORY = "category"
    COMPREHENSIVE = "comprehensive"
    COMPARISON = "comparison"
    ANALYTICS = "analytics"

    @property
    def title(self) -> str:
        return _REPORT_TITLES[self]


_REPORT_TITLES = {
    ReportType.MONTHLY: "Monthly Report",
    ReportType.CATEGORY: "Category Analysis Report",
    ReportType.COMPREHENSIVE: "Comprehensive Financial Report",
    ReportType.COMPARISON: "Period Comparison Report",
    ReportType.ANALYTICS: "Advanced Analytics Report",
}


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    HTML = "html"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return {
            ExportFormat.JSON: "application/json",
            ExportFormat.CSV: "text/csv",
            ExportFormat.HTML: "text/html",
        }[self]


# =============================================================================
# TIME WINDOWS
# =============================================================================

class TimeWindow(ReportModel):
    """
    A half-open calendar interval: start <= instant < end.

    Consecutive windows produced by the bucketer are contiguous.
    """
    model_config = ConfigDict(frozen=True)

    label: str
    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_bounds(self) -> 'TimeWindow':
        if not self.start < self.end:
            raise ValueError("Window start must be before window end")
        return self

    def contains(self, instant: Optional[datetime]) -> bool:
        if instant is None:
            return False
        return self.start <= instant < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def day_count(self) -> int:
        """Whole calendar days covered (at least 1)."""
        return max(1, (self.end.date() - self.start.date()).days)


class PeriodRange(ReportModel):
    """
    An inclusive range of calendar dates, as picked in a report form.

    Converted to the half-open window [start 00:00, end + 1 day 00:00).
    """

    start: date
    end: date

    @model_validator(mode='after')
    def validate_order(self) -> 'PeriodRange':
        if self.end < self.start:
            raise ValueError("Period end cannot be before period start")
        return self

    @classmethod
    def month_of(cls, day: date) -> 'PeriodRange':
        """The whole calendar month containing day."""
        first = day.replace(day=1)
        next_first = (first + timedelta(days=32)).replace(day=1)
        return cls(start=first, end=next_first - timedelta(days=1))

    @classmethod
    def last_days(cls, day: date, days: int) -> 'PeriodRange':
        """The `days` calendar days ending on day (inclusive)."""
        return cls(start=day - timedelta(days=max(1, days) - 1), end=day)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def label(self) -> str:
        return f"{self.start.strftime('%d %b %Y')} - {self.end.strftime('%d %b %Y')}"


# =============================================================================
# AGGREGATES
# =============================================================================

class CategoryShare(ReportModel):
    """One category's slice of an aggregate."""

    category: str
    amount: Money
    percentage_of_total: float = Field(ge=0.0, le=100.0)


class Aggregate(ReportModel):
    """
    Totals for one window.

    Invariant: sum(by_category.amount) == total_amount exactly.
    """

    window: Optional[TimeWindow] = None
    total_amount: Money = ZERO
    transaction_count: int = Field(default=0, ge=0)
    by_category: list[CategoryShare] = Field(default_factory=list)


class DistributionBucket(ReportModel):
    """How many records fall into one amount range."""

    range: str
    count: int = Field(ge=0)
    percentage: float


class WeekdayPattern(ReportModel):
    """Spending on one day of the week (0 = Sunday)."""

    weekday: int = Field(ge=0, le=6)
    day: str
    day_short: str
    average_amount: Money
    transaction_count: int = Field(ge=0)
    total_amount: Money


class DailySpending(ReportModel):
    day: date = Field(alias="date")
    label: str
    amount: Money


class CategoryStatistics(ReportModel):
    """Per-category figures for the category analysis report."""

    category: str
    total: Money
    count: int
    average: Money
    maximum: Money = Field(alias="max")
    minimum: Money = Field(alias="min")
    percentage_of_total: float


class ExpenseLine(ReportModel):
    """A single expense as listed in a report."""

    id: str
    occurred_at: Optional[datetime] = None
    category: str
    amount: Money
    note: Optional[str] = None


class TrendPoint(ReportModel):
    period: str
    amount: Money


class TrendSeries(ReportModel):
    category: str
    points: list[TrendPoint] = Field(default_factory=list)
    direction: TrendDirection = TrendDirection.STABLE
    total_amount: Money = ZERO


# =============================================================================
# REPORT SECTIONS
# =============================================================================

class FinancialHealth(ReportModel):
    net_worth: Money
    total_assets: Money
    total_liabilities: Money
    expense_to_income_ratio: float = Field(
        description="Expenses as a percentage of income"
    )
    debt_to_asset_ratio: float = Field(
        description="Liabilities as a percentage of assets"
    )
    total_receivables: Money = ZERO


class InvestmentSummary(ReportModel):
    plan_count: int
    stock_count: int
    total_plan_contribution: Money
    total_stock_value: Money
    projected_plan_value: Money


class ObligationSummary(ReportModel):
    loan_count: int
    violation_count: int
    tax_count: int
    total_loan_amount: Money
    total_fines: Money
    total_taxes: Money
    monthly_interest: Money


class PeriodComparison(ReportModel):
    current_label: str
    previous_label: str
    current_total: Money
    previous_total: Money
    current_count: int
    previous_count: int
    total_change: Money
    percentage_change: float
    count_change: int


# =============================================================================
# REPORT
# =============================================================================

SummaryValue = Union[int, Decimal, float, str]


class ReportOptions(ReportModel):
    """Caller-supplied knobs for one report computation."""

    now: Optional[datetime] = Field(
        default=None,
        description="Reference instant; defaults to the current time"
    )
    categories: Optional[list[str]] = Field(
        default=None,
        description="Only include expenses in these categories"
    )
    monthly_income: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Known monthly income for the expense-to-income ratio"
    )
    monthly_budget: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Budget set for the reported month"
    )
    months: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of monthly windows in an analytics report"
    )


class Report(ReportModel):
    """
    The composed output of one report computation.

    Only the sections relevant to report_type are populated.
    """

    type: str
    report_type: ReportType
    period_label: str
    summary: dict[str, SummaryValue] = Field(default_factory=dict)

    category_breakdown: Optional[list[CategoryShare]] = None
    daily_series: Optional[list[DailySpending]] = None
    top_expenses: Optional[list[ExpenseLine]] = None
    budget_status: Optional[BudgetStatus] = None
    categories: Optional[list[CategoryStatistics]] = None
    financial_health: Optional[FinancialHealth] = None
    investments: Optional[InvestmentSummary] = None
    obligations: Optional[ObligationSummary] = None
    upcoming_dues: Optional[list[UpcomingDue]] = None
    comparison: Optional[PeriodComparison] = None
    monthly_breakdown: Optional[list[Aggregate]] = None
    category_trends: Optional[list[TrendSeries]] = None
    weekly_pattern: Optional[list[WeekdayPattern]] = None
    distribution: Optional[list[DistributionBucket]] = None
    budget_performance: Optional[list[BudgetPerformance]] = None
    cash_flow: Optional[list[CashFlowRow]] = None

    insights: list[str] = Field(default_factory=list)
    recommendations: Optional[list[str]] = None
    insufficient_data: bool = False
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_serializer('summary', when_used='json')
    def serialize_summary(self, summary: dict[str, SummaryValue]) -> dict:
        return {
            key: float(value) if isinstance(value, Decimal) else value
            for key, value in summary.items()
        }
