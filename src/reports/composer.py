"""
Report Composer

Assembles windows, aggregates, trends and formula results into one Report.

DESIGN DECISION: Composition is DETERMINISTIC and never raises.
Every report is computed from exactly one RecordSnapshot, so all of its
sections agree with each other. On empty input the report carries a zeroed
summary and no insights. Any unexpected error is logged and an empty report
of the requested type is returned instead.

Report shapes:
- monthly: summary, category breakdown, daily series, top expenses
- category: per-category statistics
- comprehensive: monthly plus financial health, investments, obligations,
  upcoming dues and recommendations
- comparison: the period against the preceding period of equal length
- analytics: monthly breakdown, category trends, weekly pattern,
  distribution, budget performance and cash flow over several months
"""

from collections.abc import Iterable
from datetime import datetime, time
from decimal import Decimal
from typing import Optional, Union

import structlog

from src.analytics import (
    aggregate,
    aggregate_by_window,
    build_windows,
    category_breakdown,
    category_statistics,
    category_trends,
    daily_series,
    distribution,
    monthly_trend,
    preceding_window,
    records_in_window,
    top_records,
    weekly_pattern,
    window_for_range,
)
from src.config import EngineSettings, get_engine_settings
from src.formulas import (
    budget_performance,
    budget_status,
    monthly_interest_amount,
    project_investment_plan,
    safe_divide,
    upcoming_dues,
)
from src.models.finance import CashFlowRow
from src.models.records import (
    ZERO,
    FinancialRecord,
    RecordSnapshot,
    RecordStatus,
    to_money,
)
from src.models.report import (
    FinancialHealth,
    Granularity,
    InvestmentSummary,
    ObligationSummary,
    PeriodComparison,
    PeriodRange,
    Report,
    ReportOptions,
    ReportType,
    TimeWindow,
    TrendDirection,
)


logger = structlog.get_logger(__name__)


RecordsInput = Union[RecordSnapshot, Iterable[FinancialRecord]]


_SUMMARY_KEYS = {
    ReportType.MONTHLY: (
        "totalExpenses", "totalDebts", "totalInvestments",
        "transactionCount", "avgDailySpending", "netWorth",
    ),
    ReportType.CATEGORY: (
        "totalCategories", "totalExpenses", "avgPerCategory",
    ),
    ReportType.COMPARISON: (
        "currentTotal", "previousTotal", "currentCount", "previousCount",
        "totalChange", "percentageChange", "countChange",
    ),
    ReportType.ANALYTICS: (
        "totalExpenses", "avgMonthlySpending", "totalInvestments",
        "avgMonthlyCashFlow", "transactionCount",
    ),
}
_SUMMARY_KEYS[ReportType.COMPREHENSIVE] = _SUMMARY_KEYS[ReportType.MONTHLY]

# Summary values that are counts rather than money
_COUNT_KEYS = frozenset({
    "transactionCount", "totalCategories", "currentCount",
    "previousCount", "countChange",
})


def empty_summary(report_type: ReportType) -> dict:
    """The zeroed summary of a report type."""
    return {
        key: 0 if key in _COUNT_KEYS else ZERO
        for key in _SUMMARY_KEYS[ReportType(report_type)]
    }


def _total(records: Iterable[FinancialRecord]) -> Decimal:
    return to_money(sum((record.amount for record in records), ZERO))


def _outstanding(records: Iterable[FinancialRecord]) -> Decimal:
    return _total(record for record in records if not record.is_settled)


class ReportComposer:
    """
    Builds reports from a snapshot.

    GUARANTEES:
    - Only figures derived from the snapshot appear in the report
    - Failures produce an empty report of the requested type; only an unknown
      report type raises ValueError
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_engine_settings()

    def compose(
        self,
        snapshot: RecordSnapshot,
        report_type: ReportType,
        period_range: Optional[PeriodRange] = None,
        options: Optional[ReportOptions] = None,
    ) -> Report:
        """
        Compose one report.

        Raises ValueError only for an unknown report type; any other failure
        yields an empty report of the requested type.
        """
        report_type = ReportType(report_type)
        options = options or ReportOptions()

        try:
            now = self._reference_now(options)
            period_range = period_range or PeriodRange.month_of(now.date())

            # Route to appropriate builder based on report type
            if report_type == ReportType.MONTHLY:
                report = self._monthly(snapshot, period_range, options, now)
            elif report_type == ReportType.CATEGORY:
                report = self._category(snapshot, period_range, options)
            elif report_type == ReportType.COMPREHENSIVE:
                report = self._comprehensive(snapshot, period_range, options, now)
            elif report_type == ReportType.COMPARISON:
                report = self._comparison(snapshot, period_range, options)
            else:
                report = self._analytics(snapshot, period_range, options, now)

        except Exception as e:
            logger.error(
                "report_composition_failed",
                report_type=report_type.value,
                error=str(e),
                exc_info=True,
            )
            return self.empty_report(report_type, period_range)

        logger.info(
            "report_composed",
            report_type=report_type.value,
            period=report.period_label,
            record_count=snapshot.count,
            insight_count=len(report.insights),
        )
        return report

    def empty_report(
        self,
        report_type: ReportType,
        period_range: Optional[PeriodRange] = None,
        insufficient_data: bool = False,
    ) -> Report:
        """A report of the given type with a zeroed summary and no sections."""
        report_type = ReportType(report_type)
        return Report(
            type=report_type.title,
            report_type=report_type,
            period_label=period_range.label() if period_range else "",
            summary=empty_summary(report_type),
            insufficient_data=insufficient_data,
        )

    # -------------------------------------------------------------------------
    # Shared scope
    # -------------------------------------------------------------------------

    def _reference_now(self, options: ReportOptions) -> datetime:
        now = options.now or datetime.now(self._settings.tzinfo)
        if now.tzinfo is None:
            return now.replace(tzinfo=self._settings.tzinfo)
        return now.astimezone(self._settings.tzinfo)

    def _expenses(self, snapshot: RecordSnapshot, options: ReportOptions) -> list:
        """Expenses, restricted to the selected categories if any."""
        expenses = snapshot.expenses
        if options.categories is not None:
            selected = set(options.categories)
            expenses = [record for record in expenses if record.category in selected]
        return expenses

    def _total_investments(self, snapshot: RecordSnapshot) -> Decimal:
        """Active plans' monthly contributions plus invested value of unsold stock."""
        plans = sum(
            (plan.monthly_amount for plan in snapshot.investment_plans
             if plan.status == RecordStatus.ACTIVE),
            ZERO,
        )
        stocks = sum(
            (holding.invested_amount for holding in snapshot.stock_holdings
             if not holding.is_sold),
            ZERO,
        )
        return to_money(plans + stocks)

    def _money_text(self, amount: Decimal) -> str:
        return f"{self._settings.currency_symbol}{amount:,.2f}"

    # -------------------------------------------------------------------------
    # Monthly
    # -------------------------------------------------------------------------

    def _monthly(
        self,
        snapshot: RecordSnapshot,
        period_range: PeriodRange,
        options: ReportOptions,
        now: datetime,
    ) -> Report:
        window = window_for_range(period_range, self._settings.tzinfo)
        expenses = records_in_window(self._expenses(snapshot, options), window)

        total_expenses = _total(expenses)
        total_debts = _outstanding(snapshot.debts_owed_by_me)
        total_investments = self._total_investments(snapshot)

        breakdown = category_breakdown(expenses)
        daily = daily_series(expenses)

        insights = []
        if breakdown:
            top = breakdown[0]
            insights.append(
                f"Your highest spending category is {top.category} "
                f"({top.percentage_of_total:.1f}% of total)"
            )
            highest_day = max(daily, key=lambda point: point.amount)
            insights.append(
                f"Your highest spending day was {highest_day.label} "
                f"with {self._money_text(highest_day.amount)}"
            )
            insights.append(
                "Your average transaction amount is "
                f"{self._money_text(to_money(total_expenses / len(expenses)))}"
            )

        budget = None
        if options.monthly_budget is not None:
            budget = budget_status(options.monthly_budget, total_expenses, self._settings)

        return Report(
            type=ReportType.MONTHLY.title,
            report_type=ReportType.MONTHLY,
            period_label=period_range.label(),
            summary={
                "totalExpenses": total_expenses,
                "totalDebts": total_debts,
                "totalInvestments": total_investments,
                "transactionCount": len(expenses),
                "avgDailySpending": to_money(
                    safe_divide(total_expenses, period_range.day_count)
                ),
                "netWorth": total_investments - total_debts,
            },
            category_breakdown=breakdown,
            daily_series=daily,
            top_expenses=top_records(expenses, self._settings.top_expenses_limit),
            budget_status=budget,
            insights=insights,
        )

    # -------------------------------------------------------------------------
    # Category
    # -------------------------------------------------------------------------

    def _category(
        self,
        snapshot: RecordSnapshot,
        period_range: PeriodRange,
        options: ReportOptions,
    ) -> Report:
        window = window_for_range(period_range, self._settings.tzinfo)
        expenses = records_in_window(self._expenses(snapshot, options), window)

        stats = category_statistics(expenses)
        total = _total(expenses)

        insights = []
        if stats and total > 0:
            top = stats[0]
            insights.append(
                f"{top.category} accounts for {top.percentage_of_total:.1f}% of your spending"
            )
            insights.append(f"You made {top.count} transactions in {top.category}")
            insights.append(
                f"Average {top.category} expense: {self._money_text(top.average)}"
            )

        return Report(
            type=ReportType.CATEGORY.title,
            report_type=ReportType.CATEGORY,
            period_label=period_range.label(),
            summary={
                "totalCategories": len(stats),
                "totalExpenses": total,
                "avgPerCategory": to_money(safe_divide(total, len(stats))),
            },
            category_breakdown=category_breakdown(expenses),
            categories=stats,
            insights=insights,
        )

    # -------------------------------------------------------------------------
    # Comprehensive
    # -------------------------------------------------------------------------

    def _comprehensive(
        self,
        snapshot: RecordSnapshot,
        period_range: PeriodRange,
        options: ReportOptions,
        now: datetime,
    ) -> Report:
        report = self._monthly(snapshot, period_range, options, now)
        summary = report.summary

        outstanding_loans = [loan for loan in snapshot.loans if not loan.is_settled]
        loan_total = _total(outstanding_loans)

        total_assets = summary["totalInvestments"]
        total_liabilities = summary["totalDebts"] + loan_total
        net_worth = total_assets - total_liabilities

        # Without a known income, the plans' monthly contributions stand in for it
        plan_contribution = to_money(sum(
            (plan.monthly_amount for plan in snapshot.investment_plans),
            ZERO,
        ))
        income = (
            options.monthly_income
            if options.monthly_income is not None
            else plan_contribution
        )
        expense_ratio = float(safe_divide(summary["totalExpenses"], income) * 100)

        health = FinancialHealth(
            net_worth=net_worth,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            expense_to_income_ratio=round(expense_ratio, 1),
            debt_to_asset_ratio=round(
                float(safe_divide(total_liabilities, total_assets) * 100), 1
            ),
            total_receivables=_outstanding(snapshot.debts_owed_to_me),
        )

        holdings = [holding for holding in snapshot.stock_holdings if not holding.is_sold]
        investments = InvestmentSummary(
            plan_count=len(snapshot.investment_plans),
            stock_count=len(holdings),
            total_plan_contribution=plan_contribution,
            total_stock_value=to_money(sum(
                (holding.invested_amount for holding in holdings), ZERO
            )),
            projected_plan_value=to_money(sum(
                (project_investment_plan(plan, now).future_value
                 for plan in snapshot.investment_plans),
                ZERO,
            )),
        )

        taxes = [tax for tax in snapshot.taxes if not tax.is_settled]
        violations = [fine for fine in snapshot.violations if not fine.is_settled]
        obligations = ObligationSummary(
            loan_count=len(outstanding_loans),
            violation_count=len(violations),
            tax_count=len(taxes),
            total_loan_amount=loan_total,
            total_fines=_total(violations),
            total_taxes=_total(taxes),
            monthly_interest=to_money(sum(
                (monthly_interest_amount(loan.principal, loan.annual_interest_rate_percent)
                 for loan in outstanding_loans),
                ZERO,
            )),
        )

        recommendations = []
        if expense_ratio > self._settings.expense_ratio_alert_percent:
            recommendations.append(
                "Consider reducing expenses as they exceed "
                f"{self._settings.expense_ratio_alert_percent:g}% of estimated income"
            )
        if report.category_breakdown:
            top = report.category_breakdown[0]
            if top.percentage_of_total > self._settings.category_concentration_percent:
                recommendations.append(
                    f"Consider diversifying spending - {top.category} represents "
                    f"{top.percentage_of_total:.1f}% of expenses"
                )
        if net_worth < 0:
            recommendations.append(
                "Focus on debt reduction and increasing investments to improve net worth"
            )

        return report.model_copy(update={
            "type": ReportType.COMPREHENSIVE.title,
            "report_type": ReportType.COMPREHENSIVE,
            "financial_health": health,
            "investments": investments,
            "obligations": obligations,
            "upcoming_dues": upcoming_dues(
                snapshot.records,
                now,
                self._settings.upcoming_dues_horizon_days,
                self._settings.urgent_due_days,
            ),
            "recommendations": recommendations,
        })

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def _comparison(
        self,
        snapshot: RecordSnapshot,
        period_range: PeriodRange,
        options: ReportOptions,
    ) -> Report:
        current_window = window_for_range(period_range, self._settings.tzinfo)
        previous_window = preceding_window(current_window)

        expenses = self._expenses(snapshot, options)
        current = aggregate(expenses, current_window)
        previous = aggregate(expenses, previous_window)

        change = current.total_amount - previous.total_amount
        percent_change = round(
            float(safe_divide(change, previous.total_amount) * 100), 1
        )
        count_change = current.transaction_count - previous.transaction_count

        insights = []
        if current.transaction_count or previous.transaction_count:
            insights.append(self._comparison_insight(
                change, percent_change, previous.total_amount
            ))

        return Report(
            type=ReportType.COMPARISON.title,
            report_type=ReportType.COMPARISON,
            period_label=current_window.label,
            summary={
                "currentTotal": current.total_amount,
                "previousTotal": previous.total_amount,
                "currentCount": current.transaction_count,
                "previousCount": previous.transaction_count,
                "totalChange": change,
                "percentageChange": percent_change,
                "countChange": count_change,
            },
            category_breakdown=current.by_category,
            comparison=PeriodComparison(
                current_label=current_window.label,
                previous_label=previous_window.label,
                current_total=current.total_amount,
                previous_total=previous.total_amount,
                current_count=current.transaction_count,
                previous_count=previous.transaction_count,
                total_change=change,
                percentage_change=percent_change,
                count_change=count_change,
            ),
            insights=insights,
        )

    def _comparison_insight(
        self,
        change: Decimal,
        percent_change: float,
        previous_total: Decimal,
    ) -> str:
        if not previous_total:
            return (
                "No spending in the previous period to compare with; "
                f"this period you spent {self._money_text(change)}"
            )
        if change > 0:
            return (
                f"Spending increased by {self._money_text(change)} "
                f"({percent_change:.1f}%) compared to the previous period"
            )
        if change < 0:
            return (
                f"Spending decreased by {self._money_text(-change)} "
                f"({abs(percent_change):.1f}%) compared to the previous period"
            )
        return "Spending is unchanged compared to the previous period"

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def _analytics(
        self,
        snapshot: RecordSnapshot,
        period_range: PeriodRange,
        options: ReportOptions,
        now: datetime,
    ) -> Report:
        tz = self._settings.tzinfo
        reference = (
            datetime.combine(period_range.end, time.min, tzinfo=tz)
            if options.now is None
            else now
        )
        windows = build_windows(reference, Granularity.MONTH, options.months, tz)
        span = TimeWindow(
            label=f"{windows[0].label} - {windows[-1].label}",
            start=windows[0].start,
            end=windows[-1].end,
        )
        expenses = records_in_window(self._expenses(snapshot, options), span)

        monthly = aggregate_by_window(expenses, windows)
        total_expenses = _total(expenses)
        total_investments = self._total_investments(snapshot)

        # Investment inflow is spread evenly across the months shown
        monthly_inflow = to_money(safe_divide(total_investments, len(windows)))
        cash_flow = [
            CashFlowRow(
                period=item.window.label,
                inflow=monthly_inflow,
                outflow=item.total_amount,
                net=monthly_inflow - item.total_amount,
            )
            for item in monthly
        ]

        pattern = weekly_pattern(expenses)
        trends = category_trends(expenses, windows, self._settings.category_trend_limit)

        insights = []
        if total_expenses > 0:
            direction = monthly_trend(monthly)
            if direction == TrendDirection.STABLE:
                insights.append("Your monthly spending has been stable")
            else:
                insights.append(f"Your monthly spending is {direction.value}")
            busiest = max(pattern, key=lambda day: day.average_amount)
            insights.append(
                f"You spend the most on {busiest.day}s "
                f"(average {self._money_text(busiest.average_amount)})"
            )
            if trends:
                insights.append(
                    f"{trends[0].category} is your largest category over this period "
                    f"and is {trends[0].direction.value}"
                )

        return Report(
            type=ReportType.ANALYTICS.title,
            report_type=ReportType.ANALYTICS,
            period_label=span.label,
            summary={
                "totalExpenses": total_expenses,
                "avgMonthlySpending": to_money(safe_divide(total_expenses, len(windows))),
                "totalInvestments": total_investments,
                "avgMonthlyCashFlow": to_money(safe_divide(
                    sum((row.net for row in cash_flow), ZERO), len(cash_flow)
                )),
                "transactionCount": len(expenses),
            },
            category_breakdown=category_breakdown(expenses),
            monthly_breakdown=monthly,
            category_trends=trends,
            weekly_pattern=pattern,
            distribution=distribution(expenses, self._settings.distribution_edges),
            budget_performance=budget_performance(monthly),
            cash_flow=cash_flow,
            insights=insights,
        )


# =============================================================================
# MODULE-LEVEL ENTRY POINT
# =============================================================================

def build_report(
    records: RecordsInput,
    report_type: ReportType,
    period_range: Optional[PeriodRange] = None,
    options: Optional[ReportOptions] = None,
) -> Report:
    """
    Build a report from a snapshot or any iterable of normalized records.

    Raises ValueError for an unknown report type and never otherwise.
    """
    if not isinstance(records, RecordSnapshot):
        records = RecordSnapshot(records=tuple(records))
    return ReportComposer().compose(records, report_type, period_range, options)
