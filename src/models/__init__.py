"""
Data Models Package

This package contains all Pydantic models used by the finance reporting engine.
Raw store documents are normalized into records; every report value is
derived from a RecordSnapshot of those records.
"""

from src.models.records import (
    CENT,
    ZERO,
    DebtRecord,
    ExpenseRecord,
    FinancialRecord,
    InterestPayment,
    InvestmentPlanRecord,
    LoanRecord,
    Money,
    NormalizationIssue,
    ObligationRecord,
    RecordKind,
    RecordSnapshot,
    RecordStatus,
    StockHoldingRecord,
    to_money,
)
from src.models.finance import (
    BudgetPerformance,
    BudgetStatus,
    CashFlowRow,
    DeadlineStatus,
    InvestmentProjection,
    LoanInterestStatus,
    StockPosition,
    StockSaleResult,
    UpcomingDue,
)
from src.models.report import (
    Aggregate,
    CategoryShare,
    CategoryStatistics,
    DailySpending,
    DistributionBucket,
    ExpenseLine,
    ExportFormat,
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
    TrendPoint,
    TrendSeries,
    WeekdayPattern,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "CENT",
    "ZERO",
    "DebtRecord",
    "ExpenseRecord",
    "FinancialRecord",
    "InterestPayment",
    "InvestmentPlanRecord",
    "LoanRecord",
    "Money",
    "NormalizationIssue",
    "ObligationRecord",
    "RecordKind",
    "RecordSnapshot",
    "RecordStatus",
    "StockHoldingRecord",
    "to_money",
    # Formula results
    "BudgetPerformance",
    "BudgetStatus",
    "CashFlowRow",
    "DeadlineStatus",
    "InvestmentProjection",
    "LoanInterestStatus",
    "StockPosition",
    "StockSaleResult",
    "UpcomingDue",
    # Report models
    "Aggregate",
    "CategoryShare",
    "CategoryStatistics",
    "DailySpending",
    "DistributionBucket",
    "ExpenseLine",
    "ExportFormat",
    "FinancialHealth",
    "Granularity",
    "InvestmentSummary",
    "ObligationSummary",
    "PeriodComparison",
    "PeriodRange",
    "Report",
    "ReportOptions",
    "ReportType",
    "TimeWindow",
    "TrendDirection",
    "TrendPoint",
    "TrendSeries",
    "WeekdayPattern",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
