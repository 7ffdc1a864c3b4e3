"""
Formulas Package

Pure per-kind financial formulas: investment projections, loan interest,
deadlines, stock positions and budgets.
"""

from src.formulas.calculators import (
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

__all__ = [
    "InvalidSaleError",
    "budget_performance",
    "budget_status",
    "budget_variance",
    "days_remaining",
    "deadline_status",
    "future_value",
    "loan_interest_status",
    "monthly_interest_amount",
    "months_elapsed",
    "next_interest_due_date",
    "pay_interest",
    "project_investment_plan",
    "safe_divide",
    "sell_stock",
    "stock_position",
    "upcoming_dues",
    "violation_due_date",
]
