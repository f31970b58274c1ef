"""
Query Package

Formatting helpers and read-only summaries over stored transactions.
"""

from cleanwallet.queries.formatting import (
    amount_kind,
    format_amount,
    format_currency,
    format_signed_currency,
    get_category_icon,
)
from cleanwallet.queries.summaries import (
    SEGMENTS,
    InvalidBudgetError,
    budget_plan_for_categories,
    budget_progress,
    build_budget_rows,
    category_totals,
    filter_by_period,
    get_category_total,
    group_transactions_by_date,
    income_expense_totals,
    monthly_history,
    period_label,
    period_range,
    recent_transactions,
    set_item_budget,
    set_total_budget,
    shift_period,
    toggle_percentage_mode,
    total_amount,
    validate_budget_plan,
)

__all__ = [
    # Formatting
    "amount_kind",
    "format_amount",
    "format_currency",
    "format_signed_currency",
    "get_category_icon",
    # Summaries
    "SEGMENTS",
    "InvalidBudgetError",
    "budget_plan_for_categories",
    "budget_progress",
    "build_budget_rows",
    "category_totals",
    "filter_by_period",
    "get_category_total",
    "group_transactions_by_date",
    "income_expense_totals",
    "monthly_history",
    "period_label",
    "period_range",
    "recent_transactions",
    "set_item_budget",
    "set_total_budget",
    "shift_period",
    "toggle_percentage_mode",
    "total_amount",
    "validate_budget_plan",
]
