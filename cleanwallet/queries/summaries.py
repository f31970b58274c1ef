"""
Summaries for the dashboard and wallet screens.

Everything here is a pure function over already loaded records: nothing
touches storage, so the Streamlit layer can recompute views on every
rerun.

PERIODS:
- D: one day
- W: Sunday to Saturday around the anchor
- M: the anchor's calendar month
- 6M: the five previous months plus the anchor month
- Y: the anchor's calendar year

Moving a period shifts the anchor by one whole segment (6 months for
6M). Month arithmetic clamps the day, so Jan 31 + 1 month is Feb 28/29.
"""

import calendar
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from cleanwallet.models.finance import (
    CATEGORY_COLORS,
    BudgetPlan,
    Category,
    CategoryBudget,
    Transaction,
)
from cleanwallet.models.summary import (
    BudgetRow,
    CategoryTotal,
    DateSection,
    IncomeExpenseTotals,
    MonthlyHistory,
)
from cleanwallet.queries.formatting import get_category_icon


SEGMENTS = ["D", "W", "M", "6M", "Y"]


class InvalidBudgetError(ValueError):
    """A budget plan that cannot be saved."""
    pass


# =============================================================================
# TOTALS
# =============================================================================

def total_amount(transactions: Iterable[Transaction]) -> float:
    return sum(t.mount for t in transactions)


def get_category_total(transactions: Iterable[Transaction], category: str) -> float:
    """Sum of amounts for one category (exact name match)."""
    return sum(t.mount for t in transactions if t.category == category)


def category_totals(
    transactions: Iterable[Transaction],
    categories: Sequence[Category] = (),
) -> list[CategoryTotal]:
    """
    Totals per category name, largest first.

    Colors and icons come from the matching Category (ignoring case).
    Names with no stored category get palette colors in order of first
    appearance.
    """
    by_name = {c.name.lower(): c for c in categories}
    amounts: dict[str, float] = {}
    for transaction in transactions:
        amounts[transaction.category] = amounts.get(transaction.category, 0.0) + transaction.mount

    rows = []
    for index, (name, amount) in enumerate(amounts.items()):
        category = by_name.get(name.lower())
        rows.append(CategoryTotal(
            name=name,
            amount=amount,
            color=category.color if category else CATEGORY_COLORS[index % len(CATEGORY_COLORS)],
            icon=category.icon if category else get_category_icon(name),
        ))

    # sorted() is stable, so ties keep first-appearance order
    return sorted(rows, key=lambda row: row.amount, reverse=True)


def income_expense_totals(transactions: Iterable[Transaction]) -> IncomeExpenseTotals:
    """Split into expense (positive amounts) and income (abs of negatives)."""
    income = 0.0
    expense = 0.0
    for transaction in transactions:
        if transaction.mount < 0:
            income += -transaction.mount
        else:
            expense += transaction.mount
    return IncomeExpenseTotals(income=income, expense=expense)


# =============================================================================
# LISTS
# =============================================================================

def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> list[Transaction]:
    return _newest_first(transactions)[:limit]


def section_title(day: date) -> str:
    """Title like "Monday, 26 May"."""
    return f"{calendar.day_name[day.weekday()]}, {day.day} {calendar.month_name[day.month]}"


def group_transactions_by_date(transactions: Iterable[Transaction]) -> list[DateSection]:
    """Group by calendar date, newest date first."""
    sections: dict[str, DateSection] = {}
    for transaction in _newest_first(transactions):
        section = sections.get(transaction.date)
        if section is None:
            section = DateSection(
                title=section_title(transaction.parsed_date),
                date=transaction.date,
            )
            sections[transaction.date] = section
        section.data.append(transaction)
        section.total += transaction.mount
    return list(sections.values())


# =============================================================================
# PERIODS
# =============================================================================

def _check_segment(segment: str) -> str:
    if segment not in SEGMENTS:
        raise ValueError(f"Unknown period segment {segment!r}; expected one of {SEGMENTS}")
    return segment


def add_months(day: date, months: int) -> date:
    """Move by whole months, clamping the day to the target month's length."""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _month_end(day: date) -> date:
    return date(day.year, day.month, calendar.monthrange(day.year, day.month)[1])


def period_range(segment: str, anchor: date) -> tuple[date, date]:
    """Inclusive (start, end) of the period containing `anchor`."""
    _check_segment(segment)

    if segment == "D":
        return anchor, anchor
    if segment == "W":
        # weekday(): Monday=0 ... Sunday=6
        start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if segment == "M":
        return anchor.replace(day=1), _month_end(anchor)
    if segment == "6M":
        start = add_months(anchor.replace(day=1), -5)
        return start, _month_end(anchor)
    return date(anchor.year, 1, 1), date(anchor.year, 12, 31)


def shift_period(segment: str, anchor: date, direction: int) -> date:
    """Move the anchor one segment forward (direction > 0) or back."""
    _check_segment(segment)
    step = 1 if direction > 0 else -1

    if segment == "D":
        return anchor + timedelta(days=step)
    if segment == "W":
        return anchor + timedelta(days=7 * step)
    if segment == "M":
        return add_months(anchor, step)
    if segment == "6M":
        return add_months(anchor, 6 * step)
    return add_months(anchor, 12 * step)


def _short(day: date) -> str:
    return f"{calendar.month_abbr[day.month]} {day.day}"


def period_label(segment: str, anchor: date) -> str:
    """
    Human label for a period.

    D -> "May 26", W -> "May 25 - May 31", M -> "May",
    6M -> "Dec - May", Y -> "2025"
    """
    _check_segment(segment)

    if segment == "D":
        return _short(anchor)
    if segment == "W":
        start, end = period_range("W", anchor)
        return f"{_short(start)} - {_short(end)}"
    if segment == "M":
        return calendar.month_name[anchor.month]
    if segment == "6M":
        start, _ = period_range("6M", anchor)
        return f"{calendar.month_abbr[start.month]} - {calendar.month_abbr[anchor.month]}"
    return str(anchor.year)


def filter_by_period(
    transactions: Iterable[Transaction],
    segment: str,
    anchor: date,
) -> list[Transaction]:
    start, end = period_range(segment, anchor)
    return [t for t in transactions if start <= t.parsed_date <= end]


def monthly_history(
    transactions: Iterable[Transaction],
    months: int = 6,
    today: Optional[date] = None,
) -> MonthlyHistory:
    """Expense and income per month for the last `months` months, oldest first."""
    today = today or date.today()
    first = add_months(today.replace(day=1), -(months - 1))

    keys = []
    labels = []
    for offset in range(months):
        month_start = add_months(first, offset)
        keys.append((month_start.year, month_start.month))
        labels.append(calendar.month_abbr[month_start.month])

    expenses = {key: 0.0 for key in keys}
    income = {key: 0.0 for key in keys}
    for transaction in transactions:
        day = transaction.parsed_date
        key = (day.year, day.month)
        if key not in expenses:
            continue
        if transaction.mount < 0:
            income[key] += -transaction.mount
        else:
            expenses[key] += transaction.mount

    return MonthlyHistory(
        labels=labels,
        expenses=[expenses[key] for key in keys],
        income=[income[key] for key in keys],
    )


# =============================================================================
# BUDGETS
# =============================================================================

def budget_progress(spent: float, budget: float) -> float:
    """Percentage of the budget spent, capped at 100; 0 without a budget."""
    if budget <= 0:
        return 0.0
    return min(spent / budget * 100, 100.0)


def build_budget_rows(
    plan: BudgetPlan,
    transactions: Iterable[Transaction],
    categories: Sequence[Category] = (),
) -> list[BudgetRow]:
    """One bar per budgeted category; spending counts expenses only."""
    by_name = {c.name.lower(): c for c in categories}
    spent: dict[str, float] = {}
    for transaction in transactions:
        if transaction.mount > 0:
            key = transaction.category.lower()
            spent[key] = spent.get(key, 0.0) + transaction.mount

    rows = []
    for item in plan.items:
        category = by_name.get(item.name.lower())
        amount = spent.get(item.name.lower(), 0.0)
        rows.append(BudgetRow(
            name=item.name,
            spent=amount,
            budget=item.budget,
            icon=category.icon if category else get_category_icon(item.name),
            color=category.color if category else "#007aff",
            progress=budget_progress(amount, item.budget),
        ))
    return rows


def budget_plan_for_categories(
    plan: BudgetPlan,
    categories: Sequence[Category],
) -> BudgetPlan:
    """Plan with one item per category, keeping existing budgets."""
    existing = {item.name.lower(): item for item in plan.items}
    items = [
        existing.get(c.name.lower(), CategoryBudget(name=c.name)).model_copy(
            update={"name": c.name}
        )
        for c in categories
    ]
    return plan.model_copy(update={"items": items})


def _percentage_of(budget: float, total: float) -> float:
    return budget / total * 100 if total > 0 else 0.0


def set_item_budget(plan: BudgetPlan, index: int, value: float) -> BudgetPlan:
    """
    Set one item's budget.

    In percentage mode `value` is a percentage and the budget follows the
    total; otherwise `value` is the budget and the percentage is derived.

    Raises:
        InvalidBudgetError: If the value is negative
        IndexError: If there is no item at `index`
    """
    if value < 0:
        raise InvalidBudgetError("Budget values cannot be negative")

    items = list(plan.items)
    item = items[index]
    if plan.use_percentage:
        items[index] = item.model_copy(update={
            "percentage": value,
            "budget": value / 100 * plan.total_budget,
        })
    else:
        items[index] = item.model_copy(update={
            "budget": value,
            "percentage": _percentage_of(value, plan.total_budget),
        })
    return plan.model_copy(update={"items": items})


def set_total_budget(plan: BudgetPlan, total: float) -> BudgetPlan:
    """
    Change the total. In percentage mode item budgets scale with it.

    Raises:
        InvalidBudgetError: If the total is negative
    """
    if total < 0:
        raise InvalidBudgetError("The total budget cannot be negative")

    items = plan.items
    if plan.use_percentage:
        items = [
            item.model_copy(update={"budget": (item.percentage or 0) / 100 * total})
            for item in plan.items
        ]
    return plan.model_copy(update={"total_budget": total, "items": items})


def toggle_percentage_mode(plan: BudgetPlan) -> BudgetPlan:
    """Switch between percentage and absolute editing, converting values."""
    use_percentage = not plan.use_percentage
    total = plan.total_budget

    if use_percentage:
        items = [
            item.model_copy(update={"percentage": _percentage_of(item.budget, total)})
            for item in plan.items
        ]
    else:
        items = [
            item.model_copy(update={"budget": (item.percentage or 0) / 100 * total})
            for item in plan.items
        ]
    return plan.model_copy(update={"use_percentage": use_percentage, "items": items})


def validate_budget_plan(plan: BudgetPlan) -> BudgetPlan:
    """
    Check a plan before saving.

    Raises:
        InvalidBudgetError: If the total is not positive, or percentages
            do not add up to roughly 100
    """
    if plan.total_budget <= 0:
        raise InvalidBudgetError("Please enter a valid total budget amount.")

    if plan.use_percentage:
        total_percentage = sum(item.percentage or 0 for item in plan.items)
        if total_percentage < 99 or total_percentage > 101:
            raise InvalidBudgetError(
                "The sum of all percentages should be close to 100%. "
                f"Current total: {total_percentage:.1f}%"
            )
    return plan
