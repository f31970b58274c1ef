"""
Summary Models

Read-only views computed from stored transactions for the dashboard
and wallet screens. None of these are persisted.
"""

from pydantic import BaseModel, Field

from cleanwallet.models.finance import Transaction


class CategoryTotal(BaseModel):
    """Total amount spent in one category."""

    name: str
    amount: float
    color: str
    icon: str = "cube-outline"


class DateSection(BaseModel):
    """Transactions sharing one calendar date."""

    title: str = Field(..., description='Display title, e.g. "Monday, 26 May"')
    date: str
    data: list[Transaction] = Field(default_factory=list)
    total: float = 0.0


class IncomeExpenseTotals(BaseModel):
    """Income/expense split of a set of transactions."""

    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


class MonthlyHistory(BaseModel):
    """Per-month series for the expense history chart, oldest month first."""

    labels: list[str] = Field(default_factory=list)
    expenses: list[float] = Field(default_factory=list)
    income: list[float] = Field(default_factory=list)

    @property
    def total_expense(self) -> float:
        return sum(self.expenses)

    @property
    def total_income(self) -> float:
        return sum(self.income)


class BudgetRow(BaseModel):
    """One row of the budget bar chart."""

    name: str
    spent: float
    budget: float
    icon: str = "cube-outline"
    color: str = "#007aff"
    progress: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Percentage of the budget spent, capped at 100"
    )

    @property
    def over_budget(self) -> bool:
        return self.budget > 0 and self.spent > self.budget
