"""
Core Data Models for CleanWallet

These models define the shape of every record the app stores:
transactions, cards, categories, learned name mappings and budgets.

Stored documents use camelCase keys (`cardId`, `originalName`, ...).
Models accept either the alias or the Python field name, and
`to_storage()` always writes the aliases.

Amounts follow one sign convention everywhere: a positive `mount` is an
expense, a negative `mount` is income.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class StoredModel(BaseModel):
    """Base for records persisted in the key-value store."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage(self) -> dict:
        """Dump with storage aliases, dropping unset optional keys."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(StoredModel):
    """
    A single recorded expense or income event.

    `card_id` is not checked against existing cards.
    """

    id: int = Field(..., ge=1)
    date: str = Field(
        ...,
        description="Transaction date as YYYY-MM-DD"
    )
    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    mount: float = Field(
        ...,
        description="Signed amount: positive is an expense, negative is income"
    )
    card_id: Optional[int] = Field(default=None, alias="cardId")

    @field_validator("date")
    @classmethod
    def validate_iso_date(cls, v: str) -> str:
        try:
            parsed = datetime.strptime(v, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(f"Date must be YYYY-MM-DD, got {v!r}")
        # Stored dates sort as strings, so keep them zero-padded
        return parsed.isoformat()

    @property
    def parsed_date(self):
        """Transaction date as a `datetime.date`."""
        return date.fromisoformat(self.date)

    @property
    def is_income(self) -> bool:
        return self.mount < 0


class PartialTransaction(StoredModel):
    """
    A transaction that has not been saved yet.

    Scanned rows and form input arrive in this shape. Every field may be
    missing; defaults are filled in when the row is saved.
    """

    id: Optional[int] = None
    date: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    mount: Optional[float] = None
    card_id: Optional[int] = Field(default=None, alias="cardId")
    selected: bool = True

    # Name as extracted, kept so a user edit can be learned as a mapping
    original_name: Optional[str] = Field(default=None, alias="originalName")

    # What the scan proposed, before the user edited the row
    suggested_name: Optional[str] = Field(default=None, alias="suggestedName")
    suggested_category: Optional[str] = Field(default=None, alias="suggestedCategory")

    @property
    def is_edited(self) -> bool:
        """True if the user changed the proposed name or category."""
        name_changed = self.suggested_name is not None and self.name != self.suggested_name
        category_changed = (
            self.suggested_category is not None
            and self.category != self.suggested_category
        )
        return name_changed or category_changed


# =============================================================================
# CARDS AND CATEGORIES
# =============================================================================

class Card(StoredModel):
    """A payment method used to tag and filter transactions."""

    id: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#3498db")
    selected: bool = False


class Category(StoredModel):
    """A grouping label for transactions, with icon/color metadata."""

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(default="cube-outline")
    color: str = Field(default="#007aff")


DEFAULT_CATEGORIES: list[Category] = [
    Category(id=1, name="Health", icon="medical-outline", color="#2980b9"),
    Category(id=2, name="Food", icon="restaurant-outline", color="#27ae60"),
    Category(id=3, name="Shopping", icon="bag-outline", color="#9b59b6"),
    Category(id=4, name="Housing", icon="home-outline", color="#3498db"),
    Category(id=5, name="Transportation", icon="car-outline", color="#1abc9c"),
    Category(id=6, name="Life and Entertainment", icon="film-outline", color="#6c5ce7"),
    Category(id=7, name="Financial Expenses", icon="receipt-outline", color="#34495e"),
    Category(id=8, name="Income", icon="trending-up-outline", color="#2ecc71"),
    Category(id=9, name="Clothes", icon="shirt-outline", color="#74b9ff"),
    Category(id=10, name="Software", icon="code-outline", color="#8e44ad"),
    Category(id=11, name="Investments", icon="trending-up", color="#16a085"),
    Category(id=12, name="Others", icon="cube-outline", color="#007aff"),
]


# Color choices offered by the card and category editors
CARD_COLORS = [
    "#3498db", "#2ecc71", "#e74c3c", "#f39c12",
    "#9b59b6", "#1abc9c", "#34495e", "#e67e22",
]

CATEGORY_COLORS = [
    "#3498db", "#2ecc71", "#9b59b6", "#1abc9c", "#2980b9",
    "#27ae60", "#8e44ad", "#16a085", "#34495e", "#5dade2",
]


# =============================================================================
# NAME MAPPINGS
# =============================================================================

class TransactionMapping(StoredModel):
    """
    A learned rename rule for scanned transactions.

    When a scanned name matches `original_name` (normalized), the row is
    renamed to `custom_name` and moved to `custom_category`.
    """

    original_name: str = Field(..., min_length=1, alias="originalName")
    custom_name: str = Field(..., min_length=1, alias="customName")
    custom_category: str = Field(..., min_length=1, alias="customCategory")


# =============================================================================
# BUDGETS
# =============================================================================

class CategoryBudget(StoredModel):
    """Budget assigned to one category."""

    name: str
    budget: float = Field(default=0.0, ge=0)
    percentage: Optional[float] = Field(default=None, ge=0)


class BudgetPlan(StoredModel):
    """
    Budget settings for the dashboard.

    With `use_percentage`, each item's `percentage` is authoritative and
    its `budget` is derived from `total_budget`.
    """

    total_budget: float = Field(default=0.0, ge=0, alias="totalBudget")
    use_percentage: bool = Field(default=False, alias="usePercentage")
    items: list[CategoryBudget] = Field(default_factory=list)

    def budget_for(self, category_name: str) -> float:
        for item in self.items:
            if item.name.lower() == category_name.lower():
                return item.budget
        return 0.0


# =============================================================================
# CURRENCIES
# =============================================================================

class Currency(BaseModel):
    """Display currency."""

    code: str
    name: str
    symbol: str


CURRENCIES: list[Currency] = [
    Currency(code="USD", name="US Dollar", symbol="$"),
    Currency(code="CLP", name="Chilean Peso", symbol="$"),
    Currency(code="EUR", name="Euro", symbol="€"),
    Currency(code="GBP", name="British Pound", symbol="£"),
    Currency(code="JPY", name="Japanese Yen", symbol="¥"),
]


def get_currency(code: str) -> Currency:
    """Look up a currency by code, falling back to USD."""
    for currency in CURRENCIES:
        if currency.code == code.upper():
            return currency
    return CURRENCIES[0]
