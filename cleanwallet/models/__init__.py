"""
Data Models Package

This package contains all Pydantic models used in CleanWallet.
All data flowing through the system must conform to these schemas.
"""

from cleanwallet.models.finance import (
    CARD_COLORS,
    CATEGORY_COLORS,
    CURRENCIES,
    DEFAULT_CATEGORIES,
    BudgetPlan,
    Card,
    Category,
    CategoryBudget,
    Currency,
    PartialTransaction,
    Transaction,
    TransactionMapping,
    get_currency,
)
from cleanwallet.models.scan import (
    ImageScanError,
    MappingResult,
    PreparedImage,
    ScanProgress,
    ScanSummary,
    VisionResponse,
)
from cleanwallet.models.summary import (
    BudgetRow,
    CategoryTotal,
    DateSection,
    IncomeExpenseTotals,
    MonthlyHistory,
)

__all__ = [
    # Finance records
    "CARD_COLORS",
    "CATEGORY_COLORS",
    "CURRENCIES",
    "DEFAULT_CATEGORIES",
    "BudgetPlan",
    "Card",
    "Category",
    "CategoryBudget",
    "Currency",
    "PartialTransaction",
    "Transaction",
    "TransactionMapping",
    "get_currency",
    # Scanning
    "ImageScanError",
    "MappingResult",
    "PreparedImage",
    "ScanProgress",
    "ScanSummary",
    "VisionResponse",
    # Summaries
    "BudgetRow",
    "CategoryTotal",
    "DateSection",
    "IncomeExpenseTotals",
    "MonthlyHistory",
]
