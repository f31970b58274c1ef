"""
Display formatting for amounts and category icons.

Signed convention: a positive `mount` is an expense and is shown with a
minus sign; a negative `mount` is income and is shown with a plus sign.
"""

from typing import Optional

DEFAULT_ICON = "cube-outline"

CATEGORY_ICONS = {
    # Default categories
    "health": "medical-outline",
    "food": "restaurant-outline",
    "shopping": "bag-outline",
    "housing": "home-outline",
    "transportation": "car-outline",
    "life and entertainment": "film-outline",
    "financial expenses": "receipt-outline",
    "income": "trending-up-outline",
    "clothes": "shirt-outline",
    "software": "code-outline",
    "investments": "trending-up",
    "others": DEFAULT_ICON,
    # Common names users give their own categories
    "groceries": "cart-outline",
    "rent": "home-outline",
    "insurance": "shield-outline",
    "bills": "receipt-outline",
    "electronics": "hardware-chip-outline",
    "entertainment": "film-outline",
    "dining": "restaurant-outline",
    "restaurant": "restaurant-outline",
    "healthcare": "medical-outline",
    "gas": "flame-outline",
}


def _grouped(value: float, decimals: int = 2) -> str:
    """Thousands-grouped absolute value with trailing zeros dropped."""
    text = f"{abs(value):,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_amount(amount: Optional[float], symbol: str = "$") -> str:
    """
    Format a signed transaction amount.

    >>> format_amount(-1500)
    '+$1,500'
    >>> format_amount(12.5)
    '-$12.5'
    """
    if amount is None:
        return f"{symbol}0"
    sign = "+" if amount < 0 else "-"
    return f"{sign}{symbol}{_grouped(amount)}"


def format_currency(amount: float, decimals: int = 1, symbol: str = "US$") -> str:
    """Plain currency with a fixed number of decimals, e.g. `US$12.5`."""
    return f"{symbol}{amount:.{decimals}f}"


def format_signed_currency(value: Optional[float], symbol: str = "$") -> str:
    """Whole-unit amount with a leading minus for negatives, e.g. `-$1,234`."""
    if value is None:
        return f"{symbol}0"
    formatted = f"{symbol}{abs(value):,.0f}"
    return f"-{formatted}" if value < 0 else formatted


def amount_kind(amount: float) -> str:
    """'income' for negative amounts, 'expense' otherwise."""
    return "income" if amount < 0 else "expense"


def get_category_icon(name: Optional[str]) -> str:
    if not name:
        return DEFAULT_ICON
    return CATEGORY_ICONS.get(name.strip().lower(), DEFAULT_ICON)
