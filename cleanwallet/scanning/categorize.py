"""
Normalization and keyword categorization of scanned rows.

The model is asked to pick a category itself. When it leaves one out,
a keyword guess on the lower-cased name fills the gap.

DESIGN DECISION: Simple keyword matching rather than a second model call:
1. Transparent to the user
2. Easy to debug
3. The user reviews every row before saving anyway
"""

from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from cleanwallet.logger import get_logger
from cleanwallet.models.finance import PartialTransaction

logger = get_logger(__name__)


DEFAULT_TRANSACTION_NAME = "Unnamed transaction"
FALLBACK_CATEGORY = "Others"

# Checked in order; the first matching group wins
CATEGORY_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("uber", "trip"), "Transportation"),
    (("copec",), "Transportation"),
    (("apple", ".com"), "Software"),
    (("traspaso a:", "transferencia a"), "Financial Expenses"),
    (("traspaso de:", "transferencia de"), "Income"),
    (("pago:",), "Financial Expenses"),
]


def guess_category(name: Optional[str]) -> str:
    """Guess a category from keywords in a transaction name."""
    if not name:
        return FALLBACK_CATEGORY

    name_lower = name.lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(kw in name_lower for kw in keywords):
            return category
    return FALLBACK_CATEGORY


def _safe_date(value) -> Optional[str]:
    """Safely convert a value to an ISO date string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        # Try common formats
        for fmt in ["%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d"]:
            try:
                return datetime.strptime(value.strip(), fmt).date().isoformat()
            except ValueError:
                continue
    return None


def _safe_amount(value) -> Optional[float]:
    """Safely convert a value to a float amount."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "").replace(" ", "")
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _to_row(raw: Union[PartialTransaction, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(raw, PartialTransaction):
        return raw.model_dump()
    row = dict(raw)
    # Accept camelCase keys from the model answer or stored documents
    if "cardId" in row and "card_id" not in row:
        row["card_id"] = row.pop("cardId")
    if "originalName" in row and "original_name" not in row:
        row["original_name"] = row.pop("originalName")
    return row


def process_transactions(
    raw: Iterable[Union[PartialTransaction, dict[str, Any]]],
    today: Optional[date] = None,
) -> list[PartialTransaction]:
    """
    Normalize extracted rows into selectable partial transactions.

    Every row comes back selected, with a date (today if missing or
    unreadable), a name, an amount (0 if missing) and a category
    (guessed from the name if missing).
    """
    today = today or date.today()
    processed: list[PartialTransaction] = []

    for index, item in enumerate(raw):
        row = _to_row(item)

        name = row.get("name")
        name = str(name).strip() if name not in (None, "") else ""
        name = name or DEFAULT_TRANSACTION_NAME

        amount = _safe_amount(row.get("mount"))
        category = row.get("category")
        category = str(category).strip() if category else ""
        if not category:
            category = guess_category(name)
            logger.debug("scan_category_guessed", row_index=index, category=category)

        processed.append(
            PartialTransaction(
                date=_safe_date(row.get("date")) or today.isoformat(),
                category=category,
                name=name,
                mount=amount if amount is not None else 0.0,
                card_id=row.get("card_id"),
                selected=True,
                original_name=row.get("original_name") or name,
                suggested_name=name,
                suggested_category=category,
            )
        )

    return processed
