"""
Tests for CleanWallet models

Test strategy:
1. Unit tests for individual components (models, stores, parsers)
2. Integration tests for flows (with mocked vision responses)
3. No real API calls in tests (use mocks)
"""

import pytest
from pydantic import ValidationError

from cleanwallet.models import (
    CURRENCIES,
    DEFAULT_CATEGORIES,
    BudgetPlan,
    Card,
    CategoryBudget,
    ImageScanError,
    IncomeExpenseTotals,
    PartialTransaction,
    PreparedImage,
    ScanSummary,
    Transaction,
    TransactionMapping,
    get_currency,
)


class TestTransactionModels:
    """Tests for transaction records."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(id=1, date="2025-05-26", category="Food", name="Lunch", mount=12.5)
        assert tx.name == "Lunch"
        assert tx.card_id is None
        assert not tx.is_income

    def test_transaction_accepts_camel_case_card_id(self):
        """Stored documents use cardId."""
        tx = Transaction.model_validate(
            {"id": 3, "date": "2025-01-02", "category": "Income", "name": "Salary", "mount": -1000, "cardId": 2}
        )
        assert tx.card_id == 2
        assert tx.is_income

    def test_transaction_to_storage_uses_aliases(self):
        """Test that storage dumps use camelCase keys."""
        tx = Transaction(id=1, date="2025-05-26", category="Food", name="Lunch", mount=10, card_id=4)
        data = tx.to_storage()
        assert data["cardId"] == 4
        assert "card_id" not in data

    def test_transaction_rejects_bad_date(self):
        """Test that non ISO dates are rejected."""
        with pytest.raises(ValidationError):
            Transaction(id=1, date="26/05/2025", category="Food", name="Lunch", mount=1)

    @pytest.mark.parametrize("value", ["20250526", "2025-W22-1", "2025-05-26T10:00"])
    def test_transaction_rejects_compact_and_week_dates(self, value):
        """Only dashed calendar dates are stored, so string order is date order."""
        with pytest.raises(ValueError):
            Transaction(id=1, date=value, category="Food", name="Lunch", mount=1)

    def test_transaction_date_is_zero_padded(self):
        """Unpadded months and days are normalized."""
        tx = Transaction(id=1, date="2025-5-6", category="Food", name="Lunch", mount=1)
        assert tx.date == "2025-05-06"

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        tx = Transaction(id=1, date="2025-05-26", category=" Food ", name="  Lunch  ", mount=1)
        assert tx.name == "Lunch"
        assert tx.category == "Food"

    def test_parsed_date(self):
        """Test the date property."""
        tx = Transaction(id=1, date="2024-02-29", category="Food", name="Leap", mount=1)
        assert tx.parsed_date.day == 29

    def test_partial_transaction_defaults(self):
        """Scanned rows start selected and unedited."""
        partial = PartialTransaction(name="Uber")
        assert partial.selected is True
        assert partial.mount is None
        assert not partial.is_edited

    def test_partial_transaction_detects_edit(self):
        """Changing the proposed name or category marks the row edited."""
        partial = PartialTransaction(
            name="Uber", category="Transportation",
            suggested_name="Uber", suggested_category="Transportation",
        )
        assert not partial.is_edited
        assert partial.model_copy(update={"name": "Uber ride"}).is_edited
        assert partial.model_copy(update={"category": "Others"}).is_edited


class TestCardsAndCategories:
    """Tests for cards, categories and defaults."""

    def test_card_defaults(self):
        """Test Card defaults."""
        card = Card(id=1, name="Visa")
        assert card.selected is False
        assert card.color == "#3498db"

    def test_card_rejects_empty_name(self):
        """Test that empty card names are rejected."""
        with pytest.raises(ValidationError):
            Card(id=1, name="   ")

    def test_default_categories(self):
        """Twelve defaults with ids 1..12, Others last."""
        assert len(DEFAULT_CATEGORIES) == 12
        assert [c.id for c in DEFAULT_CATEGORIES] == list(range(1, 13))
        assert DEFAULT_CATEGORIES[-1].name == "Others"
        assert DEFAULT_CATEGORIES[-1].icon == "cube-outline"

    def test_mapping_aliases(self):
        """Mappings round-trip through their stored keys."""
        mapping = TransactionMapping(original_name="uber trip", custom_name="Uber", custom_category="Transportation")
        data = mapping.to_storage()
        assert data == {
            "originalName": "uber trip",
            "customName": "Uber",
            "customCategory": "Transportation",
        }


class TestBudgetAndCurrency:
    """Tests for budgets and currencies."""

    def test_budget_for_ignores_case(self):
        """Test budget lookup by category name."""
        plan = BudgetPlan(total_budget=1000, items=[CategoryBudget(name="Food", budget=300)])
        assert plan.budget_for("food") == 300
        assert plan.budget_for("Housing") == 0

    def test_budget_plan_from_stored_json(self):
        """Test that stored camelCase budget documents load."""
        plan = BudgetPlan.model_validate(
            {"totalBudget": 500, "usePercentage": True, "items": [{"name": "Food", "budget": 250, "percentage": 50}]}
        )
        assert plan.use_percentage
        assert plan.items[0].percentage == 50

    def test_negative_budget_rejected(self):
        """Test that negative budgets are rejected."""
        with pytest.raises(ValidationError):
            CategoryBudget(name="Food", budget=-1)

    def test_get_currency_falls_back_to_usd(self):
        """Unknown codes fall back to USD."""
        assert get_currency("eur").symbol == "€"
        assert get_currency("XXX").code == "USD"
        assert len(CURRENCIES) == 5


class TestScanAndSummaryModels:
    """Tests for scan and summary views."""

    def test_prepared_image_data_url(self):
        """Test data URL construction."""
        image = PreparedImage(source="a.png", base64="AAAA", mime_type="image/png", width=1, height=1, size_bytes=3)
        assert image.data_url == "data:image/png;base64,AAAA"
        assert "AAAA" not in repr(image)

    def test_scan_summary_message(self):
        """Test the summary shown after a batch."""
        summary = ScanSummary(
            total_images=3,
            transactions=[PartialTransaction(name="A", category="Food"), PartialTransaction(name="B")],
            errors=[ImageScanError(index=1, source="b.png", message="boom")],
        )
        assert summary.success_count == 2
        assert summary.category_counts() == {"Food": 1, "Uncategorized": 1}
        assert summary.user_message() == (
            "Processed 2 of 3 images.\n"
            "Transactions extracted: 2\n"
            "Could not process 1 images."
        )

    def test_income_expense_net(self):
        """Test net is income minus expense."""
        totals = IncomeExpenseTotals(income=100, expense=30)
        assert totals.net == 70
