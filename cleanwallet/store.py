"""
Finance Store

Holds the user's transactions, cards and categories in memory and
persists them through a KeyValueStore.

DESIGN DECISION: One injected store object instead of module-level
lists. Screens and the scan flow receive the same instance, so there is
a single source of truth per session and tests can run against an
in-memory backend.

Persistence is wholesale: every mutation rewrites the whole list for
its key. Lookups are linear scans; the lists are small.

Ids are `max(existing) + 1`, or 1 for an empty list. Deleted ids can be
reused once the highest id is gone.
"""

import json
from datetime import date
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from cleanwallet.logger import get_logger
from cleanwallet.models.finance import (
    DEFAULT_CATEGORIES,
    BudgetPlan,
    Card,
    Category,
    PartialTransaction,
    Transaction,
)
from cleanwallet.services.storage import (
    BUDGETS_KEY,
    CARDS_KEY,
    CATEGORIES_KEY,
    SELECTED_CARD_KEY,
    TRANSACTIONS_KEY,
    CorruptDataError,
    KeyValueStore,
    StorageError,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TRANSACTION_NAME = "Unnamed transaction"
DEFAULT_CATEGORY_NAME = "Others"


class CategoryInUseError(Exception):
    """A category cannot be deleted while transactions use it."""

    def __init__(self, name: str, usage_count: int):
        self.name = name
        self.usage_count = usage_count
        super().__init__(
            f"Category '{name}' is used by {usage_count} transaction(s) "
            f"and cannot be deleted"
        )


def _next_id(items) -> int:
    return max((item.id for item in items), default=0) + 1


class FinanceStore:
    """
    In-memory finance data with write-through persistence.

    Call `initialize()` once before use.
    """

    def __init__(self, storage: KeyValueStore):
        self._storage = storage
        self.transactions: list[Transaction] = []
        self.cards: list[Card] = []
        self.categories: list[Category] = []
        self.budget_plan: BudgetPlan = BudgetPlan()
        self._initialized = False

    @property
    def storage(self) -> KeyValueStore:
        return self._storage

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # LOADING AND SAVING
    # =========================================================================

    async def _load_list(self, key: str, model: type[ModelT]) -> Optional[list[ModelT]]:
        """Load a JSON list under `key`, or None if nothing is stored."""
        raw = await self._storage.get_item(key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(key, f"invalid JSON: {e}")
        if not isinstance(data, list):
            raise CorruptDataError(key, "expected a JSON list")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise CorruptDataError(key, str(e))

    async def initialize(self) -> None:
        """
        Load everything from storage.

        Categories fall back to the defaults (and are written back) when
        none are stored. Cards start empty.

        Raises:
            CorruptDataError: If a stored value cannot be decoded
            StorageError: If the backend cannot be read
        """
        cards = await self._load_list(CARDS_KEY, Card)
        self.cards = cards or []

        categories = await self._load_list(CATEGORIES_KEY, Category)
        if categories is None:
            logger.info("categories_defaulted", count=len(DEFAULT_CATEGORIES))
            self.categories = [c.model_copy() for c in DEFAULT_CATEGORIES]
            await self.save_all_categories()
        else:
            self.categories = categories

        self.transactions = await self._load_list(TRANSACTIONS_KEY, Transaction) or []

        raw_budgets = await self._storage.get_item(BUDGETS_KEY)
        if raw_budgets:
            try:
                self.budget_plan = BudgetPlan.model_validate_json(raw_budgets)
            except ValidationError as e:
                raise CorruptDataError(BUDGETS_KEY, str(e))
        else:
            self.budget_plan = BudgetPlan()

        if self.cards:
            selected_raw = await self._storage.get_item(SELECTED_CARD_KEY)
            if selected_raw:
                try:
                    selected_id = int(selected_raw)
                except ValueError:
                    raise CorruptDataError(SELECTED_CARD_KEY, f"not a card id: {selected_raw!r}")
                self._apply_selection(selected_id)

        self._initialized = True
        logger.info(
            "store_initialized",
            cards=len(self.cards),
            categories=len(self.categories),
            transactions=len(self.transactions),
        )

    async def _save_list(self, key: str, items: list) -> bool:
        try:
            await self._storage.set_item(
                key,
                json.dumps([item.to_storage() for item in items]),
            )
            return True
        except StorageError as e:
            logger.error("store_save_failed", key=key, error=str(e))
            return False

    async def save_all_transactions(self) -> bool:
        return await self._save_list(TRANSACTIONS_KEY, self.transactions)

    async def save_all_cards(self) -> bool:
        return await self._save_list(CARDS_KEY, self.cards)

    async def save_all_categories(self) -> bool:
        return await self._save_list(CATEGORIES_KEY, self.categories)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(self, partial: PartialTransaction) -> int:
        """
        Append a transaction, filling missing fields with defaults.

        Returns:
            The new transaction id
        """
        new_id = _next_id(self.transactions)
        transaction = Transaction(
            id=new_id,
            date=partial.date or date.today().isoformat(),
            category=partial.category or DEFAULT_CATEGORY_NAME,
            name=partial.name or DEFAULT_TRANSACTION_NAME,
            mount=partial.mount if partial.mount is not None else 0.0,
            card_id=partial.card_id,
        )
        self.transactions.append(transaction)
        await self.save_all_transactions()

        logger.info(
            "transaction_added",
            transaction_id=new_id,
            card_id=transaction.card_id,
            category=transaction.category,
        )
        return new_id

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def get_all_transactions(self) -> list[Transaction]:
        return list(self.transactions)

    def transactions_for_card(self, card_id: Optional[int]) -> list[Transaction]:
        """Transactions tagged with `card_id`; 0 or None means all cards."""
        if not card_id:
            return self.get_all_transactions()
        return [t for t in self.transactions if t.card_id == card_id]

    async def update_transaction(self, transaction: Transaction) -> bool:
        for index, existing in enumerate(self.transactions):
            if existing.id == transaction.id:
                self.transactions[index] = transaction
                return await self.save_all_transactions()
        return False

    async def delete_transaction(self, transaction_id: int) -> bool:
        for index, existing in enumerate(self.transactions):
            if existing.id == transaction_id:
                del self.transactions[index]
                logger.info("transaction_deleted", transaction_id=transaction_id)
                return await self.save_all_transactions()
        return False

    async def rename_matching_transactions(
        self,
        old_name: str,
        new_name: str,
        new_category: str,
        exclude_id: Optional[int] = None,
    ) -> int:
        """
        Rename and re-categorize every transaction named exactly `old_name`.

        `exclude_id` skips a transaction that was already saved separately.

        Returns:
            Number of transactions changed
        """
        changed = 0
        for index, transaction in enumerate(self.transactions):
            if transaction.name == old_name and transaction.id != exclude_id:
                self.transactions[index] = transaction.model_copy(
                    update={"name": new_name, "category": new_category}
                )
                changed += 1
        if changed:
            await self.save_all_transactions()
        logger.info("transactions_renamed", count=changed)
        return changed

    # =========================================================================
    # CARDS
    # =========================================================================

    async def add_card(self, name: str, color: str) -> Card:
        """
        Create a card. The first card ever added becomes the selected one.

        Raises:
            ValueError: If the name is blank
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Card name cannot be empty")

        card = Card(
            id=_next_id(self.cards),
            name=name,
            color=color,
            selected=not self.cards,
        )
        self.cards.append(card)
        await self.save_all_cards()

        if len(self.cards) == 1:
            await self._save_selected_id(card.id)

        logger.info("card_added", card_id=card.id, selected=card.selected)
        return card

    async def update_card(self, card: Card) -> bool:
        """Replace the card with the same id, or append it if unknown."""
        for index, existing in enumerate(self.cards):
            if existing.id == card.id:
                self.cards[index] = card
                break
        else:
            self.cards.append(card)
        return await self.save_all_cards()

    async def delete_card(self, card_id: int) -> bool:
        for index, existing in enumerate(self.cards):
            if existing.id == card_id:
                del self.cards[index]
                logger.info("card_deleted", card_id=card_id)
                return await self.save_all_cards()
        return False

    def _apply_selection(self, card_id: int) -> bool:
        if not any(card.id == card_id for card in self.cards):
            return False
        self.cards = [
            card.model_copy(update={"selected": card.id == card_id})
            for card in self.cards
        ]
        return True

    async def _save_selected_id(self, card_id: int) -> bool:
        try:
            await self._storage.set_item(SELECTED_CARD_KEY, str(card_id))
            return True
        except StorageError as e:
            logger.error("store_save_failed", key=SELECTED_CARD_KEY, error=str(e))
            return False

    async def select_card(self, card_id: int) -> bool:
        """Mark exactly one card as selected and persist the choice."""
        if not self._apply_selection(card_id):
            return False
        saved_id = await self._save_selected_id(card_id)
        saved_cards = await self.save_all_cards()
        return saved_id and saved_cards

    def get_selected_card(self) -> Optional[Card]:
        for card in self.cards:
            if card.selected:
                return card
        return None

    def get_card(self, card_id: int) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def get_all_cards(self) -> list[Card]:
        return list(self.cards)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def get_category(self, category_id: int) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def get_category_by_name(self, name: str) -> Optional[Category]:
        name_lower = (name or "").strip().lower()
        for category in self.categories:
            if category.name.lower() == name_lower:
                return category
        return None

    def get_all_categories(self) -> list[Category]:
        return list(self.categories)

    def category_names(self) -> list[str]:
        return [category.name for category in self.categories]

    def category_usage_count(self, name: str) -> int:
        name_lower = name.lower()
        return sum(1 for t in self.transactions if t.category.lower() == name_lower)

    def is_category_in_use(self, name: str) -> bool:
        return self.category_usage_count(name) > 0

    async def add_category(self, name: str, icon: str, color: str) -> Category:
        """
        Create a category.

        Raises:
            ValueError: If the name is blank or already taken (ignoring case)
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name cannot be empty")
        if self.get_category_by_name(name) is not None:
            raise ValueError(f"A category named '{name}' already exists")

        category = Category(
            id=_next_id(self.categories),
            name=name,
            icon=icon,
            color=color,
        )
        self.categories.append(category)
        await self.save_all_categories()

        logger.info("category_added", category_id=category.id)
        return category

    async def update_category(self, category: Category) -> bool:
        """
        Replace a category by id.

        A rename is carried over to every transaction that used the old
        name, and the transactions are saved.

        Raises:
            ValueError: If the new name is taken by another category
        """
        index = next(
            (i for i, c in enumerate(self.categories) if c.id == category.id),
            None,
        )
        if index is None:
            return False

        clash = self.get_category_by_name(category.name)
        if clash is not None and clash.id != category.id:
            raise ValueError(f"A category named '{category.name}' already exists")

        old_name = self.categories[index].name
        self.categories[index] = category
        saved = await self.save_all_categories()

        if old_name != category.name:
            old_lower = old_name.lower()
            renamed = 0
            for i, transaction in enumerate(self.transactions):
                if transaction.category.lower() == old_lower:
                    self.transactions[i] = transaction.model_copy(
                        update={"category": category.name}
                    )
                    renamed += 1
            if renamed:
                saved = await self.save_all_transactions() and saved
            logger.info(
                "category_renamed",
                category_id=category.id,
                transactions_updated=renamed,
            )

        return saved

    async def delete_category(self, category_id: int) -> bool:
        """
        Delete a category by id.

        Raises:
            CategoryInUseError: If any transaction still uses it
        """
        category = self.get_category(category_id)
        if category is None:
            return False

        usage = self.category_usage_count(category.name)
        if usage:
            raise CategoryInUseError(category.name, usage)

        self.categories = [c for c in self.categories if c.id != category_id]
        logger.info("category_deleted", category_id=category_id)
        return await self.save_all_categories()

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def get_budget_plan(self) -> BudgetPlan:
        return self.budget_plan.model_copy(deep=True)

    async def save_budget_plan(self, plan: BudgetPlan) -> bool:
        self.budget_plan = plan.model_copy(deep=True)
        try:
            await self._storage.set_item(BUDGETS_KEY, json.dumps(plan.to_storage()))
            return True
        except StorageError as e:
            logger.error("store_save_failed", key=BUDGETS_KEY, error=str(e))
            return False
