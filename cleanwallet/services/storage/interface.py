"""
Abstract Key-Value Storage Interface

All persistence goes through a tiny async key-value interface, the same
shape as a device key-value store: string keys, string values, whole
values read and written at once.

This keeps the finance store decoupled from where data lives:
- JsonFileKeyValueStore for the real app
- InMemoryKeyValueStore for tests and throwaway sessions

Values are JSON-serialized lists. There are no partial updates and no
schema versioning.
"""

from abc import ABC, abstractmethod
from typing import Optional


# Keys used by the app
TRANSACTIONS_KEY = "finance_tracker_transactions"
CARDS_KEY = "finance_tracker_cards"
CATEGORIES_KEY = "finance_tracker_categories"
SELECTED_CARD_KEY = "finance_tracker_selected_card"
BUDGETS_KEY = "finance_tracker_budgets"
MAPPINGS_KEY = "transaction_name_mappings"


class KeyValueStore(ABC):
    """
    Abstract interface for key-value storage.

    Any backend (JSON file, in-memory, ...) must implement these methods.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under `key`.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """
        Remove `key`. Removing an absent key is a no-op.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        """List every stored key."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """A stored value could not be decoded into its record type."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Corrupt data under '{key}': {message}")
