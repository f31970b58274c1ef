"""
Storage Services Package

Provides the abstract key-value interface and its implementations.
The JSON file backend is used by the app; the in-memory backend by tests.
"""

from cleanwallet.services.storage.interface import (
    BUDGETS_KEY,
    CARDS_KEY,
    CATEGORIES_KEY,
    MAPPINGS_KEY,
    SELECTED_CARD_KEY,
    TRANSACTIONS_KEY,
    CorruptDataError,
    KeyValueStore,
    StorageError,
)
from cleanwallet.services.storage.json_file import JsonFileKeyValueStore
from cleanwallet.services.storage.memory import InMemoryKeyValueStore

__all__ = [
    # Keys
    "BUDGETS_KEY",
    "CARDS_KEY",
    "CATEGORIES_KEY",
    "MAPPINGS_KEY",
    "SELECTED_CARD_KEY",
    "TRANSACTIONS_KEY",
    # Interface
    "KeyValueStore",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
