"""Services package."""

from cleanwallet.services.storage import (
    CorruptDataError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    StorageError,
)
from cleanwallet.services.vision import (
    VisionAPIError,
    VisionClient,
    VisionError,
    VisionRequestError,
    VisionResponseFormatError,
)

__all__ = [
    # Storage services
    "CorruptDataError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "StorageError",
    # Vision services
    "VisionAPIError",
    "VisionClient",
    "VisionError",
    "VisionRequestError",
    "VisionResponseFormatError",
]
