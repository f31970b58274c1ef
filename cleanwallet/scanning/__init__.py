"""
Receipt Scanning Package

Image preparation, response parsing, categorization, learned name
mappings and the scan flow that ties them together.
"""

from cleanwallet.scanning.categorize import guess_category, process_transactions
from cleanwallet.scanning.flow import (
    ApiKeyMissingError,
    EmptyExtractionError,
    NoImagesError,
    NoSelectionError,
    ReceiptScanner,
    TooManyImagesError,
    toggle_select_all,
    toggle_transaction,
    validate_api_key,
)
from cleanwallet.scanning.images import (
    ImageReadError,
    ScanError,
    UnsupportedImageError,
    prepare_image_base64,
    prepare_image_bytes,
)
from cleanwallet.scanning.mapping import (
    TransactionMappingStore,
    normalize_transaction_name,
)
from cleanwallet.scanning.parsing import (
    ResponseParseError,
    extract_transactions_from_response,
)

__all__ = [
    # Flow
    "ReceiptScanner",
    "toggle_select_all",
    "toggle_transaction",
    "validate_api_key",
    # Steps
    "extract_transactions_from_response",
    "guess_category",
    "normalize_transaction_name",
    "prepare_image_base64",
    "prepare_image_bytes",
    "process_transactions",
    "TransactionMappingStore",
    # Exceptions
    "ApiKeyMissingError",
    "EmptyExtractionError",
    "ImageReadError",
    "NoImagesError",
    "NoSelectionError",
    "ResponseParseError",
    "ScanError",
    "TooManyImagesError",
    "UnsupportedImageError",
]
