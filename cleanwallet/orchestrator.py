"""
Application Wiring for CleanWallet

Builds the object graph the Streamlit app works with:

    KeyValueStore -> FinanceStore
                  -> TransactionMappingStore
    VisionClient  -> ReceiptScanner

DESIGN DECISION: The vision client is optional. Without an API key the
app still works for manual bookkeeping; the Scan page asks for a key and
plugs a client in with `set_api_key()`.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from cleanwallet.config import get_settings, vision_settings_for_key
from cleanwallet.logger import configure_logging, get_logger
from cleanwallet.models.finance import Transaction
from cleanwallet.scanning import (
    ReceiptScanner,
    TransactionMappingStore,
    validate_api_key,
)
from cleanwallet.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from cleanwallet.services.vision import VisionClient
from cleanwallet.store import FinanceStore

logger = get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a session needs, built once by create_app_components()."""

    storage: KeyValueStore
    store: FinanceStore
    mappings: TransactionMappingStore
    scanner: ReceiptScanner
    vision_client: Optional[VisionClient] = None

    async def ensure_initialized(self) -> None:
        """Load the store on first use; later calls are no-ops."""
        if not self.store.is_initialized:
            await self.store.initialize()

    def set_api_key(self, api_key: str) -> VisionClient:
        """
        Plug in a vision client for a key entered at runtime.

        Raises:
            ValueError: If the key is too short
        """
        key = validate_api_key(api_key)
        settings = vision_settings_for_key(key)
        self.vision_client = VisionClient(settings)
        self.scanner.vision_client = self.vision_client
        logger.info("vision_client_configured", model=settings.model)
        return self.vision_client

    async def save_transaction_edit(
        self,
        original: Transaction,
        edited: Transaction,
        apply_to_similar: bool = False,
    ) -> int:
        """
        Save an edited transaction.

        With `apply_to_similar`, every transaction named like the original
        gets the new name and category, and the change is remembered for
        future scans.

        Returns:
            Number of transactions changed
        """
        changed = 1 if await self.store.update_transaction(edited) else 0
        if not apply_to_similar:
            return changed

        if original.name != edited.name or original.category != edited.category:
            changed += await self.store.rename_matching_transactions(
                original.name, edited.name, edited.category,
                exclude_id=edited.id,
            )
            await self.mappings.save_mapping(original.name, edited.name, edited.category)
        return changed


def create_app_components(
    data_dir: Optional[Union[str, Path]] = None,
    use_vision: bool = True,
    in_memory: bool = False,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        data_dir: Directory for the storage document. Defaults to settings.
        use_vision: Whether to build a vision client from the environment.
                    Set to False for testing without network access.
        in_memory: Keep data in memory only (nothing written to disk).

    Returns:
        AppComponents; call `ensure_initialized()` before use
    """
    configure_logging()
    settings = get_settings()

    if in_memory:
        storage: KeyValueStore = InMemoryKeyValueStore()
    else:
        storage_settings = settings.storage
        directory = Path(data_dir) if data_dir else storage_settings.data_dir
        storage = JsonFileKeyValueStore(directory / storage_settings.file_name)

    store = FinanceStore(storage)
    mappings = TransactionMappingStore(storage)

    vision_client = None
    if use_vision:
        try:
            vision_client = VisionClient(settings.vision)
        except ValidationError as e:
            # No key configured - scanning asks for one later
            logger.warning("vision_not_configured", error_count=e.error_count())
            vision_client = None

    scanner = ReceiptScanner(store, mappings, vision_client)

    logger.info(
        "app_components_created",
        in_memory=in_memory,
        vision_configured=vision_client is not None,
    )

    return AppComponents(
        storage=storage,
        store=store,
        mappings=mappings,
        scanner=scanner,
        vision_client=vision_client,
    )
