"""
Receipt Scan Flow

Coordinates one scanning session:
1. Prepare each picked image
2. Ask the vision model for the transactions in it
3. Parse, map and categorize the rows
4. Let the user review (select, rename, re-categorize)
5. Save the selected rows into the finance store

DESIGN DECISION: Images are processed strictly one after another, one
request per image. No batching, no parallel fan-out, no retries. A failed
image is recorded and the batch moves on; nothing is persisted until the
user explicitly saves the rows they selected.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from cleanwallet.config import AppSettings, get_settings
from cleanwallet.logger import get_logger
from cleanwallet.models.finance import PartialTransaction
from cleanwallet.models.scan import (
    ImageScanError,
    PreparedImage,
    ScanProgress,
    ScanSummary,
)
from cleanwallet.scanning.categorize import process_transactions
from cleanwallet.scanning.images import (
    ScanError,
    prepare_image_base64,
    prepare_image_bytes,
)
from cleanwallet.scanning.mapping import TransactionMappingStore
from cleanwallet.scanning.parsing import extract_transactions_from_response
from cleanwallet.services.storage import StorageError
from cleanwallet.services.vision import (
    VisionAPIError,
    VisionClient,
    VisionError,
    extract_message_content,
)
from cleanwallet.store import FinanceStore

logger = get_logger(__name__)


# A path on disk, an (filename, bytes) upload, or an already prepared image
ImageInput = Union[str, Path, tuple[str, bytes], PreparedImage]
ProgressCallback = Callable[[ScanProgress], None]

MIN_API_KEY_LENGTH = 20


class NoImagesError(ScanError):
    """Scan requested without any image."""
    pass


class TooManyImagesError(ScanError):
    """More images than one batch allows."""

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"Only up to {limit} images can be scanned at once (got {count})")


class EmptyExtractionError(ScanError):
    """The model answered but no transaction could be extracted."""
    pass


class NoSelectionError(ScanError):
    """Save requested with no row selected."""
    pass


class ApiKeyMissingError(ScanError):
    """No vision client is configured; the user must enter an API key."""
    pass


def validate_api_key(api_key: Optional[str]) -> str:
    """
    Check a key entered by the user.

    Returns:
        The stripped key

    Raises:
        ValueError: If the key is shorter than 20 characters
    """
    key = (api_key or "").strip()
    if len(key) < MIN_API_KEY_LENGTH:
        raise ValueError("Please enter a valid API key")
    return key


def toggle_transaction(
    rows: Sequence[PartialTransaction],
    index: int,
) -> list[PartialTransaction]:
    """Flip the selection of one row. Returns a new list."""
    return [
        row.model_copy(update={"selected": not row.selected}) if i == index else row
        for i, row in enumerate(rows)
    ]


def toggle_select_all(
    rows: Sequence[PartialTransaction],
    select: bool,
) -> list[PartialTransaction]:
    """Select or deselect every row. Returns a new list."""
    return [row.model_copy(update={"selected": select}) for row in rows]


class ReceiptScanner:
    """
    Scans receipt images into reviewable rows and saves the chosen ones.

    The vision client is optional so the scanner can exist before the
    user has entered an API key; scanning without one raises
    ApiKeyMissingError.
    """

    def __init__(
        self,
        store: FinanceStore,
        mappings: TransactionMappingStore,
        vision_client: Optional[VisionClient] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._mappings = mappings
        self._vision_client = vision_client
        self._app_settings = app_settings or get_settings().app

    @property
    def vision_client(self) -> Optional[VisionClient]:
        return self._vision_client

    @vision_client.setter
    def vision_client(self, client: Optional[VisionClient]) -> None:
        self._vision_client = client

    @property
    def has_vision_client(self) -> bool:
        return self._vision_client is not None

    @property
    def max_images(self) -> int:
        return self._app_settings.max_scan_images

    def _prepare(self, image: ImageInput) -> PreparedImage:
        if isinstance(image, PreparedImage):
            return image
        if isinstance(image, tuple):
            filename, data = image
            return prepare_image_bytes(data, filename, app_settings=self._app_settings)
        return prepare_image_base64(image, app_settings=self._app_settings)

    @staticmethod
    def _source_of(image: ImageInput) -> str:
        if isinstance(image, PreparedImage):
            return image.source
        if isinstance(image, tuple):
            return image[0]
        return str(image)

    async def process_image(
        self,
        image: ImageInput,
        card_id: Optional[int] = None,
    ) -> list[PartialTransaction]:
        """
        Extract the transactions from one image.

        Raises:
            ApiKeyMissingError: If no vision client is configured
            ScanError: If the image cannot be prepared or parsed
            VisionAPIError: If the endpoint answers with a non-2xx status
            VisionError: If the request fails or the answer is malformed
            EmptyExtractionError: If the answer holds no transactions
        """
        if self._vision_client is None:
            raise ApiKeyMissingError("No API key configured")

        prepared = self._prepare(image)
        category_names = self._store.category_names()

        response = await self._vision_client.complete(prepared, category_names)
        if not response.ok:
            logger.warning(
                "scan_image_rejected",
                source=prepared.source,
                status=response.status,
            )
            raise VisionAPIError(response.status, response.text)

        content = extract_message_content(response.text)
        rows = extract_transactions_from_response(content)
        if not rows:
            raise EmptyExtractionError("No transactions found in the response")

        fallback = self._app_settings.default_category
        prepared_rows = []
        for raw in rows:
            row = dict(raw)
            row["card_id"] = card_id

            name = row.get("name")
            if name:
                row["original_name"] = str(name)
                try:
                    mapped = await self._mappings.apply_mapping(
                        str(name),
                        row.get("category") or fallback,
                    )
                except StorageError as e:
                    # Unreadable mappings must not block the scan
                    logger.warning("scan_mapping_unavailable", error=str(e))
                else:
                    if mapped.was_modified:
                        row["name"] = mapped.name
                        row["category"] = mapped.category

            # Only names the store knows are kept; missing ones are guessed below
            category = row.get("category")
            if category and category not in category_names:
                logger.debug("scan_category_coerced", category=category)
                row["category"] = fallback

            prepared_rows.append(row)

        transactions = process_transactions(prepared_rows)

        # A keyword guess may name a category the user has deleted
        if category_names:
            transactions = [
                t if t.category in category_names
                else t.model_copy(update={"category": fallback, "suggested_category": fallback})
                for t in transactions
            ]

        logger.info(
            "scan_image_completed",
            source=prepared.source,
            extracted=len(transactions),
        )
        return transactions

    async def scan_all(
        self,
        images: Sequence[ImageInput],
        card_id: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ScanSummary:
        """
        Scan a batch of images sequentially.

        A failed image is recorded in the summary and the next one is
        processed.

        Raises:
            NoImagesError: If `images` is empty
            TooManyImagesError: If the batch exceeds the configured limit
            ApiKeyMissingError: If no vision client is configured
            EmptyExtractionError: If no image yielded any transaction
        """
        total = len(images)
        if total == 0:
            raise NoImagesError("Please select at least one image")
        if total > self.max_images:
            raise TooManyImagesError(total, self.max_images)
        if self._vision_client is None:
            raise ApiKeyMissingError("No API key configured")

        logger.info(
            "scan_batch_started",
            image_count=total,
            card_id=card_id,
            category_count=len(self._store.categories),
        )

        summary = ScanSummary(total_images=total)

        for index, image in enumerate(images):
            source = self._source_of(image)
            if progress:
                progress(ScanProgress(
                    current=index,
                    total=total,
                    percent=index / total * 100,
                    source=source,
                ))

            try:
                transactions = await self.process_image(image, card_id)
            except (ScanError, VisionError) as e:
                logger.warning(
                    "scan_image_failed",
                    image_index=index,
                    source=source,
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
                summary.errors.append(ImageScanError(
                    index=index,
                    source=source,
                    message=str(e),
                ))
                continue

            summary.transactions.extend(transactions)

        if progress:
            progress(ScanProgress(current=total, total=total, percent=100.0))

        logger.info(
            "scan_batch_completed",
            image_count=total,
            error_count=summary.error_count,
            extracted=len(summary.transactions),
            categories=summary.category_counts(),
        )

        if not summary.transactions:
            detail = summary.errors[0].message if summary.errors else "no rows returned"
            raise EmptyExtractionError(
                f"Could not extract transactions from any image ({detail})"
            )

        return summary

    async def save_selected(
        self,
        rows: Sequence[PartialTransaction],
        card_id: Optional[int] = None,
    ) -> list[int]:
        """
        Save the selected rows as transactions.

        Rows the user renamed or re-categorized teach a mapping from their
        extracted name, so the next scan applies the same edit.

        Returns:
            Ids of the saved transactions, in row order

        Raises:
            NoSelectionError: If no row is selected
        """
        selected = [row for row in rows if row.selected]
        if not selected:
            raise NoSelectionError("Please select at least one transaction")

        saved_ids: list[int] = []
        learned = 0
        for row in selected:
            if card_id is not None:
                row = row.model_copy(update={"card_id": card_id})
            saved_ids.append(await self._store.add_transaction(row))

            if row.is_edited and row.original_name and row.name and row.category:
                try:
                    if await self._mappings.save_mapping(
                        row.original_name, row.name, row.category
                    ):
                        learned += 1
                except StorageError as e:
                    logger.warning("scan_mapping_not_saved", error=str(e))

        logger.info(
            "scan_rows_saved",
            saved=len(saved_ids),
            mappings_learned=learned,
            card_id=card_id,
        )
        return saved_ids
