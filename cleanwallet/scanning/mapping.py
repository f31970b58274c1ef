"""
Learned Transaction Name Mappings

When the user renames or re-categorizes a scanned row before saving it,
the change is remembered. Later scans of a matching name get the custom
name and category automatically.

Matching is loose on purpose: names are normalized (lower-cased, no
punctuation, single spaces) and a mapping applies when either name
contains the other. Bank screenshots often truncate or decorate names.
"""

import json
import re
from typing import Optional

from pydantic import ValidationError

from cleanwallet.logger import get_logger
from cleanwallet.models.finance import TransactionMapping
from cleanwallet.models.scan import MappingResult
from cleanwallet.services.storage import (
    MAPPINGS_KEY,
    CorruptDataError,
    KeyValueStore,
)

logger = get_logger(__name__)


_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_transaction_name(name: Optional[str]) -> str:
    """Normalize a transaction name for matching."""
    if not name:
        return ""
    normalized = _NON_WORD.sub("", name.lower().strip())
    return _WHITESPACE.sub(" ", normalized).strip()


class TransactionMappingStore:
    """
    Persists learned mappings as one JSON list under
    `transaction_name_mappings`.
    """

    def __init__(self, storage: KeyValueStore):
        self._storage = storage

    async def get_mappings(self) -> list[TransactionMapping]:
        """
        Load all mappings.

        Raises:
            CorruptDataError: If the stored value is not a mapping list
            StorageError: If the backend cannot be read
        """
        raw = await self._storage.get_item(MAPPINGS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise CorruptDataError(MAPPINGS_KEY, "expected a JSON list")
            return [TransactionMapping.model_validate(item) for item in data]
        except (json.JSONDecodeError, ValidationError) as e:
            raise CorruptDataError(MAPPINGS_KEY, str(e))

    async def save_mapping(
        self,
        original_name: str,
        custom_name: str,
        custom_category: str,
    ) -> bool:
        """
        Upsert a mapping keyed by the normalized original name.

        Returns:
            False if any part is blank, True once stored
        """
        normalized = normalize_transaction_name(original_name)
        custom_name = (custom_name or "").strip()
        custom_category = (custom_category or "").strip()
        if not normalized or not custom_name or not custom_category:
            logger.warning("mapping_rejected", reason="blank field")
            return False

        mappings = await self.get_mappings()
        new_mapping = TransactionMapping(
            original_name=normalized,
            custom_name=custom_name,
            custom_category=custom_category,
        )

        for index, existing in enumerate(mappings):
            if normalize_transaction_name(existing.original_name) == normalized:
                mappings[index] = new_mapping
                break
        else:
            mappings.append(new_mapping)

        await self._storage.set_item(
            MAPPINGS_KEY,
            json.dumps([m.to_storage() for m in mappings]),
        )
        logger.info(
            "mapping_saved",
            original_name=normalized,
            custom_category=custom_category,
            mapping_count=len(mappings),
        )
        return True

    async def find_mapping(self, name: str) -> Optional[TransactionMapping]:
        """Find the first mapping matching `name`, exactly or by containment."""
        normalized = normalize_transaction_name(name)
        if not normalized:
            return None

        for mapping in await self.get_mappings():
            candidate = normalize_transaction_name(mapping.original_name)
            if not candidate:
                continue
            if (
                normalized == candidate
                or candidate in normalized
                or normalized in candidate
            ):
                return mapping
        return None

    async def apply_mapping(self, name: str, category: str) -> MappingResult:
        """Rename and re-categorize `name` if a mapping matches."""
        mapping = await self.find_mapping(name)
        if mapping is None:
            return MappingResult(name=name, category=category, was_modified=False)

        logger.debug(
            "mapping_applied",
            mapped_category=mapping.custom_category,
        )
        return MappingResult(
            name=mapping.custom_name,
            category=mapping.custom_category,
            was_modified=True,
        )

    async def clear(self) -> None:
        """Forget every learned mapping."""
        await self._storage.remove_item(MAPPINGS_KEY)
        logger.info("mappings_cleared")
