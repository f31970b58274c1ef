"""
JSON File Key-Value Storage

The whole store is one JSON object on disk: {key: string value}.
Every write rewrites the file through a temp file and os.replace, so a
crash mid-write leaves the previous document intact.

Fine for a personal tracker holding a few thousand transactions; the
file is small and read once at startup.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from cleanwallet.logger import get_logger
from cleanwallet.services.storage.interface import (
    KeyValueStore,
    StorageError,
)

logger = get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store persisted as a single JSON document.

    A missing file is an empty store. The parent directory is created
    on first write.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not raw.strip():
            return {}

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Storage file {self._path} is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise StorageError(f"Storage file {self._path} must hold a JSON object")
        return document

    def _write_document(self, document: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    async def get_item(self, key: str) -> Optional[str]:
        value = self._read_document().get(key)
        if value is not None and not isinstance(value, str):
            # Values are always stored as strings
            value = json.dumps(value)
        return value

    async def set_item(self, key: str, value: str) -> None:
        document = self._read_document()
        document[key] = value
        self._write_document(document)
        logger.debug("storage_item_written", key=key, size=len(value))

    async def remove_item(self, key: str) -> None:
        document = self._read_document()
        if key in document:
            del document[key]
            self._write_document(document)
            logger.debug("storage_item_removed", key=key)

    async def get_all_keys(self) -> list[str]:
        return list(self._read_document().keys())
