"""Tests for the key-value storage backends."""

import asyncio
import json

import pytest

from cleanwallet.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    StorageError,
)


class TestJsonFileKeyValueStore:
    """Tests for the on-disk JSON document store."""

    def test_missing_file_is_empty(self, tmp_path):
        """A store with no file yet has no keys."""
        kv = JsonFileKeyValueStore(tmp_path / "data" / "storage.json")
        assert asyncio.run(kv.get_item("anything")) is None
        assert asyncio.run(kv.get_all_keys()) == []

    def test_set_creates_directory_and_file(self, tmp_path):
        """First write creates the directory and the document."""
        path = tmp_path / "nested" / "dir" / "storage.json"
        kv = JsonFileKeyValueStore(path)
        asyncio.run(kv.set_item("finance_tracker_cards", "[]"))

        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == {"finance_tracker_cards": "[]"}

    def test_values_persist_across_instances(self, tmp_path):
        """A new instance reads what an earlier one wrote."""
        path = tmp_path / "storage.json"
        asyncio.run(JsonFileKeyValueStore(path).set_item("k", '{"a": 1}'))
        assert asyncio.run(JsonFileKeyValueStore(path).get_item("k")) == '{"a": 1}'

    def test_remove_item(self, tmp_path):
        """Removing keys, including absent ones."""
        kv = JsonFileKeyValueStore(tmp_path / "storage.json")

        async def scenario():
            await kv.set_item("a", "1")
            await kv.set_item("b", "2")
            await kv.remove_item("a")
            await kv.remove_item("missing")
            return await kv.get_all_keys()

        assert asyncio.run(scenario()) == ["b"]

    def test_no_temp_files_left_behind(self, tmp_path):
        """Atomic writes clean up after themselves."""
        kv = JsonFileKeyValueStore(tmp_path / "storage.json")
        asyncio.run(kv.set_item("a", "1"))
        assert [p.name for p in tmp_path.iterdir()] == ["storage.json"]

    def test_invalid_document_raises(self, tmp_path):
        """A corrupt document is reported, not silently replaced."""
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(JsonFileKeyValueStore(path).get_item("a"))

    def test_non_object_document_raises(self, tmp_path):
        """The document must be a JSON object."""
        path = tmp_path / "storage.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(JsonFileKeyValueStore(path).get_item("a"))


class TestInMemoryKeyValueStore:
    """Tests for the dict-backed store."""

    def test_round_trip(self):
        """Test set, get and remove."""
        kv = InMemoryKeyValueStore({"x": "1"})

        async def scenario():
            await kv.set_item("y", "2")
            await kv.remove_item("x")
            return await kv.get_item("x"), await kv.get_item("y")

        assert asyncio.run(scenario()) == (None, "2")
