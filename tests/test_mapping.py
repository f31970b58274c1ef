"""Tests for learned transaction name mappings."""

import asyncio
import json

import pytest

from cleanwallet.scanning import TransactionMappingStore, normalize_transaction_name
from cleanwallet.services.storage import MAPPINGS_KEY, CorruptDataError, InMemoryKeyValueStore


class TestNormalize:
    """Tests for name normalization."""

    @pytest.mark.parametrize("name, expected", [
        ("  UBER *TRIP  ", "uber trip"),
        ("Apple.com/Bill", "applecombill"),
        ("Pago:   Tarjeta\tVisa", "pago tarjeta visa"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, name, expected):
        """Lower-case, no punctuation, single spaces."""
        assert normalize_transaction_name(name) == expected


class TestMappingStore:
    """Tests for saving and applying mappings."""

    def test_save_and_find(self, mappings, storage):
        """Mappings are stored under their normalized name."""
        assert asyncio.run(mappings.save_mapping("UBER *TRIP", "Uber", "Transportation")) is True

        stored = json.loads(asyncio.run(storage.get_item(MAPPINGS_KEY)))
        assert stored == [{"originalName": "uber trip", "customName": "Uber", "customCategory": "Transportation"}]

        found = asyncio.run(mappings.find_mapping("uber trip"))
        assert found.custom_name == "Uber"

    def test_save_upserts(self, mappings):
        """Saving the same name twice replaces the mapping."""
        asyncio.run(mappings.save_mapping("Uber Trip", "Uber", "Transportation"))
        asyncio.run(mappings.save_mapping("UBER TRIP!", "Uber rides", "Transportation"))
        all_mappings = asyncio.run(mappings.get_mappings())
        assert len(all_mappings) == 1
        assert all_mappings[0].custom_name == "Uber rides"

    def test_blank_fields_rejected(self, mappings):
        """Blank parts are not stored."""
        assert asyncio.run(mappings.save_mapping("***", "Uber", "Transportation")) is False
        assert asyncio.run(mappings.save_mapping("Uber", " ", "Transportation")) is False
        assert asyncio.run(mappings.get_mappings()) == []

    def test_containment_match(self, mappings):
        """Either name may contain the other."""
        asyncio.run(mappings.save_mapping("netflix", "Netflix", "Life and Entertainment"))
        assert asyncio.run(mappings.find_mapping("NETFLIX.COM 12345")) is not None
        assert asyncio.run(mappings.find_mapping("net")) is not None
        assert asyncio.run(mappings.find_mapping("spotify")) is None
        assert asyncio.run(mappings.find_mapping("")) is None

    def test_apply_mapping(self, mappings):
        """Matches rename and re-categorize; misses pass through."""
        asyncio.run(mappings.save_mapping("copec", "Gas station", "Transportation"))

        hit = asyncio.run(mappings.apply_mapping("COPEC 123", "Others"))
        assert (hit.name, hit.category, hit.was_modified) == ("Gas station", "Transportation", True)

        miss = asyncio.run(mappings.apply_mapping("Lider", "Food"))
        assert (miss.name, miss.category, miss.was_modified) == ("Lider", "Food", False)

    def test_clear(self, mappings, storage):
        """Clearing removes the stored key."""
        asyncio.run(mappings.save_mapping("copec", "Gas", "Transportation"))
        asyncio.run(mappings.clear())
        assert asyncio.run(storage.get_item(MAPPINGS_KEY)) is None
        assert asyncio.run(mappings.get_mappings()) == []

    def test_corrupt_mappings(self):
        """Undecodable mapping documents are reported."""
        store = TransactionMappingStore(InMemoryKeyValueStore({MAPPINGS_KEY: '{"a": 1}'}))
        with pytest.raises(CorruptDataError):
            asyncio.run(store.get_mappings())
