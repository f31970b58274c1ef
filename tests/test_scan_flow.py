"""Tests for the receipt scan flow, from model answer to saved rows."""

import asyncio
import json

import pytest
from PIL import Image

from cleanwallet.models import PartialTransaction, VisionResponse
from cleanwallet.scanning import (
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
from cleanwallet.services.vision import VisionAPIError, VisionRequestError
from tests.conftest import TEST_API_KEY, make_png, ok_response


def rows_json(*rows) -> str:
    return json.dumps(list(rows))


UBER = {"date": "2025-05-26", "name": "UBER *TRIP", "mount": 5200, "category": "Transportation"}
SALARY = {"date": "2025-05-25", "name": "Traspaso De: ACME", "mount": -900000, "category": "Income"}


class TestProcessImage:
    """Tests for extracting one image."""

    def test_extracts_rows(self, make_scanner, prepared_image, store):
        """Rows come back selected, tagged with the card, and the store's categories are sent."""
        scanner, client = make_scanner([ok_response(rows_json(UBER, SALARY))])
        rows = asyncio.run(scanner.process_image(prepared_image, card_id=4))

        assert [r.name for r in rows] == ["UBER *TRIP", "Traspaso De: ACME"]
        assert [r.mount for r in rows] == [5200, -900000]
        assert all(r.selected and r.card_id == 4 for r in rows)
        assert rows[0].original_name == "UBER *TRIP"
        assert client.calls == [("receipt.png", store.category_names())]

    def test_unknown_category_falls_back(self, make_scanner, prepared_image):
        """Categories the store does not know become the default."""
        scanner, _ = make_scanner([ok_response(rows_json(dict(UBER, category="Rideshare")))])
        [row] = asyncio.run(scanner.process_image(prepared_image))
        assert row.category == "Others"

    def test_missing_category_is_guessed(self, make_scanner, prepared_image):
        """Rows without a category get a keyword guess."""
        row_in = {"date": "2025-05-26", "name": "COPEC 44", "mount": 30000}
        scanner, _ = make_scanner([ok_response(rows_json(row_in))])
        [row] = asyncio.run(scanner.process_image(prepared_image))
        assert row.category == "Transportation"

    def test_guess_outside_store_falls_back(self, make_scanner, prepared_image, store):
        """A guess naming a deleted category becomes the default."""
        transportation = store.get_category_by_name("Transportation")
        asyncio.run(store.delete_category(transportation.id))

        row_in = {"date": "2025-05-26", "name": "COPEC 44", "mount": 30000}
        scanner, _ = make_scanner([ok_response(rows_json(row_in))])
        [row] = asyncio.run(scanner.process_image(prepared_image))
        assert row.category == "Others"
        assert row.suggested_category == "Others"

    def test_learned_mapping_applied(self, make_scanner, prepared_image, mappings):
        """Known names are renamed; the extracted name is kept."""
        asyncio.run(mappings.save_mapping("uber trip", "Uber", "Transportation"))
        scanner, _ = make_scanner([ok_response(rows_json(dict(UBER, category="Others")))])

        [row] = asyncio.run(scanner.process_image(prepared_image))
        assert row.name == "Uber"
        assert row.category == "Transportation"
        assert row.original_name == "UBER *TRIP"
        assert not row.is_edited

    def test_prepares_uploads(self, make_scanner):
        """(filename, bytes) uploads are validated and encoded."""
        scanner, client = make_scanner([ok_response(rows_json(UBER))])
        asyncio.run(scanner.process_image(("shot.png", make_png())))
        assert client.calls[0][0] == "shot.png"

    def test_error_status(self, make_scanner, prepared_image):
        """Non-2xx answers raise with status and body."""
        scanner, _ = make_scanner([VisionResponse(status=429, ok=False, text="rate limited")])
        with pytest.raises(VisionAPIError) as exc_info:
            asyncio.run(scanner.process_image(prepared_image))
        assert exc_info.value.status == 429
        assert "rate limited" in str(exc_info.value)

    def test_empty_answer(self, make_scanner, prepared_image):
        """An empty array is an extraction failure."""
        scanner, _ = make_scanner([ok_response("[]")])
        with pytest.raises(EmptyExtractionError):
            asyncio.run(scanner.process_image(prepared_image))

    def test_requires_client(self, store, mappings, app_settings, prepared_image):
        """Without a client the user must enter a key."""
        scanner = ReceiptScanner(store, mappings, app_settings=app_settings)
        assert not scanner.has_vision_client
        with pytest.raises(ApiKeyMissingError):
            asyncio.run(scanner.process_image(prepared_image))


class TestScanAll:
    """Tests for batch scanning."""

    def test_batch_with_failures(self, make_scanner, prepared_image):
        """Failed images are recorded; the rest still count."""
        second = prepared_image.model_copy(update={"source": "second.png"})
        third = prepared_image.model_copy(update={"source": "third.png"})
        scanner, _ = make_scanner([
            VisionResponse(status=500, ok=False, text="server error"),
            ok_response(rows_json(UBER, SALARY)),
            VisionRequestError("Vision request timed out"),
        ])
        updates = []

        summary = asyncio.run(scanner.scan_all(
            [prepared_image, second, third], card_id=1, progress=updates.append,
        ))

        assert summary.total_images == 3
        assert summary.success_count == 1
        assert [e.source for e in summary.errors] == ["receipt.png", "third.png"]
        assert [e.index for e in summary.errors] == [0, 2]
        assert len(summary.transactions) == 2
        assert summary.category_counts() == {"Transportation": 1, "Income": 1}
        assert "Could not process 2 images." in summary.user_message()

        assert [round(u.percent) for u in updates] == [0, 33, 67, 100]
        assert updates[1].source == "second.png"

    def test_unreadable_images_do_not_stop_batch(self, make_scanner, prepared_image, monkeypatch):
        """Oversized images and malformed answers are recorded per image."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        second = prepared_image.model_copy(update={"source": "second.png"})
        scanner, client = make_scanner([
            VisionResponse(status=200, ok=True, text=json.dumps({"choices": [{"message": "x"}]})),
            ok_response(rows_json(UBER)),
        ])

        summary = asyncio.run(scanner.scan_all(
            [("bomb.png", make_png(40, 20)), prepared_image, second],
        ))

        assert [e.source for e in summary.errors] == ["bomb.png", "receipt.png"]
        assert "too many pixels" in summary.errors[0].message
        assert [r.name for r in summary.transactions] == ["UBER *TRIP"]
        assert [call[0] for call in client.calls] == ["receipt.png", "second.png"]

    def test_all_images_fail(self, make_scanner, prepared_image):
        """No rows at all is reported with the first error."""
        scanner, _ = make_scanner([ok_response("I cannot read this")])
        with pytest.raises(EmptyExtractionError, match="could not extract JSON"):
            asyncio.run(scanner.scan_all([prepared_image]))

    def test_no_images(self, make_scanner):
        """An empty batch is rejected."""
        scanner, _ = make_scanner([])
        with pytest.raises(NoImagesError):
            asyncio.run(scanner.scan_all([]))

    def test_too_many_images(self, make_scanner, prepared_image):
        """Batches are limited to the configured size."""
        scanner, client = make_scanner([])
        with pytest.raises(TooManyImagesError) as exc_info:
            asyncio.run(scanner.scan_all([prepared_image] * 8))
        assert (exc_info.value.count, exc_info.value.limit) == (8, 7)
        assert client.calls == []

    def test_missing_client(self, store, mappings, app_settings, prepared_image):
        """Batches also require a client."""
        scanner = ReceiptScanner(store, mappings, app_settings=app_settings)
        with pytest.raises(ApiKeyMissingError):
            asyncio.run(scanner.scan_all([prepared_image]))


class TestSaveSelected:
    """Tests for saving reviewed rows."""

    def scanned(self, name, category, **extra):
        return PartialTransaction(
            date="2025-05-26",
            name=name,
            category=category,
            mount=10,
            original_name=extra.pop("original_name", name),
            suggested_name=name,
            suggested_category=category,
            **extra,
        )

    def test_saves_only_selected(self, make_scanner, store):
        """Deselected rows are skipped; the card id is applied."""
        scanner, _ = make_scanner([])
        rows = [
            self.scanned("Lunch", "Food"),
            self.scanned("Coffee", "Food", selected=False),
        ]
        ids = asyncio.run(scanner.save_selected(rows, card_id=2))

        assert len(ids) == 1
        saved = store.get_transaction(ids[0])
        assert saved.name == "Lunch"
        assert saved.card_id == 2

    def test_edits_are_learned(self, make_scanner, mappings):
        """Renamed rows teach a mapping from the extracted name."""
        scanner, _ = make_scanner([])
        row = self.scanned("UBER *TRIP", "Transportation").model_copy(
            update={"name": "Uber", "category": "Transportation"}
        )
        asyncio.run(scanner.save_selected([row]))

        [mapping] = asyncio.run(mappings.get_mappings())
        assert mapping.original_name == "uber trip"
        assert mapping.custom_name == "Uber"

    def test_unedited_rows_not_learned(self, make_scanner, mappings):
        """Rows saved as proposed teach nothing."""
        scanner, _ = make_scanner([])
        asyncio.run(scanner.save_selected([self.scanned("Lunch", "Food")]))
        assert asyncio.run(mappings.get_mappings()) == []

    def test_nothing_selected(self, make_scanner):
        """Saving with no selection is rejected."""
        scanner, _ = make_scanner([])
        rows = [self.scanned("Lunch", "Food", selected=False)]
        with pytest.raises(NoSelectionError):
            asyncio.run(scanner.save_selected(rows))


class TestReviewHelpers:
    """Tests for selection toggles and key validation."""

    def test_toggle_transaction(self):
        """Only the given row flips; the input is untouched."""
        rows = [PartialTransaction(name="A"), PartialTransaction(name="B")]
        toggled = toggle_transaction(rows, 1)
        assert [r.selected for r in toggled] == [True, False]
        assert rows[1].selected is True

    def test_toggle_select_all(self):
        """All rows follow the flag."""
        rows = [PartialTransaction(name="A", selected=False), PartialTransaction(name="B")]
        assert all(r.selected for r in toggle_select_all(rows, True))
        assert not any(r.selected for r in toggle_select_all(rows, False))

    def test_validate_api_key(self):
        """Keys are stripped and must be at least 20 characters."""
        assert validate_api_key(f"  {TEST_API_KEY} ") == TEST_API_KEY
        with pytest.raises(ValueError, match="valid API key"):
            validate_api_key("sk-short")
        with pytest.raises(ValueError):
            validate_api_key(None)
