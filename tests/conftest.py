"""
Shared fixtures for CleanWallet tests.

No test touches the network or the user's data directory: storage is
in-memory or under tmp_path, and HTTP goes through httpx.MockTransport
or a fake vision client.
"""

import asyncio
import json
from io import BytesIO

import pytest
from PIL import Image

from cleanwallet.config import AppSettings, VisionSettings
from cleanwallet.models import PreparedImage, VisionResponse
from cleanwallet.scanning import ReceiptScanner, TransactionMappingStore
from cleanwallet.services.storage import InMemoryKeyValueStore
from cleanwallet.store import FinanceStore


TEST_API_KEY = "sk-test-0123456789abcdefghijklmnop"


def chat_body(content: str) -> str:
    """A chat-completion response body carrying `content`."""
    return json.dumps({
        "id": "chatcmpl-test",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}}
        ],
    })


def make_png(width: int = 32, height: int = 16, fmt: str = "PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(255, 255, 255)).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeVisionClient:
    """Returns queued responses and records what it was asked."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def complete(self, image, categories=None):
        self.calls.append((image.source, list(categories or [])))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def ok_response(content: str) -> VisionResponse:
    return VisionResponse(status=200, ok=True, text=chat_body(content))


@pytest.fixture
def app_settings():
    return AppSettings(
        max_scan_images=7,
        max_upload_size_mb=1,
        supported_image_formats="jpg,jpeg,png,webp",
        default_category="Others",
    )


@pytest.fixture
def vision_settings():
    return VisionSettings(api_key=TEST_API_KEY, base_url="https://vision.test/v1/")


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(storage):
    finance_store = FinanceStore(storage)
    asyncio.run(finance_store.initialize())
    return finance_store


@pytest.fixture
def mappings(storage):
    return TransactionMappingStore(storage)


@pytest.fixture
def prepared_image():
    return PreparedImage(
        source="receipt.png",
        base64="iVBORw0KGgo=",
        mime_type="image/png",
        width=32,
        height=16,
        size_bytes=8,
    )


@pytest.fixture
def make_scanner(store, mappings, app_settings):
    """Build a scanner around a fake client with the given responses."""

    def _make(responses):
        client = FakeVisionClient(responses)
        return ReceiptScanner(store, mappings, client, app_settings=app_settings), client

    return _make
