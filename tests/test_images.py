"""Tests for image preparation."""

import base64

import pytest
from PIL import Image

from cleanwallet.scanning import (
    ImageReadError,
    ScanError,
    UnsupportedImageError,
    prepare_image_base64,
    prepare_image_bytes,
)
from tests.conftest import make_png


class TestPrepareImage:
    """Tests for reading and validating images."""

    def test_prepare_png_bytes(self, app_settings):
        """Valid images are encoded with their metadata."""
        data = make_png(40, 20)
        image = prepare_image_bytes(data, "shot.png", app_settings=app_settings)

        assert image.mime_type == "image/png"
        assert (image.width, image.height) == (40, 20)
        assert image.size_bytes == len(data)
        assert base64.b64decode(image.base64) == data
        assert image.data_url.startswith("data:image/png;base64,")

    def test_prepare_jpeg_file(self, tmp_path, app_settings):
        """Files are read from disk; JPEG maps to image/jpeg."""
        path = tmp_path / "receipt.jpg"
        path.write_bytes(make_png(fmt="JPEG"))
        image = prepare_image_base64(path, app_settings=app_settings)
        assert image.mime_type == "image/jpeg"
        assert image.source == str(path)

    def test_missing_file(self, tmp_path, app_settings):
        """Missing files raise ImageReadError."""
        with pytest.raises(ImageReadError):
            prepare_image_base64(tmp_path / "nope.png", app_settings=app_settings)

    def test_not_an_image(self, app_settings):
        """Arbitrary bytes are rejected."""
        with pytest.raises(ImageReadError):
            prepare_image_bytes(b"%PDF-1.4 not an image", "doc.pdf", app_settings=app_settings)

    def test_empty_bytes(self, app_settings):
        """Empty uploads are rejected."""
        with pytest.raises(ImageReadError):
            prepare_image_bytes(b"", "empty.png", app_settings=app_settings)

    def test_unsupported_format(self, app_settings):
        """Formats outside the configured list are rejected."""
        with pytest.raises(UnsupportedImageError):
            prepare_image_bytes(make_png(fmt="GIF"), "anim.gif", app_settings=app_settings)

    def test_too_large(self, app_settings):
        """Images over the size limit are rejected."""
        too_big = b"\x89PNG" + b"0" * (app_settings.max_upload_size_bytes + 1)
        with pytest.raises(UnsupportedImageError):
            prepare_image_bytes(too_big, "huge.png", app_settings=app_settings)

    def test_decompression_bomb_rejected(self, app_settings, monkeypatch):
        """Images over the pixel limit are unsupported, not a crash."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
        with pytest.raises(UnsupportedImageError, match="too many pixels"):
            prepare_image_bytes(make_png(40, 20), "bomb.png", app_settings=app_settings)

    def test_errors_share_base(self):
        """Image errors are scan errors."""
        assert issubclass(ImageReadError, ScanError)
        assert issubclass(UnsupportedImageError, ScanError)
