"""
Image Preparation for Receipt Scanning

Turns a picked file or an uploaded blob into a base64 payload the vision
endpoint accepts.

Images are checked with Pillow before anything is sent:
- the bytes must decode as an image
- the format must be one of the configured formats
- the size must be within the upload limit

Nothing is resized or enhanced. What the user picked is what is sent.
"""

import base64
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from cleanwallet.config import AppSettings, get_settings
from cleanwallet.logger import get_logger
from cleanwallet.models.scan import PreparedImage

logger = get_logger(__name__)


# Pillow format name -> (canonical extension, MIME type)
PIL_FORMATS = {
    "JPEG": ("jpeg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
    "GIF": ("gif", "image/gif"),
    "BMP": ("bmp", "image/bmp"),
    "TIFF": ("tiff", "image/tiff"),
}


class ScanError(Exception):
    """Base exception for receipt scanning errors."""
    pass


class ImageReadError(ScanError):
    """The image could not be read (missing file, permission, corrupt data)."""
    pass


class UnsupportedImageError(ScanError):
    """The image is readable but not acceptable (format or size)."""
    pass


def _format_allowed(extension: str, allowed: list[str]) -> bool:
    if extension in allowed:
        return True
    # "jpg" and "jpeg" name the same format
    return extension == "jpeg" and "jpg" in allowed


def prepare_image_bytes(
    data: bytes,
    filename: str,
    app_settings: Optional[AppSettings] = None,
) -> PreparedImage:
    """
    Validate image bytes and encode them for the vision request.

    Args:
        data: Raw file contents
        filename: Original name, used in logs and error reports
        app_settings: Overrides the configured format/size limits

    Raises:
        ImageReadError: If the bytes are empty or not an image
        UnsupportedImageError: If the format or size is not allowed
    """
    settings = app_settings or get_settings().app

    if not data:
        raise ImageReadError(f"Image '{filename}' is empty")

    if len(data) > settings.max_upload_size_bytes:
        raise UnsupportedImageError(
            f"Image '{filename}' is {len(data) / (1024 * 1024):.1f} MB; "
            f"the limit is {settings.max_upload_size_mb} MB"
        )

    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
        # verify() leaves the image unusable, so reopen for metadata
        with Image.open(BytesIO(data)) as img:
            pil_format = img.format
            width, height = img.size
    except Image.DecompressionBombError:
        raise UnsupportedImageError(
            f"Image '{filename}' has too many pixels to be processed safely"
        )
    except UnidentifiedImageError:
        raise ImageReadError(f"File '{filename}' is not a recognizable image")
    except (OSError, SyntaxError, ValueError) as e:
        raise ImageReadError(f"Image '{filename}' is corrupt: {e}")

    extension, mime_type = PIL_FORMATS.get(pil_format or "", (None, None))
    if extension is None or not _format_allowed(extension, settings.supported_formats_list):
        raise UnsupportedImageError(
            f"Image format {pil_format or 'unknown'} is not supported. "
            f"Supported formats: {settings.supported_image_formats}"
        )

    logger.debug(
        "image_prepared",
        source=filename,
        format=pil_format,
        width=width,
        height=height,
        size_bytes=len(data),
    )

    return PreparedImage(
        source=filename,
        base64=base64.b64encode(data).decode("ascii"),
        mime_type=mime_type,
        width=width,
        height=height,
        size_bytes=len(data),
    )


def prepare_image_base64(
    path: Union[str, Path],
    app_settings: Optional[AppSettings] = None,
) -> PreparedImage:
    """
    Read an image file and encode it for the vision request.

    Raises:
        ImageReadError: If the file cannot be read
        UnsupportedImageError: If the format or size is not allowed
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise ImageReadError(f"Image not found: {path}")
    except PermissionError:
        raise ImageReadError(f"Permission denied reading image: {path}")
    except OSError as e:
        raise ImageReadError(f"Could not read image {path}: {e}")

    return prepare_image_bytes(data, str(path), app_settings=app_settings)
