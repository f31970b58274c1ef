"""Vision extraction services package."""

from cleanwallet.services.vision.openai_client import (
    VisionAPIError,
    VisionClient,
    VisionError,
    VisionRequestError,
    VisionResponseFormatError,
    build_prompt,
    extract_message_content,
)

__all__ = [
    "VisionAPIError",
    "VisionClient",
    "VisionError",
    "VisionRequestError",
    "VisionResponseFormatError",
    "build_prompt",
    "extract_message_content",
]
