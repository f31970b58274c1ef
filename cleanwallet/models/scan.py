"""
Receipt Scanning Models

Data passed between the scanning steps:
image preparation -> vision request -> response parsing -> review.

Nothing here is persisted. Scanned rows only become Transactions when
the user saves the ones they selected.
"""

from typing import Optional

from pydantic import BaseModel, Field

from cleanwallet.models.finance import PartialTransaction


class PreparedImage(BaseModel):
    """An image read from disk or an upload, ready to be sent."""

    source: str = Field(..., description="Path or original filename")
    base64: str = Field(..., repr=False)
    mime_type: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    size_bytes: int = Field(ge=0)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class VisionResponse(BaseModel):
    """Raw HTTP answer of the chat-completion endpoint."""

    status: int
    ok: bool
    text: str = Field(default="", repr=False)


class MappingResult(BaseModel):
    """Outcome of applying a learned name mapping."""

    name: str
    category: str
    was_modified: bool = False


class ImageScanError(BaseModel):
    """A failed image in a batch scan."""

    index: int = Field(ge=0)
    source: str
    message: str


class ScanSummary(BaseModel):
    """Result of scanning a batch of images."""

    total_images: int = Field(ge=0)
    transactions: list[PartialTransaction] = Field(default_factory=list)
    errors: list[ImageScanError] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return self.total_images - len(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def category_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for transaction in self.transactions:
            key = transaction.category or "Uncategorized"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def user_message(self) -> str:
        """Summary shown to the user once the scan finishes."""
        lines = [
            f"Processed {self.success_count} of {self.total_images} images.",
            f"Transactions extracted: {len(self.transactions)}",
        ]
        if self.errors:
            lines.append(f"Could not process {self.error_count} images.")
        return "\n".join(lines)


class ScanProgress(BaseModel):
    """Progress update emitted while a batch is scanned."""

    current: int = Field(ge=0)
    total: int = Field(ge=0)
    percent: float = Field(ge=0.0, le=100.0)
    source: Optional[str] = None
