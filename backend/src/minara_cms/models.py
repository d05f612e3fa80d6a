from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel


class Envelope(BaseModel):
    """Normalized content API response.

    The API answers either with a raw array, ``{"data": [...]}``,
    ``{"data": {...}}`` or a bare object; ``shape`` records which.
    """
    shape: Literal["array", "wrapped", "object", "empty"]
    items: list[dict[str, Any]]

    def first(self) -> dict[str, Any] | None:
        return self.items[0] if self.items else None


class Blob(BaseModel):
    """Binary attachment read back from storage."""
    data: bytes
    content_type: str
    filename: str | None = None


class Upload(BaseModel):
    """Binary attachment received on a write request."""
    data: bytes
    filename: str | None = None
    content_type: str | None = None


class GalleryImage(BaseModel):
    id: int
    image_name: str | None = None
    image_type: str | None = None


class Gallery(BaseModel):
    id: int
    title: str
    description: str | None = None
    event_date: date | None = None
    slug: str | None = None
    created_on: datetime | None = None
    images: list[GalleryImage] = []


class CountSummary(BaseModel):
    writer_count: int = 0
    translator_count: int = 0
    book_count: int = 0
    article_count: int = 0
    question_count: int = 0
    feedback_count: int = 0
