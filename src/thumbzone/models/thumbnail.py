"""
Thumbnail record model for thumbzone application.

A ThumbnailRecord is the unit that is stored in the document store and shown
in the gallery grid. The image itself travels inline as a data URI.
"""

import base64
import binascii
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum

from thumbzone.ui.handlers.error import EncodingError, ValidationError

# Filter value meaning "every category". Never stored.
ALL_CATEGORIES = "All"

MIN_TITLE_LENGTH = 3


class Category(Enum):
    """Categories a thumbnail can be filed under."""

    GAMING = "Gaming"
    VLOG = "Vlog"
    TUTORIAL = "Tutorial"
    LIFESTYLE = "Lifestyle"
    TECH = "Tech"
    COOKING = "Cooking"
    EDUCATION = "Education"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """
        Convert a stored or submitted value to a Category.

        Raises:
            ValidationError: If the value is not one of the known categories
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"Unknown category: {value!r}",
                code="invalid_category",
                user_message="Please select a category.",
                field="category",
            ) from None

    @classmethod
    def labels(cls) -> list[str]:
        """Return category labels in display order."""
        return [category.value for category in cls]


def filter_options() -> list[str]:
    """Return the category filter choices, starting with the "All" sentinel."""
    return [ALL_CATEGORIES, *Category.labels()]


@dataclass(frozen=True)
class ThumbnailRecord:
    """
    Represents one thumbnail in the gallery.

    ``id`` is assigned by the document store and ``created_at`` by the client
    just before submission; neither changes afterwards. ``image_data`` holds a
    ``data:<mime>;base64,<payload>`` string.
    """

    id: str
    title: str
    category: Category
    image_data: str
    created_at: datetime

    def to_document(self) -> dict:
        """
        Convert to the document body stored in the thumbnails collection.

        Returns:
            Dictionary keyed by the store field names (the id is not part of the body)
        """
        return {
            "title": self.title,
            "category": self.category.value,
            "imageUrl": self.image_data,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, record_id: str, document: dict) -> "ThumbnailRecord":
        """
        Create a ThumbnailRecord from a stored document.

        Args:
            record_id: Document id assigned by the store
            document: Document body as returned by the store

        Returns:
            ThumbnailRecord instance
        """
        created_at = document["createdAt"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if not isinstance(created_at, datetime):
            raise ValueError(f"Invalid createdAt value: {created_at!r}")
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)

        return cls(
            id=record_id,
            title=document["title"],
            category=Category.parse(document["category"]),
            image_data=document["imageUrl"],
            created_at=created_at,
        )

    def with_details(self, title: str, category: Category) -> "ThumbnailRecord":
        """Return a copy with a new title and category; image and timestamps are kept."""
        return replace(self, title=title, category=category)

    @property
    def mime_type(self) -> str:
        """MIME type embedded in the image data URI."""
        return parse_data_uri(self.image_data)[0]

    def decode_image(self) -> bytes:
        """Decode the inline image back to raw bytes."""
        return parse_data_uri(self.image_data)[1]

    @property
    def download_filename(self) -> str:
        """File name offered by the download action."""
        extension = self.mime_type.split("/")[-1].split("+")[0]
        if extension == "jpeg":
            extension = "jpg"
        stem = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in self.title.strip()) or "thumbnail"
        return f"{stem}.{extension}"


def parse_data_uri(data_uri: str) -> tuple[str, bytes]:
    """
    Split a base64 data URI into its MIME type and decoded bytes.

    Raises:
        EncodingError: If the string is not a base64 data URI
    """
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise EncodingError("Image data is not a base64 data URI", code="invalid_data_uri")

    mime_type = header[len("data:") : -len(";base64")] or "application/octet-stream"
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(
            f"Image data could not be decoded: {e}", code="invalid_base64", original_exception=e
        ) from e
