"""
Size gate and form validation for thumbnail uploads.

An upload passes two ceilings before anything is written:

1. The raw file size is checked against the upload ceiling (0.7 MiB by
   default). This only avoids encoding files that cannot possibly fit.
2. The encoded data URI is measured in UTF-8 bytes and checked against the
   document ceiling (1,048,487 bytes by default). Base64 inflates the payload
   by about a third, so this second check is the one that decides.
"""

from typing import Any

from thumbzone.config import get_max_image_data_bytes, get_max_upload_size_bytes
from thumbzone.models.thumbnail import ALL_CATEGORIES, MIN_TITLE_LENGTH, Category
from thumbzone.ui.handlers.error import PayloadTooLargeError, ValidationError
from ..logging_config import get_logger
from .encoding import encode_image_file

logger = get_logger(__name__)


def encoded_byte_length(text: str) -> int:
    """Return the UTF-8 byte length of ``text`` (not its character count)."""
    return len(text.encode("utf-8"))


def _file_size(file: Any) -> int | None:
    """Best-effort raw size of a file-like object without reading it."""
    size = getattr(file, "size", None)
    if isinstance(size, int):
        return size
    getbuffer = getattr(file, "getbuffer", None)
    if callable(getbuffer):
        return getbuffer().nbytes
    return None


class SizeGate:
    """Two-stage size check applied before any store write."""

    def __init__(self, max_file_size: int | None = None, max_encoded_size: int | None = None) -> None:
        """
        Args:
            max_file_size: Pre-encoding ceiling in bytes (defaults to MAX_UPLOAD_SIZE_MB)
            max_encoded_size: Post-encoding ceiling in bytes (defaults to MAX_IMAGE_DATA_BYTES)
        """
        self.max_file_size = max_file_size if max_file_size is not None else get_max_upload_size_bytes()
        self.max_encoded_size = max_encoded_size if max_encoded_size is not None else get_max_image_data_bytes()

    def check_file_size(self, size: int, filename: str | None = None) -> None:
        """
        Reject a raw file that is already over the upload ceiling.

        Raises:
            ValidationError: If ``size`` exceeds the pre-encoding ceiling
        """
        if size > self.max_file_size:
            max_kb = self.max_file_size / 1024
            logger.warning("file_size_too_large", filename=filename, file_size=size, max_size=self.max_file_size)
            raise ValidationError(
                f"File '{filename}' is too large ({size} bytes). Maximum size: {self.max_file_size} bytes",
                code="file_too_large",
                user_message=f"Image must be smaller than {max_kb:.0f} KB.",
                details={"filename": filename, "file_size": size, "max_size": self.max_file_size},
                field="image",
            )

    def check_encoded_size(self, data_uri: str) -> int:
        """
        Check the encoded image against the document ceiling.

        Returns:
            int: Encoded size in bytes

        Raises:
            PayloadTooLargeError: If the encoded image exceeds the ceiling
        """
        size = encoded_byte_length(data_uri)
        if size > self.max_encoded_size:
            logger.warning("encoded_image_too_large", encoded_size=size, max_size=self.max_encoded_size)
            raise PayloadTooLargeError(size, self.max_encoded_size)
        return size

    async def encode_and_check(self, file: Any) -> str:
        """
        Run the full gate on a selected file: pre-check, encode, post-check.

        Returns:
            str: The encoded data URI, ready to be stored

        Raises:
            ValidationError: If the raw file is over the upload ceiling
            EncodingError: If the file cannot be read
            PayloadTooLargeError: If the encoded image is over the document ceiling
        """
        filename = getattr(file, "name", None)
        size = _file_size(file)
        if size is not None:
            self.check_file_size(size, filename)

        data_uri = await encode_image_file(file)
        encoded_size = self.check_encoded_size(data_uri)

        logger.info("size_gate_passed", filename=filename, file_size=size, encoded_size=encoded_size)
        return data_uri


def validate_title(title: str | None) -> str | None:
    """Return an error message for an unacceptable title, None if it is fine."""
    if title is None or len(title) < MIN_TITLE_LENGTH:
        return f"Title must be at least {MIN_TITLE_LENGTH} characters."
    return None


def validate_category(category: str | Category | None) -> str | None:
    """Return an error message for a missing or unknown category, None if it is fine."""
    if category is None or category == "" or category == ALL_CATEGORIES:
        return "Please select a category."
    if isinstance(category, Category) or category in Category.labels():
        return None
    return "Please select a category."


def validate_upload_form(title: str | None, category: str | Category | None, file: Any) -> dict[str, str]:
    """
    Validate the upload dialog fields.

    Args:
        title: Entered title
        category: Selected category label
        file: Selected image file, or None when nothing was chosen

    Returns:
        dict: Field name to error message; empty when the form is valid
    """
    errors: dict[str, str] = {}

    title_error = validate_title(title)
    if title_error:
        errors["title"] = title_error

    category_error = validate_category(category)
    if category_error:
        errors["category"] = category_error

    if file is None:
        errors["image"] = "Please select an image."

    if errors:
        logger.debug("upload_form_invalid", fields=sorted(errors))
    return errors


def validate_edit_form(title: str | None, category: str | Category | None) -> dict[str, str]:
    """Validate the edit dialog fields; same rules as upload minus the image."""
    errors: dict[str, str] = {}

    title_error = validate_title(title)
    if title_error:
        errors["title"] = title_error

    category_error = validate_category(category)
    if category_error:
        errors["category"] = category_error

    return errors
