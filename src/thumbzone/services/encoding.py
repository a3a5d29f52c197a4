"""Image encoding service: turns a selected image file into a data URI."""

import asyncio
import base64
import io
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from thumbzone.models.thumbnail import parse_data_uri
from thumbzone.ui.handlers.error import EncodingError
from ..logging_config import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}


def _read_all(file: Any) -> bytes:
    """Read the whole file from the start and rewind it for later readers."""
    if hasattr(file, "seek"):
        file.seek(0)
    data = file.read()
    if hasattr(file, "seek"):
        file.seek(0)
    return data


def _sniff_content_type(data: bytes) -> str | None:
    """Detect the MIME type from the image bytes with Pillow."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def detect_content_type(file: Any, data: bytes) -> str:
    """
    Determine the MIME type of an uploaded image.

    The browser-reported type wins, then the file extension, then the bytes.

    Raises:
        EncodingError: If the data is not recognizable as an image
    """
    declared = getattr(file, "type", None)
    if isinstance(declared, str) and declared.startswith("image/"):
        return declared

    name = getattr(file, "name", None)
    if isinstance(name, str):
        content_type = CONTENT_TYPES.get(Path(name).suffix.lower())
        if content_type:
            return content_type

    content_type = _sniff_content_type(data)
    if content_type:
        return content_type

    raise EncodingError(
        f"Could not determine image type of '{name or 'upload'}'",
        code="unknown_image_type",
        user_message="The selected file is not a supported image.",
        details={"filename": name},
    )


def encode_image_bytes(data: bytes, content_type: str) -> str:
    """Encode raw bytes as ``data:<content_type>;base64,<payload>``."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


async def encode_image_file(file: Any) -> str:
    """
    Read an image file and encode it as a data URI.

    Args:
        file: File-like object opened in binary mode, e.g. a Streamlit UploadedFile

    Returns:
        str: ``data:<mime-type>;base64,<encoded-bytes>``

    Raises:
        EncodingError: If the file cannot be read or is not an image
    """
    name = getattr(file, "name", None)
    try:
        data = await asyncio.to_thread(_read_all, file)
    except (OSError, ValueError) as e:
        raise EncodingError(
            f"Failed to read image file '{name}': {e}",
            code="file_read_failed",
            details={"filename": name},
            original_exception=e,
        ) from e

    if not isinstance(data, bytes | bytearray):
        raise EncodingError(f"Image file '{name}' was not opened in binary mode", code="file_not_binary")

    content_type = detect_content_type(file, data)
    data_uri = encode_image_bytes(bytes(data), content_type)

    logger.debug(
        "image_encoded", filename=name, content_type=content_type, raw_size=len(data), encoded_size=len(data_uri)
    )
    return data_uri


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """
    Decode a data URI produced by encode_image_file.

    Returns:
        tuple: (mime_type, raw_bytes)

    Raises:
        EncodingError: If the string is not a base64 data URI
    """
    return parse_data_uri(data_uri)
