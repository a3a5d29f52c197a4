"""
Unit tests for the image encoding service.
"""

import asyncio
import base64
import io
from unittest.mock import MagicMock

import pytest

from tests.conftest import FakeUpload
from thumbzone.services.encoding import (
    decode_data_uri,
    detect_content_type,
    encode_image_bytes,
    encode_image_file,
)
from thumbzone.ui.handlers.error import EncodingError


class TestDetectContentType:
    """Test cases for detect_content_type."""

    def test_declared_type_wins(self, sample_png_bytes):
        """Test that the browser-reported type is used first."""
        upload = FakeUpload(sample_png_bytes, name="thumb.jpg", type="image/webp")

        assert detect_content_type(upload, sample_png_bytes) == "image/webp"

    def test_extension_fallback(self, sample_png_bytes):
        """Test that the extension is used when no type is declared."""
        upload = FakeUpload(sample_png_bytes, name="thumb.JPEG", type="application/octet-stream")

        assert detect_content_type(upload, sample_png_bytes) == "image/jpeg"

    def test_sniffed_from_bytes(self, sample_png_bytes):
        """Test detection from the image bytes alone."""
        assert detect_content_type(io.BytesIO(sample_png_bytes), sample_png_bytes) == "image/png"

    def test_unknown_type(self):
        """Test that non-image data is rejected."""
        upload = FakeUpload(b"just text", name="notes.txt", type="text/plain")

        with pytest.raises(EncodingError) as exc_info:
            detect_content_type(upload, b"just text")

        assert exc_info.value.code == "unknown_image_type"


class TestEncodeImageFile:
    """Test cases for encode_image_file."""

    def test_encodes_data_uri(self, sample_png_bytes):
        """Test that the file becomes a base64 data URI."""
        upload = FakeUpload(sample_png_bytes)

        data_uri = asyncio.run(encode_image_file(upload))

        assert data_uri == "data:image/png;base64," + base64.b64encode(sample_png_bytes).decode("ascii")

    def test_reads_from_start_and_rewinds(self, sample_png_bytes):
        """Test that a partially read file is encoded completely and rewound."""
        upload = FakeUpload(sample_png_bytes)
        upload.read(10)

        data_uri = asyncio.run(encode_image_file(upload))

        assert decode_data_uri(data_uri) == ("image/png", sample_png_bytes)
        assert upload.tell() == 0

    def test_read_failure(self):
        """Test that read errors become EncodingError."""
        broken = MagicMock()
        broken.name = "broken.png"
        broken.read.side_effect = OSError("disk error")

        with pytest.raises(EncodingError) as exc_info:
            asyncio.run(encode_image_file(broken))

        assert exc_info.value.code == "file_read_failed"
        assert isinstance(exc_info.value.original_exception, OSError)

    def test_text_mode_file(self):
        """Test that a file opened in text mode is rejected."""
        with pytest.raises(EncodingError) as exc_info:
            asyncio.run(encode_image_file(io.StringIO("not bytes")))

        assert exc_info.value.code == "file_not_binary"

    def test_non_image_file(self):
        """Test that unrecognizable data is rejected."""
        with pytest.raises(EncodingError):
            asyncio.run(encode_image_file(io.BytesIO(b"\x00\x01\x02")))


class TestDataUriHelpers:
    """Test cases for the data URI helpers."""

    def test_encode_image_bytes(self):
        """Test the data URI format."""
        assert encode_image_bytes(b"hello", "image/gif") == "data:image/gif;base64,aGVsbG8="

    def test_decode_data_uri(self):
        """Test decoding back to MIME type and bytes."""
        assert decode_data_uri("data:image/gif;base64,aGVsbG8=") == ("image/gif", b"hello")

    def test_decode_invalid(self):
        """Test decoding something that is not a data URI."""
        with pytest.raises(EncodingError):
            decode_data_uri("hello")
