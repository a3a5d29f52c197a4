"""
Pytest configuration and fixtures for thumbzone tests.
"""

import asyncio
import io
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

import thumbzone.config
from thumbzone.services.document_store import DocumentStore, DuckDBDocumentStore, reset_document_store
from thumbzone.services.encoding import encode_image_bytes


class SessionState(dict):
    """Dict with attribute access, standing in for st.session_state."""

    def __getattr__(self, key: str) -> Any:
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value


class FakeUpload(io.BytesIO):
    """In-memory file shaped like a Streamlit UploadedFile."""

    def __init__(self, data: bytes, name: str = "thumb.png", type: str = "image/png", size: int | None = None):
        super().__init__(data)
        self.name = name
        self.type = type
        self.size = len(data) if size is None else size


class FakeDocumentStore(DocumentStore):
    """
    In-memory document store that records every call.

    Set ``fail_with[operation]`` to make an operation raise, or ``hold_puts``
    to keep each put waiting until its event in ``pending_puts`` is set.
    """

    def __init__(self, documents: dict[str, dict] | None = None):
        super().__init__("thumbnails")
        self.documents: dict[str, dict] = dict(documents or {})
        self.calls: dict[str, int] = {"put": 0, "query_ordered": 0, "update": 0, "delete": 0}
        self.updates: list[tuple[str, dict]] = []
        self.fail_with: dict[str, Exception] = {}
        self.hold_puts = False
        self.pending_puts: list[asyncio.Event] = []
        self._next_id = 0

    def _record_call(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail_with:
            raise self.fail_with[operation]

    async def put(self, document: dict[str, Any]) -> str:
        self._record_call("put")
        self.check_document_size(document)
        if self.hold_puts:
            event = asyncio.Event()
            self.pending_puts.append(event)
            await event.wait()
        self._next_id += 1
        document_id = f"doc{self._next_id}"
        self.documents[document_id] = dict(document)
        return document_id

    async def query_ordered(self, field: str, descending: bool = True) -> list[tuple[str, dict[str, Any]]]:
        self._record_call("query_ordered")
        return sorted(self.documents.items(), key=lambda item: item[1][field], reverse=descending)

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        self._record_call("update")
        self.updates.append((document_id, dict(fields)))
        self.documents[document_id].update(fields)

    async def delete(self, document_id: str) -> None:
        self._record_call("delete")
        self.documents.pop(document_id, None)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None, None, None]:
    """Isolate configuration and global services for every test."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("THUMBNAIL_STORE_BACKEND", "duckdb")
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "store" / "thumbnails.duckdb"))
    for key in (
        "OPENAI_API_KEY",
        "CRITIQUE_MODEL",
        "CRITIQUE_PROMPT",
        "CRITIQUE_LANGUAGE",
        "MAX_UPLOAD_SIZE_MB",
        "MAX_IMAGE_DATA_BYTES",
        "THUMBNAIL_COLLECTION",
        "GOOGLE_CLOUD_PROJECT",
        "FIRESTORE_DATABASE",
    ):
        monkeypatch.delenv(key, raising=False)

    thumbzone.config._config = None
    reset_document_store()

    # No secrets.toml lookups during tests
    mock_st = MagicMock()
    mock_st.secrets.get.return_value = None
    with patch("thumbzone.config.st", mock_st):
        yield

    thumbzone.config._config = None
    reset_document_store()


@pytest.fixture
def sample_png_bytes() -> bytes:
    """Provide a small real PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_data_uri(sample_png_bytes: bytes) -> str:
    """Provide the sample PNG as a data URI."""
    return encode_image_bytes(sample_png_bytes, "image/png")


@pytest.fixture
def fake_store() -> FakeDocumentStore:
    """Provide an empty in-memory document store."""
    return FakeDocumentStore()


@pytest.fixture
def seeded_store(png_data_uri: str) -> FakeDocumentStore:
    """Provide a store holding T1, T2 and T3, created in that order."""
    return FakeDocumentStore(
        {
            f"t{n}": {
                "title": f"Thumbnail {n}",
                "category": category,
                "imageUrl": png_data_uri,
                "createdAt": datetime(2024, 1, n, 12, 0, 0, tzinfo=UTC),
            }
            for n, category in ((1, "Gaming"), (2, "Vlog"), (3, "Gaming"))
        }
    )


@pytest.fixture
def duckdb_store(tmp_path) -> Generator[DuckDBDocumentStore, None, None]:
    """Provide a DuckDB store in a temporary file."""
    store = DuckDBDocumentStore(str(tmp_path / "test.duckdb"))
    yield store
    store.close()
