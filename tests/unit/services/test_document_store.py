"""
Unit tests for the document store adapters.
"""

import asyncio
import os
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from thumbzone.services.document_store import (
    MAX_DOCUMENT_SIZE,
    DuckDBDocumentStore,
    FirestoreDocumentStore,
    UnavailableDocumentStore,
    create_document_store,
    document_size,
    get_document_store,
)
from thumbzone.ui.handlers.error import DocumentStoreError, StoreErrorKind


def make_document(title: str = "My Video", day: int = 1, image: str = "data:image/png;base64,aGVsbG8=") -> dict:
    return {
        "title": title,
        "category": "Gaming",
        "imageUrl": image,
        "createdAt": datetime(2024, 1, day, 12, 0, tzinfo=UTC),
    }


class TestDocumentSize:
    """Test cases for document_size."""

    def test_counts_names_values_and_overhead(self):
        """Test the size of a small document with a known id."""
        # name: 10 + 1 + 3 + 1 + 16, field: 5 + 1 + 3 + 1, document overhead: 32
        assert document_size("thumbnails", {"title": "abc"}, "id1") == 73

    def test_generated_id_length_assumed(self):
        """Test that a missing id counts as a generated 20 character id."""
        assert document_size("thumbnails", {}) == 10 + 1 + 20 + 1 + 16 + 32

    def test_timestamp_counts_eight_bytes(self):
        """Test timestamp fields."""
        with_timestamp = document_size("c", {"t": datetime(2024, 1, 1, tzinfo=UTC)}, "x")
        empty = document_size("c", {}, "x")

        assert with_timestamp - empty == 2 + 8

    def test_strings_counted_in_bytes(self):
        """Test that multibyte strings count their UTF-8 size."""
        ascii_size = document_size("c", {"t": "aa"}, "x")
        multibyte_size = document_size("c", {"t": "éé"}, "x")

        assert multibyte_size - ascii_size == 2


class TestDuckDBDocumentStore:
    """Test cases for DuckDBDocumentStore."""

    def test_put_returns_generated_id(self, duckdb_store):
        """Test that put assigns a 20 character id."""
        document_id = asyncio.run(duckdb_store.put(make_document()))

        assert len(document_id) == 20

    def test_put_then_query(self, duckdb_store):
        """Test that a stored document comes back unchanged."""
        document_id = asyncio.run(duckdb_store.put(make_document()))

        documents = asyncio.run(duckdb_store.query_ordered("createdAt"))

        assert len(documents) == 1
        stored_id, body = documents[0]
        assert stored_id == document_id
        assert body["title"] == "My Video"
        assert body["category"] == "Gaming"
        assert body["imageUrl"] == "data:image/png;base64,aGVsbG8="
        # Stored as naive UTC
        assert body["createdAt"] == datetime(2024, 1, 1, 12, 0)

    def test_query_ordered_descending(self, duckdb_store):
        """Test that the newest document comes first."""
        for day, title in ((1, "First"), (3, "Third"), (2, "Second")):
            asyncio.run(duckdb_store.put(make_document(title, day)))

        titles = [body["title"] for _, body in asyncio.run(duckdb_store.query_ordered("createdAt"))]
        ascending = [
            body["title"] for _, body in asyncio.run(duckdb_store.query_ordered("createdAt", descending=False))
        ]

        assert titles == ["Third", "Second", "First"]
        assert ascending == ["First", "Second", "Third"]

    def test_update_is_partial(self, duckdb_store):
        """Test that update only changes the given fields."""
        document_id = asyncio.run(duckdb_store.put(make_document()))

        asyncio.run(duckdb_store.update(document_id, {"title": "Renamed", "category": "Tech"}))

        _, body = asyncio.run(duckdb_store.query_ordered("createdAt"))[0]
        assert body["title"] == "Renamed"
        assert body["category"] == "Tech"
        assert body["imageUrl"] == "data:image/png;base64,aGVsbG8="
        assert body["createdAt"] == datetime(2024, 1, 1, 12, 0)

    def test_update_missing_document(self, duckdb_store):
        """Test that updating an unknown id is rejected."""
        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(duckdb_store.update("missing", {"title": "Renamed"}))

        assert exc_info.value.kind is StoreErrorKind.REJECTED

    def test_update_unknown_field(self, duckdb_store):
        """Test that fields outside the document are rejected."""
        document_id = asyncio.run(duckdb_store.put(make_document()))

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(duckdb_store.update(document_id, {"views": 10}))

        assert exc_info.value.kind is StoreErrorKind.REJECTED

    def test_delete(self, duckdb_store):
        """Test that delete removes only the given document."""
        keep = asyncio.run(duckdb_store.put(make_document("Keep", 1)))
        drop = asyncio.run(duckdb_store.put(make_document("Drop", 2)))

        asyncio.run(duckdb_store.delete(drop))

        assert [document_id for document_id, _ in asyncio.run(duckdb_store.query_ordered("createdAt"))] == [keep]

    def test_oversized_document(self, tmp_path):
        """Test that documents above the limit never reach the database."""
        store = DuckDBDocumentStore(str(tmp_path / "small.duckdb"), max_document_size=200)

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(store.put(make_document(image="data:image/png;base64," + "A" * 500)))

        assert exc_info.value.kind is StoreErrorKind.PAYLOAD_TOO_LARGE
        assert asyncio.run(store.query_ordered("createdAt")) == []
        store.close()

    def test_unusable_path_is_unreachable(self, tmp_path):
        """Test that a database that cannot be opened reports UNREACHABLE."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = DuckDBDocumentStore(str(blocker / "thumbnails.duckdb"))

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(store.query_ordered("createdAt"))

        assert exc_info.value.kind is StoreErrorKind.UNREACHABLE

    def test_collection_names_the_table(self, tmp_path):
        """Test that documents live in a table named after the collection."""
        db_path = str(tmp_path / "covers.duckdb")
        store = DuckDBDocumentStore(db_path, collection="covers")

        document_id = asyncio.run(store.put(make_document()))
        asyncio.run(store.update(document_id, {"title": "Renamed"}))
        documents = asyncio.run(store.query_ordered("createdAt"))
        tables = store.db_manager.connect().execute("SELECT table_name FROM information_schema.tables").fetchall()
        asyncio.run(store.delete(document_id))
        remaining = asyncio.run(store.query_ordered("createdAt"))
        store.close()

        assert [body["title"] for _, body in documents] == ["Renamed"]
        assert {row[0] for row in tables} == {"covers"}
        assert remaining == []

    def test_invalid_collection_name(self, tmp_path):
        """Test that a collection name unusable as a table name is a configuration failure."""
        with pytest.raises(DocumentStoreError) as exc_info:
            DuckDBDocumentStore(str(tmp_path / "bad.duckdb"), collection="my-thumbnails")

        assert exc_info.value.kind is StoreErrorKind.UNREACHABLE


class TestFirestoreDocumentStore:
    """Test cases for FirestoreDocumentStore."""

    def _mock_client(self) -> MagicMock:
        client = MagicMock()
        collection = client.collection.return_value
        collection.add = AsyncMock(return_value=(None, SimpleNamespace(id="fs-id-1")))
        collection.order_by.return_value.get = AsyncMock(return_value=[])
        collection.document.return_value.update = AsyncMock()
        collection.document.return_value.delete = AsyncMock()
        return client

    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_put(self, mock_client_class):
        """Test that put adds the document and returns its id."""
        client = self._mock_client()
        mock_client_class.return_value = client
        store = FirestoreDocumentStore("thumbnails", project_id="test-project")

        document_id = asyncio.run(store.put(make_document()))

        assert document_id == "fs-id-1"
        mock_client_class.assert_called_once_with(project="test-project", database=None)
        client.collection.assert_called_with("thumbnails")
        client.collection.return_value.add.assert_awaited_once_with(make_document())

    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_query_ordered(self, mock_client_class):
        """Test that query_ordered orders by the field, newest first."""
        client = self._mock_client()
        snapshot = MagicMock()
        snapshot.id = "fs-id-1"
        snapshot.to_dict.return_value = make_document()
        client.collection.return_value.order_by.return_value.get = AsyncMock(return_value=[snapshot])
        mock_client_class.return_value = client
        store = FirestoreDocumentStore("thumbnails")

        documents = asyncio.run(store.query_ordered("createdAt"))

        assert documents == [("fs-id-1", make_document())]
        client.collection.return_value.order_by.assert_called_once_with(
            "createdAt", direction=firestore.Query.DESCENDING
        )

    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_update_and_delete(self, mock_client_class):
        """Test partial update and delete by id."""
        client = self._mock_client()
        mock_client_class.return_value = client
        store = FirestoreDocumentStore("thumbnails")

        async def run():
            await store.update("fs-id-1", {"title": "Renamed"})
            await store.delete("fs-id-1")

        asyncio.run(run())

        document = client.collection.return_value.document
        document.assert_called_with("fs-id-1")
        document.return_value.update.assert_awaited_once_with({"title": "Renamed"})
        document.return_value.delete.assert_awaited_once_with()

    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_client_recreated_for_new_event_loop(self, mock_client_class):
        """Test that each event loop gets its own client."""
        mock_client_class.return_value = self._mock_client()
        store = FirestoreDocumentStore("thumbnails")

        async def run():
            await store.delete("a")
            await store.delete("b")

        asyncio.run(run())
        assert mock_client_class.call_count == 1

        asyncio.run(run())
        assert mock_client_class.call_count == 2

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (gcp_exceptions.ServiceUnavailable("down"), StoreErrorKind.UNREACHABLE),
            (gcp_exceptions.DeadlineExceeded("slow"), StoreErrorKind.UNREACHABLE),
            (ConnectionError("reset"), StoreErrorKind.UNREACHABLE),
            (gcp_exceptions.PermissionDenied("rules"), StoreErrorKind.REJECTED),
            (gcp_exceptions.InvalidArgument("bad"), StoreErrorKind.REJECTED),
            (ValueError("odd"), StoreErrorKind.UNKNOWN),
        ],
    )
    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_error_translation(self, mock_client_class, error, kind):
        """Test that backend exceptions are mapped by type."""
        client = self._mock_client()
        client.collection.return_value.add = AsyncMock(side_effect=error)
        mock_client_class.return_value = client
        store = FirestoreDocumentStore("thumbnails")

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(store.put(make_document()))

        assert exc_info.value.kind is kind
        assert exc_info.value.original_exception is error

    @patch("thumbzone.services.document_store.firestore.AsyncClient")
    def test_oversized_document_not_sent(self, mock_client_class):
        """Test that oversized documents are refused before any request."""
        client = self._mock_client()
        mock_client_class.return_value = client
        store = FirestoreDocumentStore("thumbnails")

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(store.put(make_document(image="A" * MAX_DOCUMENT_SIZE)))

        assert exc_info.value.kind is StoreErrorKind.PAYLOAD_TOO_LARGE
        client.collection.return_value.add.assert_not_called()


class TestStoreFactory:
    """Test cases for store construction from configuration."""

    def test_duckdb_backend(self):
        """Test the default backend."""
        store = create_document_store()

        assert isinstance(store, DuckDBDocumentStore)
        assert store.db_path == os.environ["DUCKDB_PATH"]
        assert store.collection == "thumbnails"

    @patch.dict(os.environ, {"THUMBNAIL_STORE_BACKEND": "firestore", "GOOGLE_CLOUD_PROJECT": "test-project"})
    def test_firestore_backend(self):
        """Test selecting Firestore."""
        store = create_document_store()

        assert isinstance(store, FirestoreDocumentStore)
        assert store.project_id == "test-project"

    def test_unknown_backend(self):
        """Test that an unknown backend name is a configuration failure."""
        with pytest.raises(DocumentStoreError) as exc_info:
            create_document_store("mongodb")

        assert exc_info.value.kind is StoreErrorKind.UNREACHABLE

    @patch.dict(os.environ, {"THUMBNAIL_COLLECTION": "covers"})
    def test_duckdb_backend_uses_collection(self):
        """Test that the configured collection reaches the DuckDB store."""
        store = create_document_store()

        assert store.collection == "covers"

    def test_global_store_is_shared(self):
        """Test the global accessor."""
        assert get_document_store() is get_document_store()


class TestUnavailableDocumentStore:
    """Test cases for the store used when configuration fails."""

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("put", (make_document(),)),
            ("query_ordered", ("createdAt",)),
            ("update", ("doc1", {"title": "Renamed"})),
            ("delete", ("doc1",)),
        ],
    )
    def test_every_operation_is_unreachable(self, operation, args):
        """Test that each operation fails the same way."""
        cause = RuntimeError("no credentials")
        store = UnavailableDocumentStore(cause)

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(getattr(store, operation)(*args))

        assert exc_info.value.kind is StoreErrorKind.UNREACHABLE
        assert exc_info.value.original_exception is cause

    def test_keeps_configuration_message(self):
        """Test that the cause's user message is kept."""
        cause = DocumentStoreError(
            "bad backend", kind=StoreErrorKind.UNREACHABLE, user_message="The database is not configured correctly."
        )

        with pytest.raises(DocumentStoreError) as exc_info:
            asyncio.run(UnavailableDocumentStore(cause).query_ordered("createdAt"))

        assert exc_info.value.user_message == "The database is not configured correctly."
