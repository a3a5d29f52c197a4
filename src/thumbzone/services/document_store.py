"""
Document store adapters for the thumbnails collection.

The gallery only needs four operations from its database: insert a document
and get its id, list documents ordered by one field, partially update a
document, and delete a document. ``DocumentStore`` names that contract and
two adapters implement it:

- ``FirestoreDocumentStore`` talks to Google Cloud Firestore (production).
- ``DuckDBDocumentStore`` keeps the same documents in a local DuckDB file
  (development and tests).

Both adapters raise ``DocumentStoreError`` with a ``StoreErrorKind`` so callers
never have to look at backend-specific exceptions or message text.
"""

import asyncio
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

import duckdb
import google.auth.exceptions
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from thumbzone.config import (
    get_collection_name,
    get_duckdb_path,
    get_firestore_database,
    get_project_id,
    get_store_backend,
)
from thumbzone.ui.handlers.error import DocumentStoreError, StoreErrorKind
from ..logging_config import get_logger
from ..models.database import DatabaseManager, get_database_manager
from ..models.schema import column_for_field, is_valid_table_name

logger = get_logger(__name__)

# Firestore's hard per-document limit
MAX_DOCUMENT_SIZE = 1_048_576

# Length of the ids Firestore generates for new documents
AUTO_ID_LENGTH = 20


def _value_size(value: Any) -> int:
    """Storage size of a single field value, following Firestore's size rules."""
    if value is None or isinstance(value, bool):
        return 1
    if isinstance(value, int | float | datetime):
        return 8
    if isinstance(value, str):
        return len(value.encode("utf-8")) + 1
    if isinstance(value, bytes | bytearray):
        return len(value)
    if isinstance(value, list | tuple):
        return sum(_value_size(item) for item in value)
    if isinstance(value, dict):
        return sum(len(key.encode("utf-8")) + 1 + _value_size(item) for key, item in value.items())
    return len(str(value).encode("utf-8")) + 1


def document_size(collection: str, document: dict[str, Any], document_id: str | None = None) -> int:
    """
    Compute the stored size of a document the way Firestore counts it.

    Args:
        collection: Collection the document lives in
        document: Document body
        document_id: Document id; a generated id of standard length is assumed when None

    Returns:
        int: Size in bytes, comparable to MAX_DOCUMENT_SIZE
    """
    id_size = len(document_id.encode("utf-8")) if document_id else AUTO_ID_LENGTH
    name_size = len(collection.encode("utf-8")) + 1 + id_size + 1 + 16
    return name_size + _value_size(document) + 32


class DocumentStore(ABC):
    """Async document store holding one collection of thumbnail documents."""

    def __init__(self, collection: str, max_document_size: int = MAX_DOCUMENT_SIZE) -> None:
        self.collection = collection
        self.max_document_size = max_document_size

    def check_document_size(self, document: dict[str, Any], document_id: str | None = None) -> None:
        """
        Refuse documents the backend would reject for their size.

        Raises:
            DocumentStoreError: With kind PAYLOAD_TOO_LARGE
        """
        size = document_size(self.collection, document, document_id)
        if size > self.max_document_size:
            raise DocumentStoreError(
                f"Document size {size} exceeds the maximum of {self.max_document_size} bytes",
                kind=StoreErrorKind.PAYLOAD_TOO_LARGE,
                details={"collection": self.collection, "size": size, "limit": self.max_document_size},
            )

    @abstractmethod
    async def put(self, document: dict[str, Any]) -> str:
        """Insert a document and return the id the store assigned."""

    @abstractmethod
    async def query_ordered(self, field: str, descending: bool = True) -> list[tuple[str, dict[str, Any]]]:
        """Return every document as ``(id, body)`` ordered by ``field``."""

    @abstractmethod
    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        """Overwrite only the given fields of an existing document."""

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete a document by id."""


class UnavailableDocumentStore(DocumentStore):
    """
    Stand-in for a store that could not be built from configuration.

    Every operation fails with ``DocumentStoreError`` of kind UNREACHABLE, so a
    misconfigured backend shows up as an empty gallery and failed writes
    rather than a broken page.
    """

    def __init__(self, cause: Exception, collection: str = "thumbnails") -> None:
        super().__init__(collection)
        self.cause = cause

    def _unavailable(self, operation: str) -> DocumentStoreError:
        user_message = self.cause.user_message if isinstance(self.cause, DocumentStoreError) else None
        return DocumentStoreError(
            f"Document store unavailable: {self.cause}",
            kind=StoreErrorKind.UNREACHABLE,
            user_message=user_message,
            details={"operation": operation},
            original_exception=self.cause,
        )

    async def put(self, document: dict[str, Any]) -> str:
        raise self._unavailable("put")

    async def query_ordered(self, field: str, descending: bool = True) -> list[tuple[str, dict[str, Any]]]:
        raise self._unavailable("query_ordered")

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        raise self._unavailable("update")

    async def delete(self, document_id: str) -> None:
        raise self._unavailable("delete")


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by a Google Cloud Firestore collection."""

    UNREACHABLE_ERRORS = (
        gcp_exceptions.ServiceUnavailable,
        gcp_exceptions.DeadlineExceeded,
        gcp_exceptions.RetryError,
        gcp_exceptions.Unauthenticated,
        google.auth.exceptions.GoogleAuthError,
        ConnectionError,
        TimeoutError,
    )
    REJECTED_ERRORS = (
        gcp_exceptions.InvalidArgument,
        gcp_exceptions.PermissionDenied,
        gcp_exceptions.NotFound,
        gcp_exceptions.FailedPrecondition,
        gcp_exceptions.AlreadyExists,
        gcp_exceptions.ResourceExhausted,
    )

    def __init__(
        self,
        collection: str = "thumbnails",
        project_id: str | None = None,
        database: str | None = None,
        max_document_size: int = MAX_DOCUMENT_SIZE,
    ) -> None:
        """
        Args:
            collection: Firestore collection name
            project_id: GCP project ID (None lets the client infer it from credentials)
            database: Firestore database id (None for the default database)
            max_document_size: Size limit enforced before each write
        """
        super().__init__(collection, max_document_size)
        self.project_id = project_id
        self.database = database
        self._client: firestore.AsyncClient | None = None
        self._client_loop: asyncio.AbstractEventLoop | None = None

        logger.info(
            "firestore_store_initialized", collection=collection, project_id=project_id, database=database
        )

    def _get_client(self) -> firestore.AsyncClient:
        """Return an AsyncClient bound to the running event loop, creating one when the loop changes."""
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            self._client = firestore.AsyncClient(project=self.project_id, database=self.database)
            self._client_loop = loop
        return self._client

    def _collection(self) -> Any:
        return self._get_client().collection(self.collection)

    def _translate_error(self, error: Exception, operation: str, **context: Any) -> DocumentStoreError:
        """Map a Firestore or transport exception to a typed store error."""
        if isinstance(error, self.UNREACHABLE_ERRORS):
            kind = StoreErrorKind.UNREACHABLE
        elif isinstance(error, self.REJECTED_ERRORS):
            kind = StoreErrorKind.REJECTED
        else:
            kind = StoreErrorKind.UNKNOWN

        return DocumentStoreError(
            f"Firestore {operation} failed: {error}",
            kind=kind,
            details={"operation": operation, "collection": self.collection, **context},
            original_exception=error,
        )

    async def put(self, document: dict[str, Any]) -> str:
        self.check_document_size(document)
        try:
            _, reference = await self._collection().add(document)
        except Exception as e:
            raise self._translate_error(e, "put") from e

        logger.debug("firestore_document_added", collection=self.collection, document_id=reference.id)
        return reference.id

    async def query_ordered(self, field: str, descending: bool = True) -> list[tuple[str, dict[str, Any]]]:
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        try:
            snapshots = await self._collection().order_by(field, direction=direction).get()
        except Exception as e:
            raise self._translate_error(e, "query_ordered", field=field) from e

        return [(snapshot.id, snapshot.to_dict() or {}) for snapshot in snapshots]

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        try:
            await self._collection().document(document_id).update(fields)
        except Exception as e:
            raise self._translate_error(e, "update", document_id=document_id) from e

    async def delete(self, document_id: str) -> None:
        try:
            await self._collection().document(document_id).delete()
        except Exception as e:
            raise self._translate_error(e, "delete", document_id=document_id) from e


class DuckDBDocumentStore(DocumentStore):
    """
    Document store backed by a local DuckDB file.

    Queries run in a worker thread so the event loop stays free while DuckDB
    works; a lock serializes them on the shared database.
    """

    def __init__(
        self,
        db_path: str,
        collection: str = "thumbnails",
        max_document_size: int = MAX_DOCUMENT_SIZE,
    ) -> None:
        super().__init__(collection, max_document_size)
        if not is_valid_table_name(collection):
            raise DocumentStoreError(
                f"Invalid DuckDB table name: {collection!r}",
                kind=StoreErrorKind.UNREACHABLE,
                user_message="The database is not configured correctly.",
                details={"collection": collection},
            )
        self.db_path = db_path
        self._db_manager: DatabaseManager | None = None
        self._lock = threading.Lock()

        logger.info("duckdb_store_initialized", collection=collection, db_path=db_path)

    @property
    def db_manager(self) -> DatabaseManager:
        """Get database manager, initializing the schema on first use."""
        if self._db_manager is None:
            self._db_manager = get_database_manager(self.db_path, self.collection)
        return self._db_manager

    def _run(self, query: str, parameters: list[Any]) -> list[tuple]:
        with self._lock:
            cursor = self.db_manager.connect().cursor()
            try:
                return cursor.execute(query, parameters).fetchall()
            finally:
                cursor.close()

    async def _execute(self, operation: str, query: str, parameters: list[Any], **context: Any) -> list[tuple]:
        try:
            return await asyncio.to_thread(self._run, query, parameters)
        except (duckdb.IOException, OSError, RuntimeError) as e:
            kind = StoreErrorKind.UNREACHABLE
            error: Exception = e
        except (duckdb.ConstraintException, duckdb.ConversionException, duckdb.InvalidInputException) as e:
            kind = StoreErrorKind.REJECTED
            error = e
        except duckdb.Error as e:
            kind = StoreErrorKind.UNKNOWN
            error = e

        raise DocumentStoreError(
            f"DuckDB {operation} failed: {error}",
            kind=kind,
            details={"operation": operation, "db_path": self.db_path, **context},
            original_exception=error,
        ) from error

    @staticmethod
    def _to_column_value(field: str, value: Any) -> Any:
        if field == "createdAt" and isinstance(value, datetime):
            # Stored as naive UTC; from_document restores the timezone
            return value.astimezone(UTC).replace(tzinfo=None) if value.tzinfo else value
        return value

    def _columns_for(self, fields: dict[str, Any], operation: str) -> list[tuple[str, Any]]:
        try:
            return [(column_for_field(field), self._to_column_value(field, value)) for field, value in fields.items()]
        except KeyError as e:
            raise DocumentStoreError(
                f"Unknown document field {e.args[0]!r}",
                kind=StoreErrorKind.REJECTED,
                details={"operation": operation, "field": e.args[0]},
            ) from None

    async def put(self, document: dict[str, Any]) -> str:
        self.check_document_size(document)
        document_id = uuid.uuid4().hex[:AUTO_ID_LENGTH]
        columns = [("id", document_id), *self._columns_for(document, "put")]

        names = ", ".join(name for name, _ in columns)
        placeholders = ", ".join("?" for _ in columns)
        await self._execute(
            "put",
            f"INSERT INTO {self.collection} ({names}) VALUES ({placeholders})",  # nosec B608
            [value for _, value in columns],
        )

        logger.debug("duckdb_document_added", collection=self.collection, document_id=document_id)
        return document_id

    async def query_ordered(self, field: str, descending: bool = True) -> list[tuple[str, dict[str, Any]]]:
        order_column = self._columns_for({field: None}, "query_ordered")[0][0]
        direction = "DESC" if descending else "ASC"
        rows = await self._execute(
            "query_ordered",
            f"SELECT id, title, category, image_url, created_at FROM {self.collection} "  # nosec B608
            f"ORDER BY {order_column} {direction}, id {direction}",
            [],
            field=field,
        )
        return [
            (row[0], {"title": row[1], "category": row[2], "imageUrl": row[3], "createdAt": row[4]}) for row in rows
        ]

    async def update(self, document_id: str, fields: dict[str, Any]) -> None:
        columns = self._columns_for(fields, "update")
        if not columns:
            return

        assignments = ", ".join(f"{name} = ?" for name, _ in columns)
        rows = await self._execute(
            "update",
            f"UPDATE {self.collection} SET {assignments} WHERE id = ? RETURNING id",  # nosec B608
            [*(value for _, value in columns), document_id],
            document_id=document_id,
        )
        if not rows:
            raise DocumentStoreError(
                f"No document to update: {document_id}",
                kind=StoreErrorKind.REJECTED,
                details={"operation": "update", "document_id": document_id},
            )

    async def delete(self, document_id: str) -> None:
        await self._execute(
            "delete",
            f"DELETE FROM {self.collection} WHERE id = ?",  # nosec B608
            [document_id],
            document_id=document_id,
        )

    def close(self) -> None:
        """Close the underlying database connection."""
        if self._db_manager is not None:
            self._db_manager.close()
            self._db_manager = None


_document_store: DocumentStore | None = None


def create_document_store(backend: str | None = None) -> DocumentStore:
    """
    Build a document store from configuration.

    Args:
        backend: "duckdb" or "firestore"; defaults to THUMBNAIL_STORE_BACKEND

    Raises:
        DocumentStoreError: With kind UNREACHABLE for an unknown backend name
    """
    backend = (backend or get_store_backend()).lower()
    collection = get_collection_name()

    if backend == "firestore":
        return FirestoreDocumentStore(
            collection=collection, project_id=get_project_id(), database=get_firestore_database()
        )
    if backend == "duckdb":
        return DuckDBDocumentStore(get_duckdb_path(), collection=collection)

    raise DocumentStoreError(
        f"Unknown THUMBNAIL_STORE_BACKEND: {backend!r}",
        kind=StoreErrorKind.UNREACHABLE,
        user_message="The database is not configured correctly.",
        details={"backend": backend},
    )


def get_document_store() -> DocumentStore:
    """
    Get the global document store instance.

    Returns:
        DocumentStore: Store selected by THUMBNAIL_STORE_BACKEND
    """
    global _document_store

    if _document_store is None:
        _document_store = create_document_store()

    return _document_store


def reset_document_store() -> None:
    """Drop the global store so the next call rebuilds it from configuration."""
    global _document_store
    _document_store = None
