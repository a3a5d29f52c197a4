"""
Thumbnail collection service: the session's ordered view of the store.

``ThumbnailCollection`` owns the in-memory list of thumbnails shown in the
gallery. The list is filled once from the store by ``load`` and afterwards
changed only by this session's own create, update and delete calls, each of
which touches the list only after the store acknowledged the write:

    load    -> replace list with the store contents, newest first
    create  -> store.put,    then insert at the head
    update  -> store.update, then replace in place
    delete  -> store.delete, then remove

Failures never raise out of these methods. They leave the list as it was and
come back as an ``OperationResult`` carrying a ``Notification`` for the user.
Nothing is retried, queued or cancelled: two creates in flight both land at
the head in the order their acknowledgments arrive.
"""

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from thumbzone.models.thumbnail import ALL_CATEGORIES, Category, ThumbnailRecord
from thumbzone.ui.handlers.error import (
    DocumentStoreError,
    EncodingError,
    PayloadTooLargeError,
    StoreErrorKind,
    ThumbZoneError,
    ValidationError,
)
from ..logging_config import get_logger, log_error, log_performance, log_user_action
from .document_store import DocumentStore
from .size_gate import SizeGate, validate_edit_form

logger = get_logger(__name__)

SORT_FIELD = "createdAt"


class NotificationLevel(Enum):
    """How a notification should be presented."""

    SUCCESS = "success"
    ERROR = "error"


class FailureCause(Enum):
    """Why an operation failed, as told to the user."""

    VALIDATION = "validation"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    STORE_COMMUNICATION = "store_communication"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Notification:
    """A transient, non-fatal message for the user."""

    level: NotificationLevel
    title: str
    message: str
    cause: FailureCause | None = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one collection operation."""

    success: bool
    notification: Notification
    record: ThumbnailRecord | None = None


Notifier = Callable[[Notification], None]


def failure_cause(error: Exception) -> FailureCause:
    """Classify an error by its type into the cause shown to the user."""
    if isinstance(error, PayloadTooLargeError):
        return FailureCause.PAYLOAD_TOO_LARGE
    if isinstance(error, ValidationError):
        return FailureCause.VALIDATION
    if isinstance(error, DocumentStoreError):
        if error.kind is StoreErrorKind.PAYLOAD_TOO_LARGE:
            return FailureCause.PAYLOAD_TOO_LARGE
        if error.kind in (StoreErrorKind.UNREACHABLE, StoreErrorKind.REJECTED):
            return FailureCause.STORE_COMMUNICATION
    return FailureCause.UNKNOWN


_CAUSE_MESSAGES = {
    FailureCause.PAYLOAD_TOO_LARGE: "The image is too large to store. Please choose a smaller image.",
    FailureCause.STORE_COMMUNICATION: "Could not communicate with the database. Please check your configuration.",
    FailureCause.UNKNOWN: "An unexpected error occurred. Please try again.",
}


def failure_notification(title: str, error: Exception) -> Notification:
    """Build the error notification for a failed operation."""
    cause = failure_cause(error)
    if cause is FailureCause.VALIDATION or (isinstance(error, EncodingError) and cause is FailureCause.UNKNOWN):
        message = error.user_message if isinstance(error, ThumbZoneError) else str(error)
    else:
        message = _CAUSE_MESSAGES[cause]
    return Notification(NotificationLevel.ERROR, title, message, cause)


def _unknown_record(record_id: str) -> ValidationError:
    return ValidationError(
        f"Thumbnail {record_id} is not in this collection",
        code="unknown_record",
        user_message="This thumbnail no longer exists.",
        details={"record_id": record_id},
    )


def matches(record: ThumbnailRecord, category: Category | str = ALL_CATEGORIES, search_term: str = "") -> bool:
    """True when the record is in ``category`` (or any, for "All") and its title contains ``search_term``."""
    if category != ALL_CATEGORIES and record.category is not Category.parse(category):
        return False
    return search_term.lower() in record.title.lower()


def filter_records(
    records: list[ThumbnailRecord] | tuple[ThumbnailRecord, ...],
    category: Category | str = ALL_CATEGORIES,
    search_term: str = "",
) -> list[ThumbnailRecord]:
    """Return the records matching both the category and the search term, order preserved."""
    if category != ALL_CATEGORIES:
        category = Category.parse(category)
    return [record for record in records if matches(record, category, search_term)]


class ThumbnailCollection:
    """
    Ordered collection of thumbnails for one session.

    Attributes:
        store: Document store holding the thumbnails collection
        size_gate: Ceiling applied to image data before any write
        session_id: Identifier used in audit log entries
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier | None = None,
        size_gate: SizeGate | None = None,
        session_id: str | None = None,
    ) -> None:
        self.store = store
        self.size_gate = size_gate or SizeGate()
        self.session_id = session_id or uuid.uuid4().hex
        self._notifier = notifier
        self._records: list[ThumbnailRecord] = []
        self.loaded = False

    @property
    def records(self) -> tuple[ThumbnailRecord, ...]:
        """Snapshot of the collection, newest first."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> ThumbnailRecord | None:
        """Return the record with ``record_id``, or None."""
        return next((record for record in self._records if record.id == record_id), None)

    def _index_of(self, record_id: str) -> int | None:
        return next((i for i, record in enumerate(self._records) if record.id == record_id), None)

    def _notify(self, notification: Notification) -> None:
        if self._notifier is not None:
            self._notifier(notification)

    def _succeed(
        self, notification_title: str, message: str, record: ThumbnailRecord | None = None
    ) -> OperationResult:
        notification = Notification(NotificationLevel.SUCCESS, notification_title, message)
        self._notify(notification)
        return OperationResult(True, notification, record)

    def _fail(self, notification_title: str, error: Exception, operation: str, **context: object) -> OperationResult:
        if not isinstance(error, ThumbZoneError):
            # Typed errors already logged themselves when raised
            log_error(error, {"operation": operation, "session_id": self.session_id, **context})
        notification = failure_notification(notification_title, error)
        logger.warning(
            "collection_operation_failed",
            operation=operation,
            cause=notification.cause.value if notification.cause else None,
            **context,
        )
        self._notify(notification)
        return OperationResult(False, notification)

    async def load(self) -> OperationResult:
        """
        Replace the collection with the store contents, newest first.

        On failure the collection is left empty and the user is told loading failed.
        """
        start_time = time.perf_counter()
        try:
            documents = await self.store.query_ordered(SORT_FIELD, descending=True)
        except Exception as e:
            self._records = []
            self.loaded = True
            return self._fail("Loading failed", e, "load")

        records = []
        for document_id, document in documents:
            try:
                records.append(ThumbnailRecord.from_document(document_id, document))
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("malformed_document_skipped", document_id=document_id, error=str(e))

        self._records = records
        self.loaded = True
        log_performance("collection_load", time.perf_counter() - start_time, count=len(records))
        return OperationResult(True, Notification(NotificationLevel.SUCCESS, "Loaded", f"{len(records)} thumbnails"))

    async def create(self, title: str, category: Category | str, image_data: str) -> OperationResult:
        """
        Store a new thumbnail and put it at the head of the collection.

        Args:
            title: Title, at least three characters
            category: Category or category label
            image_data: Encoded image that already passed the size gate

        Returns:
            OperationResult: With the stored record on success
        """
        try:
            errors = validate_edit_form(title, category)
            if errors:
                field, message = next(iter(errors.items()))
                raise ValidationError(message, code=f"invalid_{field}", field=field)
            parsed_category = Category.parse(category)
            self.size_gate.check_encoded_size(image_data)
        except ValidationError as e:
            return self._fail("Upload failed", e, "create", title=title)

        created_at = datetime.now(UTC)
        pending = ThumbnailRecord(
            id="", title=title, category=parsed_category, image_data=image_data, created_at=created_at
        )

        try:
            record_id = await self.store.put(pending.to_document())
        except Exception as e:
            return self._fail("Upload failed", e, "create", title=title)

        record = ThumbnailRecord(
            id=record_id, title=title, category=parsed_category, image_data=image_data, created_at=created_at
        )
        self._records.insert(0, record)

        log_user_action(self.session_id, "thumbnail_created", record_id=record_id, category=parsed_category.value)
        return self._succeed("Success!", f'Thumbnail "{title}" has been added.', record)

    async def update(self, record_id: str, title: str, category: Category | str) -> OperationResult:
        """
        Change the title and category of a thumbnail, keeping its position.

        The image and creation time are never touched.
        """
        current = self.get(record_id)
        try:
            if current is None:
                raise _unknown_record(record_id)
            errors = validate_edit_form(title, category)
            if errors:
                field, message = next(iter(errors.items()))
                raise ValidationError(message, code=f"invalid_{field}", field=field)
            parsed_category = Category.parse(category)
        except ThumbZoneError as e:
            return self._fail("Update failed", e, "update", record_id=record_id)

        try:
            await self.store.update(record_id, {"title": title, "category": parsed_category.value})
        except Exception as e:
            return self._fail("Update failed", e, "update", record_id=record_id)

        index = self._index_of(record_id)
        if index is None:
            # Removed locally while the update was in flight
            logger.warning("updated_record_no_longer_listed", record_id=record_id)
            updated = current.with_details(title, parsed_category)
        else:
            updated = self._records[index].with_details(title, parsed_category)
            self._records[index] = updated

        log_user_action(self.session_id, "thumbnail_updated", record_id=record_id, category=parsed_category.value)
        return self._succeed("Updated", f'Thumbnail "{title}" has been updated.', updated)

    async def delete(self, record_id: str) -> OperationResult:
        """Delete a thumbnail from the store, then drop it from the collection."""
        current = self.get(record_id)
        if current is None:
            return self._fail("Delete failed", _unknown_record(record_id), "delete", record_id=record_id)

        try:
            await self.store.delete(record_id)
        except Exception as e:
            return self._fail("Delete failed", e, "delete", record_id=record_id)

        index = self._index_of(record_id)
        if index is not None:
            del self._records[index]

        log_user_action(self.session_id, "thumbnail_deleted", record_id=record_id)
        return self._succeed("Deleted", f'Thumbnail "{current.title}" has been deleted.', current)

    def filtered_view(self, category: Category | str = ALL_CATEGORIES, search_term: str = "") -> list[ThumbnailRecord]:
        """Records in ``category`` whose title contains ``search_term``, newest first."""
        return filter_records(self._records, category, search_term)

    def select(self, predicate: Callable[[ThumbnailRecord], bool]) -> list[ThumbnailRecord]:
        """Records satisfying an arbitrary predicate, newest first."""
        return [record for record in self._records if predicate(record)]
