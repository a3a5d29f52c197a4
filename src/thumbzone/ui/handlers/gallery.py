"""Gallery handlers: connect the Streamlit session to the collection and critique services."""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar

import streamlit as st
import structlog
from openai import AsyncOpenAI

from thumbzone.config import get_openai_api_key
from thumbzone.models.thumbnail import ThumbnailRecord
from thumbzone.services.collection import (
    Notification,
    NotificationLevel,
    OperationResult,
    ThumbnailCollection,
    failure_notification,
)
from thumbzone.services.critique import CritiqueResult, CritiqueService
from thumbzone.services.document_store import DocumentStore, UnavailableDocumentStore, get_document_store
from thumbzone.services.size_gate import SizeGate, validate_edit_form, validate_upload_form
from thumbzone.ui.handlers.error import CritiqueError, EncodingError, PayloadTooLargeError, ValidationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class SubmitOutcome:
    """Result of a form submission: inline field errors, or the operation result."""

    errors: dict[str, str] = field(default_factory=dict)
    result: OperationResult | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.result is not None and self.result.success


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Return this session's event loop; store and API clients stay bound to it across reruns."""
    loop = st.session_state.get("event_loop")
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        st.session_state.event_loop = loop
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on the session loop."""
    return get_event_loop().run_until_complete(coro)


def queue_notification(notification: Notification) -> None:
    """Keep a notification until the next render so it survives st.rerun()."""
    st.session_state.setdefault("pending_notifications", []).append(notification)


def pop_notifications() -> list[Notification]:
    """Take every queued notification."""
    notifications = st.session_state.get("pending_notifications", [])
    st.session_state.pending_notifications = []
    return notifications


def show_notifications() -> None:
    """Render queued notifications as toasts."""
    for notification in pop_notifications():
        icon = "✅" if notification.level is NotificationLevel.SUCCESS else "⚠️"
        st.toast(f"**{notification.title}** {notification.message}", icon=icon)


def get_collection() -> ThumbnailCollection:
    """
    Get this session's thumbnail collection, loading it from the store on first use.

    The collection is never reloaded afterwards; a browser reload starts a new session.
    A store that cannot be built leaves the session with an empty collection whose
    operations all fail, reported once as "Loading failed".
    """
    collection = st.session_state.get("thumbnail_collection")
    if collection is None:
        try:
            store: DocumentStore = get_document_store()
        except Exception as e:
            logger.error("document_store_unavailable", error=str(e))
            store = UnavailableDocumentStore(e)

        collection = ThumbnailCollection(store, notifier=queue_notification)
        st.session_state.thumbnail_collection = collection

    if not collection.loaded:
        with st.spinner("Loading thumbnails..."):
            run_async(collection.load())
        logger.info("collection_loaded", session_id=collection.session_id, count=len(collection))

    return collection


def get_size_gate() -> SizeGate:
    """Get the size gate used for uploads in this session."""
    gate = st.session_state.get("size_gate")
    if gate is None:
        gate = SizeGate()
        st.session_state.size_gate = gate
    return gate


def submit_upload(title: str, category: str | None, uploaded_file: Any) -> SubmitOutcome:
    """
    Validate, encode and store a new thumbnail.

    Field problems come back as inline errors and nothing is written. An
    unreadable file or a failed write is reported as an "Upload failed"
    notification.
    """
    errors = validate_upload_form(title, category, uploaded_file)
    if errors:
        return SubmitOutcome(errors=errors)

    collection = get_collection()
    try:
        image_data = run_async(get_size_gate().encode_and_check(uploaded_file))
    except (PayloadTooLargeError, ValidationError) as e:
        return SubmitOutcome(errors={"image": e.user_message})
    except EncodingError as e:
        notification = failure_notification("Upload failed", e)
        queue_notification(notification)
        return SubmitOutcome(result=OperationResult(False, notification))

    result = run_async(collection.create(title, category, image_data))
    return SubmitOutcome(result=result)


def submit_edit(record_id: str, title: str, category: str | None) -> SubmitOutcome:
    """Validate and store new title/category values for a thumbnail."""
    errors = validate_edit_form(title, category)
    if errors:
        return SubmitOutcome(errors=errors)

    result = run_async(get_collection().update(record_id, title, category))
    return SubmitOutcome(result=result)


def submit_delete(record_id: str) -> OperationResult:
    """Delete a thumbnail."""
    return run_async(get_collection().delete(record_id))


def get_critique_service() -> CritiqueService:
    """Get this session's critique service; its HTTP client is bound to the session loop."""
    service = st.session_state.get("critique_service")
    if service is None:
        service = CritiqueService(AsyncOpenAI(api_key=get_openai_api_key()))
        st.session_state.critique_service = service
        logger.info("critique_service_initialized", model=service.model)
    return service


def request_critique(image_data: str) -> CritiqueResult | None:
    """
    Critique an encoded image; failures become a notification and return None.
    """
    try:
        service = get_critique_service()
        with st.spinner("Analyzing thumbnail..."):
            return run_async(service.critique(image_data))
    except ValueError as e:
        # OPENAI_API_KEY missing
        error = CritiqueError(
            str(e), code="critique_not_configured", user_message="AI critique is not configured."
        )
    except (CritiqueError, EncodingError) as e:
        error = e

    queue_notification(Notification(NotificationLevel.ERROR, "Critique failed", error.user_message))
    return None


def critique_uploaded_file(uploaded_file: Any) -> CritiqueResult | None:
    """Encode a selected (not yet stored) file and critique it."""
    try:
        image_data = run_async(get_size_gate().encode_and_check(uploaded_file))
    except (ValidationError, EncodingError) as e:
        queue_notification(Notification(NotificationLevel.ERROR, "Critique failed", e.user_message))
        return None
    return request_critique(image_data)


def build_download_payload(record: ThumbnailRecord) -> tuple[bytes, str, str] | None:
    """
    Decode a stored thumbnail for the download button.

    Returns:
        tuple: (data, file_name, mime_type), or None when the stored image is corrupt
    """
    try:
        return record.decode_image(), record.download_filename, record.mime_type
    except EncodingError as e:
        logger.warning("download_decode_failed", record_id=record.id, error=str(e))
        return None
