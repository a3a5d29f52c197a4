"""
Services module for thumbzone application.

This module contains all service classes that handle business logic:
- Encoding: image files to data URIs and back
- SizeGate: upload form validation and payload size ceilings
- DocumentStore: Firestore and DuckDB document persistence
- ThumbnailCollection: local view synchronized with the document store
- CritiqueService: AI thumbnail critique
"""

from .collection import Notification, NotificationLevel, OperationResult, ThumbnailCollection
from .critique import CritiqueResult, CritiqueService
from .document_store import (
    DocumentStore,
    DuckDBDocumentStore,
    FirestoreDocumentStore,
    UnavailableDocumentStore,
    create_document_store,
    get_document_store,
)
from .encoding import decode_data_uri, encode_image_bytes, encode_image_file
from .size_gate import SizeGate

__all__ = [
    "Notification",
    "NotificationLevel",
    "OperationResult",
    "ThumbnailCollection",
    "CritiqueResult",
    "CritiqueService",
    "DocumentStore",
    "DuckDBDocumentStore",
    "FirestoreDocumentStore",
    "UnavailableDocumentStore",
    "create_document_store",
    "get_document_store",
    "decode_data_uri",
    "encode_image_bytes",
    "encode_image_file",
    "SizeGate",
]
