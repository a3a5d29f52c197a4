"""
Models module for thumbzone application.

This module contains data models and schemas:
- ThumbnailRecord: Data class for a stored thumbnail
- Category: Closed set of thumbnail categories
- DatabaseManager: DuckDB connection and schema management for the local store
"""

from .database import DatabaseManager, get_database_manager
from .schema import get_schema_statements
from .thumbnail import ALL_CATEGORIES, Category, ThumbnailRecord, filter_options, parse_data_uri

__all__ = [
    "ALL_CATEGORIES",
    "Category",
    "ThumbnailRecord",
    "filter_options",
    "parse_data_uri",
    "DatabaseManager",
    "get_database_manager",
    "get_schema_statements",
]
