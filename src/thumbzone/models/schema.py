"""
Database schema definitions for the local DuckDB document store.

Each stored document field has its own column; ``DOCUMENT_FIELD_COLUMNS`` maps
the document field names used throughout the application to those columns.
The table is named after the configured collection.
"""

DEFAULT_TABLE = "thumbnails"

DOCUMENT_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    category TEXT NOT NULL,
    image_url TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL
);
"""

DOCUMENT_TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_{table}_created_at ON {table}(created_at);",
]

DOCUMENT_FIELD_COLUMNS = {
    "title": "title",
    "category": "category",
    "imageUrl": "image_url",
    "createdAt": "created_at",
}

REQUIRED_COLUMNS = {"id", *DOCUMENT_FIELD_COLUMNS.values()}


def is_valid_table_name(table: str) -> bool:
    """Table names are interpolated into SQL, so only plain identifiers are allowed."""
    return table.isidentifier() and table.isascii()


def get_schema_statements(table: str = DEFAULT_TABLE) -> list[str]:
    """
    Get all database schema creation statements.

    Args:
        table: Table holding the collection's documents

    Returns:
        List of SQL statements to create tables and indexes

    Raises:
        ValueError: If the table name is not a plain identifier
    """
    if not is_valid_table_name(table):
        raise ValueError(f"Invalid table name: {table!r}")
    indexes = [index.format(table=table) for index in DOCUMENT_TABLE_INDEXES]
    return [DOCUMENT_TABLE_SCHEMA.format(table=table), *indexes]


def column_for_field(field: str) -> str:
    """
    Map a document field name to its column.

    Raises:
        KeyError: If the field is not part of the thumbnails document
    """
    return DOCUMENT_FIELD_COLUMNS[field]
