"""
Database initialization and management for the local document store.

This module opens DuckDB database files and makes sure the documents
table exists before the store uses them.
"""

import logging
from pathlib import Path
from typing import Any

import duckdb

from .schema import DEFAULT_TABLE, REQUIRED_COLUMNS, get_schema_statements

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Manages a DuckDB database connection and its schema.
    """

    def __init__(self, db_path: str, table: str = DEFAULT_TABLE):
        """
        Initialize DatabaseManager.

        Args:
            db_path: Path to the DuckDB database file, or ":memory:"
            table: Table holding the documents
        """
        self.db_path = db_path
        self.table = table
        self._connection: duckdb.DuckDBPyConnection | None = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """
        Get or create a database connection.

        Returns:
            DuckDB connection object
        """
        if self._connection is None:
            self._connection = duckdb.connect(self.db_path)
            logger.info(f"Connected to DuckDB database at {self.db_path}")

        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("Closed DuckDB database connection")

    def initialize_schema(self) -> None:
        """
        Create the documents table and its indexes if they don't exist.

        Raises:
            duckdb.Error: If database operations fail
        """
        conn = self.connect()

        try:
            for statement in get_schema_statements(self.table):
                logger.debug(f"Executing SQL: {statement}")
                conn.execute(statement)
            logger.info("Database schema initialized successfully")

        except duckdb.Error as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise

    def verify_schema(self) -> bool:
        """
        Verify that the documents table exists with every required column.

        Returns:
            True if schema is valid, False otherwise
        """
        conn = self.connect()

        try:
            rows = conn.execute(
                "SELECT column_name FROM information_schema.columns WHERE table_name = ?", [self.table]
            ).fetchall()
            column_names = {row[0] for row in rows}

            if not column_names:
                logger.warning(f"Table {self.table} does not exist")
                return False

            missing_columns = REQUIRED_COLUMNS - column_names
            if missing_columns:
                logger.warning(f"Missing columns: {missing_columns}")
                return False

            return True

        except duckdb.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()


def get_database_manager(db_path: str, table: str = DEFAULT_TABLE) -> DatabaseManager:
    """
    Get a DatabaseManager with an initialized schema, creating the file if needed.

    Args:
        db_path: Path to the database file, or ":memory:"
        table: Table holding the documents

    Returns:
        DatabaseManager instance

    Raises:
        RuntimeError: If the schema cannot be created
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db_manager = DatabaseManager(db_path, table)

    if not db_manager.verify_schema():
        db_manager.initialize_schema()
        if not db_manager.verify_schema():
            raise RuntimeError(f"Schema verification failed after creation: {db_path}")
        logger.info(f"Initialized {table} schema at {db_path}")

    return db_manager
