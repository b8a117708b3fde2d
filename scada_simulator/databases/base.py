"""
Dialect adapter base class for multi-database support.

Each backend (SQLite, SQL Server, PostgreSQL) implements this interface to provide
dialect-specific identifier quoting, catalog introspection, table cleanup and
transactional batch inserts. All operations run on the caller's open connection;
every statement is wrapped in its own ``conn.begin()`` block.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExecutionError, SchemaError

logger = logging.getLogger(__name__)


class TableSchema(NamedTuple):
    """Table name as spelled in the catalog plus its ordered column names."""

    name: str
    columns: List[str]


class DialectAdapter(ABC):
    """Abstract base for database dialect adapters."""

    #: Provider tag as written in the connection descriptor.
    provider: str = ""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote a single identifier (table or column)."""
        pass

    @abstractmethod
    def fetch_columns(self, conn: Connection, table: str) -> List[str]:
        """Query the live catalog for the ordered column names of ``table``."""
        pass

    @abstractmethod
    def clean_table(self, conn: Connection, table: str) -> None:
        """Delete every row of ``table`` and reset its identity counter."""
        pass

    def quote_table(self, table: str) -> str:
        """Quote a table name for use in DML."""
        return self.quote_identifier(table)

    def resolve_table(self, conn: Connection, table: str) -> TableSchema:
        """Return the catalog spelling of ``table`` together with its columns."""
        return TableSchema(table, self.fetch_columns(conn, table))

    def discover_table(self, conn: Connection, table: str) -> TableSchema:
        """Discover ``table`` from the catalog. Raises SchemaError if it has no columns."""
        try:
            schema = self.resolve_table(conn, table)
        except SQLAlchemyError as e:
            raise ExecutionError(f"Could not read columns of table '{table}': {e}") from e
        if not schema.columns:
            raise SchemaError(f"Table '{table}' not found or has no columns.")
        logger.debug(f"Discovered {len(schema.columns)} columns in {schema.name}")
        return schema

    def discover_columns(self, conn: Connection, table: str) -> List[str]:
        """Ordered column names of ``table``. Raises SchemaError if there are none."""
        return self.discover_table(conn, table).columns

    def build_insert_statement(self, table: str, columns: Sequence[str]) -> str:
        """Build a parameterized INSERT with positional bind names p0..pN."""
        column_list = ", ".join(self.quote_identifier(c) for c in columns)
        placeholders = ", ".join(f":p{i}" for i in range(len(columns)))
        return f"INSERT INTO {self.quote_table(table)} ({column_list}) VALUES ({placeholders})"

    def insert_batch(self, conn: Connection, table: str, rows: Sequence[Dict[str, Any]]) -> int:
        """Insert ``rows`` in one transaction. Returns the number of rows written.

        The column list comes from the first row; every other row must carry
        exactly the same keys. On failure the transaction is rolled back and
        ExecutionError is raised, so a batch is never partially committed.
        """
        if not rows:
            return 0

        columns = list(rows[0].keys())
        expected = set(columns)
        for idx, row in enumerate(rows):
            if set(row.keys()) != expected:
                raise ExecutionError(
                    f"Row {idx} of batch for '{table}' has columns {sorted(row.keys())}, "
                    f"expected {sorted(columns)}"
                )

        stmt = text(self.build_insert_statement(table, columns))
        params = [{f"p{i}": row[c] for i, c in enumerate(columns)} for row in rows]
        try:
            with conn.begin():
                conn.execute(stmt, params)
        except SQLAlchemyError as e:
            raise ExecutionError(f"Insert of {len(rows)} rows into '{table}' failed: {e}") from e
        return len(rows)

    def _execute(self, conn: Connection, sql: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Run one statement in its own transaction."""
        with conn.begin():
            conn.execute(text(sql), params or {})
