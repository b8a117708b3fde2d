"""SQLite dialect adapter."""

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExecutionError
from .base import DialectAdapter, TableSchema

logger = logging.getLogger(__name__)


class SqliteAdapter(DialectAdapter):
    """SQLite dialect adapter."""

    provider = "SQLite"

    def quote_identifier(self, name: str) -> str:
        return '"' + str(name).replace('"', '""') + '"'

    def fetch_columns(self, conn: Connection, table: str) -> List[str]:
        with conn.begin():
            rows = conn.execute(text(f"PRAGMA table_info({self.quote_identifier(table)})")).mappings().fetchall()
        return [str(r["name"]) for r in rows]

    def resolve_table(self, conn: Connection, table: str) -> TableSchema:
        # Table names match case-insensitively, but sqlite_sequence stores the catalog spelling
        with conn.begin():
            name = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table' AND name = :table COLLATE NOCASE"),
                {"table": table},
            ).scalar()
        if name is None:
            return TableSchema(table, [])
        return TableSchema(str(name), self.fetch_columns(conn, name))

    def _has_sequence_table(self, conn: Connection) -> bool:
        with conn.begin():
            row = conn.execute(text(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'"
            )).fetchone()
        return row is not None

    def clean_table(self, conn: Connection, table: str) -> None:
        logger.info(f"Cleaning table {table} (provider {self.provider})...")
        try:
            self._execute(conn, f"DELETE FROM {self.quote_table(table)}")
            # sqlite_sequence only exists once some table declares AUTOINCREMENT
            if self._has_sequence_table(conn):
                self._execute(conn, "DELETE FROM sqlite_sequence WHERE name = :name COLLATE NOCASE", {"name": table})
        except SQLAlchemyError as e:
            raise ExecutionError(f"Could not clean table '{table}': {e}") from e
