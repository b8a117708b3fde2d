"""PostgreSQL dialect adapter."""

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExecutionError
from .base import DialectAdapter, TableSchema

logger = logging.getLogger(__name__)


class PostgresqlAdapter(DialectAdapter):
    """PostgreSQL dialect adapter."""

    provider = "PostgreSQL"

    def quote_identifier(self, name: str) -> str:
        return '"' + str(name).replace('"', '""') + '"'

    def fetch_columns(self, conn: Connection, table: str) -> List[str]:
        query = text("""
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = :table
              AND table_schema = current_schema()
            ORDER BY ordinal_position
        """)
        with conn.begin():
            return [str(c) for c in conn.execute(query, {"table": table}).scalars().all()]

    def resolve_table(self, conn: Connection, table: str) -> TableSchema:
        # Unquoted identifiers are folded to lower case, so try that spelling first
        lowered = table.lower()
        columns = self.fetch_columns(conn, lowered)
        if columns:
            return TableSchema(lowered, columns)
        if lowered == table:
            return TableSchema(table, [])
        logger.debug(f"No columns for {lowered}, retrying with original case {table}")
        return TableSchema(table, self.fetch_columns(conn, table))

    def clean_table(self, conn: Connection, table: str) -> None:
        logger.info(f"Cleaning table {table} (provider {self.provider})...")
        try:
            self._execute(conn, f"TRUNCATE TABLE {self.quote_table(table)} RESTART IDENTITY CASCADE")
        except SQLAlchemyError as e:
            raise ExecutionError(f"Could not clean table '{table}': {e}") from e
