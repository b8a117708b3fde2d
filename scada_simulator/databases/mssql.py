"""Microsoft SQL Server / Azure SQL dialect adapter."""

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExecutionError
from .base import DialectAdapter

logger = logging.getLogger(__name__)


class MssqlAdapter(DialectAdapter):
    """Microsoft SQL Server / Azure SQL dialect adapter."""

    provider = "SqlServer"

    def quote_identifier(self, name: str) -> str:
        return "[" + str(name).replace("]", "]]") + "]"

    def fetch_columns(self, conn: Connection, table: str) -> List[str]:
        query = text("""
            SELECT COLUMN_NAME
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_NAME = :table
              AND TABLE_SCHEMA = SCHEMA_NAME()
            ORDER BY ORDINAL_POSITION
        """)
        with conn.begin():
            return [str(c) for c in conn.execute(query, {"table": table}).scalars().all()]

    def build_reseed_statement(self, table: str) -> str:
        """DBCC CHECKIDENT takes the table as a string literal, so quote it and escape for the literal."""
        literal = self.quote_table(table).replace("'", "''")
        return f"DBCC CHECKIDENT('{literal}', RESEED, 0)"

    def clean_table(self, conn: Connection, table: str) -> None:
        logger.info(f"Cleaning table {table} (provider {self.provider})...")
        try:
            self._execute(conn, f"DELETE FROM {self.quote_table(table)}")
        except SQLAlchemyError as e:
            raise ExecutionError(f"Could not clean table '{table}': {e}") from e

        # Tables without an identity column reject CHECKIDENT
        try:
            self._execute(conn, self.build_reseed_statement(table))
        except SQLAlchemyError as e:
            logger.warning(f"Could not reseed identity of {table}: {e}")
