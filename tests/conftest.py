"""Shared fixtures: a file-backed SQLite database holding a data-logger table."""

from typing import Sequence

import pytest
from sqlalchemy import create_engine, text

from scada_simulator.databases import SqliteAdapter

_quote = SqliteAdapter().quote_identifier


def _create_logger_table(engine, table: str = "ANA", measures: Sequence[str] = ("A", "B"), autoincrement: bool = True):
    """Create a table with the system columns plus one REAL/INTEGER pair per measure."""
    id_column = "ID INTEGER PRIMARY KEY AUTOINCREMENT" if autoincrement else "ID INTEGER PRIMARY KEY"
    columns = [id_column, "UTCTimestamp_Ticks INTEGER NOT NULL", "LogType INTEGER", "NotSync INTEGER"]
    for m in measures:
        columns.append(f"{_quote(m)} REAL")
        columns.append(f"{_quote('_' + m + '_Q')} INTEGER")
    with engine.begin() as conn:
        conn.execute(text(f"CREATE TABLE {_quote(table)} ({', '.join(columns)})"))
    return table


def _fetch_rows(engine, table: str = "ANA"):
    with engine.connect() as conn:
        return [dict(r) for r in conn.execute(text(f"SELECT * FROM {_quote(table)} ORDER BY ID")).mappings()]


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "scada.db"


@pytest.fixture
def sqlite_engine(db_path):
    engine = create_engine(f"sqlite:///{db_path}")
    yield engine
    engine.dispose()


@pytest.fixture
def make_logger_table(sqlite_engine):
    def make(table: str = "ANA", measures: Sequence[str] = ("A", "B"), autoincrement: bool = True):
        return _create_logger_table(sqlite_engine, table, measures, autoincrement)
    return make


@pytest.fixture
def fetch_rows(sqlite_engine):
    def fetch(table: str = "ANA"):
        return _fetch_rows(sqlite_engine, table)
    return fetch


@pytest.fixture
def logger_table(make_logger_table):
    return make_logger_table()
