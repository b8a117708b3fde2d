"""Tests for the SQL Server adapter using a fake connection."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from scada_simulator.databases import MssqlAdapter
from scada_simulator.errors import ExecutionError


def _executed_sql(conn):
    return [str(call.args[0]) for call in conn.execute.call_args_list]


def test_quote_identifier_doubles_closing_bracket():
    adapter = MssqlAdapter()
    assert adapter.quote_identifier("ANA") == "[ANA]"
    assert adapter.quote_identifier("we]ird") == "[we]]ird]"
    assert adapter.quote_identifier("a[b") == "[a[b]"


def test_fetch_columns_queries_information_schema():
    conn = MagicMock()
    conn.execute.return_value.scalars.return_value.all.return_value = ["ID", "UTCTimestamp_Ticks", "P1"]
    columns = MssqlAdapter().discover_columns(conn, "ANA")
    assert columns == ["ID", "UTCTimestamp_Ticks", "P1"]
    assert "INFORMATION_SCHEMA.COLUMNS" in _executed_sql(conn)[0]
    assert "TABLE_SCHEMA = SCHEMA_NAME()" in _executed_sql(conn)[0]
    assert conn.execute.call_args.args[1] == {"table": "ANA"}


def test_insert_statement_uses_brackets_and_positional_binds():
    sql = MssqlAdapter().build_insert_statement("ANA", ["UTCTimestamp_Ticks", "P]1"])
    assert sql == "INSERT INTO [ANA] ([UTCTimestamp_Ticks], [P]]1]) VALUES (:p0, :p1)"


def test_reseed_statement_escapes_literal():
    assert MssqlAdapter().build_reseed_statement("O'Brien") == "DBCC CHECKIDENT('[O''Brien]', RESEED, 0)"


def test_clean_table_deletes_then_reseeds():
    conn = MagicMock()
    MssqlAdapter().clean_table(conn, "ANA")
    assert _executed_sql(conn) == ["DELETE FROM [ANA]", "DBCC CHECKIDENT('[ANA]', RESEED, 0)"]


def test_clean_table_swallows_reseed_failure(caplog):
    conn = MagicMock()
    conn.execute.side_effect = [None, OperationalError("DBCC", {}, Exception("no identity column"))]
    MssqlAdapter().clean_table(conn, "ANA")
    assert "Could not reseed identity of ANA" in caplog.text


def test_clean_table_delete_failure_is_fatal():
    conn = MagicMock()
    conn.execute.side_effect = OperationalError("DELETE", {}, Exception("connection lost"))
    with pytest.raises(ExecutionError, match="Could not clean table 'ANA'"):
        MssqlAdapter().clean_table(conn, "ANA")
    assert len(conn.execute.call_args_list) == 1


def test_insert_batch_maps_rows_to_bind_names():
    conn = MagicMock()
    rows = [{"UTCTimestamp_Ticks": 1, "P1": 2.5}, {"UTCTimestamp_Ticks": 2, "P1": 3.5}]
    assert MssqlAdapter().insert_batch(conn, "ANA", rows) == 2
    stmt, params = conn.execute.call_args.args
    assert str(stmt) == "INSERT INTO [ANA] ([UTCTimestamp_Ticks], [P1]) VALUES (:p0, :p1)"
    assert params == [{"p0": 1, "p1": 2.5}, {"p0": 2, "p1": 3.5}]
    conn.begin.assert_called_once()
