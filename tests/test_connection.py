"""Tests for connection descriptor parsing and URL building."""

import pytest

from scada_simulator.connection import (
    build_url,
    create_engine_for,
    open_connection,
    parse_connection_descriptor,
    redact,
)
from scada_simulator.errors import ConfigurationError, ExecutionError


def test_provider_token_is_stripped():
    descriptor = parse_connection_descriptor("Provider=SQLite;Data Source=scada.db")
    assert descriptor.provider == "SQLite"
    assert descriptor.connection_string == "Data Source=scada.db"


def test_provider_anywhere_and_case_insensitive():
    descriptor = parse_connection_descriptor("Host=db;provider=postgresql;Database=scada;")
    assert descriptor.provider == "PostgreSQL"
    assert descriptor.parameters == (("Host", "db"), ("Database", "scada"))


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_empty_descriptor(raw):
    with pytest.raises(ConfigurationError, match="Connection string not found"):
        parse_connection_descriptor(raw)


def test_missing_provider():
    with pytest.raises(ConfigurationError, match="must contain Provider="):
        parse_connection_descriptor("Data Source=scada.db")


def test_unsupported_provider():
    with pytest.raises(ConfigurationError, match="not supported"):
        parse_connection_descriptor("Provider=Oracle;Data Source=orcl")


def test_malformed_segment():
    with pytest.raises(ConfigurationError, match="Malformed"):
        parse_connection_descriptor("Provider=SQLite;scada.db")


def test_redact_masks_passwords():
    descriptor = parse_connection_descriptor("Provider=SqlServer;Server=db;User Id=sa;Password=s3cret")
    assert redact(descriptor) == "Server=db;User Id=sa;Password=***"


def test_sqlite_url():
    url = build_url(parse_connection_descriptor("Provider=SQLite;Data Source=/data/scada.db"))
    assert url.drivername == "sqlite"
    assert url.database == "/data/scada.db"


def test_sqlite_url_requires_data_source():
    with pytest.raises(ConfigurationError, match="Data Source"):
        build_url(parse_connection_descriptor("Provider=SQLite;Mode=ReadWrite"))


def test_postgresql_url():
    url = build_url(parse_connection_descriptor(
        "Provider=PostgreSQL;Host=pg.local;Port=5433;Database=scada;Username=sim;Password=pw;SSL Mode=Require"
    ))
    assert url.drivername == "postgresql+psycopg"
    assert (url.host, url.port, url.database, url.username, url.password) == ("pg.local", 5433, "scada", "sim", "pw")
    assert url.query == {"sslmode": "require"}


def test_postgresql_invalid_port():
    with pytest.raises(ConfigurationError, match="port"):
        build_url(parse_connection_descriptor("Provider=PostgreSQL;Host=pg;Port=abc"))


def test_sqlserver_url_builds_odbc_string():
    url = build_url(parse_connection_descriptor(
        "Provider=SqlServer;Server=tcp:db,1433;Database=SCADA;User Id=sa;Password=pw;TrustServerCertificate=True"
    ))
    assert url.drivername == "mssql+pyodbc"
    assert url.query["odbc_connect"] == (
        "DRIVER={ODBC Driver 18 for SQL Server};SERVER=tcp:db,1433;DATABASE=SCADA;UID=sa;PWD=pw;"
        "TrustServerCertificate=yes"
    )


def test_sqlserver_keeps_explicit_driver_and_braces_values():
    url = build_url(parse_connection_descriptor(
        "Provider=SqlServer;Driver={ODBC Driver 17 for SQL Server};Server=db;Password=a}b"
    ))
    assert url.query["odbc_connect"] == "DRIVER={ODBC Driver 17 for SQL Server};SERVER=db;PWD={a}}b}"


def test_open_connection_to_sqlite(tmp_path):
    engine = create_engine_for(parse_connection_descriptor(f"Provider=SQLite;Data Source={tmp_path / 'x.db'}"))
    try:
        with open_connection(engine) as conn:
            assert not conn.closed
        assert conn.closed
    finally:
        engine.dispose()


def test_open_connection_failure_is_execution_error(tmp_path):
    missing_dir = tmp_path / "missing" / "x.db"
    engine = create_engine_for(parse_connection_descriptor(f"Provider=SQLite;Data Source={missing_dir}"))
    try:
        with pytest.raises(ExecutionError, match="Could not connect"):
            with open_connection(engine):
                pass
    finally:
        engine.dispose()
