"""
Connection descriptor handling.

A descriptor is an ADO-style ``key=value;key=value`` string carrying a
``Provider=<SQLite|SqlServer|PostgreSQL>`` token plus the backend's own
connection parameters. The provider token selects the dialect adapter and is
stripped before the remaining parameters are turned into a SQLAlchemy URL.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .databases import get_adapter
from .errors import ConfigurationError, ExecutionError

logger = logging.getLogger(__name__)

PROVIDER_KEY = "provider"
DEFAULT_MSSQL_DRIVER = "ODBC Driver 18 for SQL Server"
CONNECT_TIMEOUT_SECONDS = 10

_SECRET_KEYS = {"password", "pwd"}

_SQLITE_PATH_KEYS = ("data source", "datasource", "filename")

_MSSQL_KEY_MAP = {
    "server": "SERVER",
    "data source": "SERVER",
    "address": "SERVER",
    "database": "DATABASE",
    "initial catalog": "DATABASE",
    "user id": "UID",
    "uid": "UID",
    "user": "UID",
    "password": "PWD",
    "pwd": "PWD",
    "driver": "DRIVER",
    "trustservercertificate": "TrustServerCertificate",
    "trust server certificate": "TrustServerCertificate",
    "encrypt": "Encrypt",
}
_ODBC_BOOLEAN_KEYS = {"TrustServerCertificate", "Encrypt"}

_PG_KEY_MAP = {
    "host": "host",
    "server": "host",
    "port": "port",
    "database": "database",
    "db": "database",
    "username": "username",
    "user id": "username",
    "userid": "username",
    "user": "username",
    "password": "password",
    "ssl mode": "sslmode",
    "sslmode": "sslmode",
    "timeout": "connect_timeout",
}


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Provider name plus the backend-native ``(key, value)`` pairs, in their original order."""

    provider: str
    parameters: Tuple[Tuple[str, str], ...]

    @property
    def connection_string(self) -> str:
        """The descriptor with the provider token removed."""
        return ";".join(f"{k}={v}" for k, v in self.parameters)

    def get(self, *keys: str) -> Optional[str]:
        wanted = {k.lower() for k in keys}
        for key, value in self.parameters:
            if key.lower() in wanted:
                return value
        return None


def _split_pairs(raw: str) -> List[Tuple[str, str]]:
    pairs = []
    for part in raw.split(";"):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Malformed connection string segment '{part.strip()}' (expected key=value).")
        pairs.append((key.strip(), value.strip()))
    return pairs


def parse_connection_descriptor(raw: Optional[str]) -> ConnectionDescriptor:
    """Parse ``raw`` and validate its provider token.

    Raises ConfigurationError when the string is empty, has no Provider token,
    or names an unsupported provider. No connection is opened here.
    """
    if not raw or not raw.strip():
        raise ConfigurationError("Connection string not found (ConnectionStrings:Default).")

    provider = None
    parameters = []
    for key, value in _split_pairs(raw):
        if key.lower() == PROVIDER_KEY:
            provider = value
        else:
            parameters.append((key, value))

    if not provider:
        raise ConfigurationError("Connection string must contain Provider=SQLite|SqlServer|PostgreSQL;")
    adapter = get_adapter(provider)
    return ConnectionDescriptor(adapter.provider, tuple(parameters))


def redact(descriptor: ConnectionDescriptor) -> str:
    """Connection string without the provider token and with secrets masked."""
    return ";".join(
        f"{k}=***" if k.lower() in _SECRET_KEYS else f"{k}={v}" for k, v in descriptor.parameters
    )


def _odbc_value(value: str) -> str:
    if any(ch in value for ch in ";{}") or value != value.strip():
        return "{" + value.replace("}", "}}") + "}"
    return value


def _mssql_url(descriptor: ConnectionDescriptor) -> URL:
    odbc: Dict[str, str] = {}
    for key, value in descriptor.parameters:
        mapped = _MSSQL_KEY_MAP.get(key.lower(), key)
        if mapped in _ODBC_BOOLEAN_KEYS and value.lower() in ("true", "false"):
            value = "yes" if value.lower() == "true" else "no"
        odbc[mapped] = value
    driver = odbc.pop("DRIVER", DEFAULT_MSSQL_DRIVER).strip("{}")
    parts = [f"DRIVER={{{driver}}}"] + [f"{k}={_odbc_value(v)}" for k, v in odbc.items()]
    return URL.create("mssql+pyodbc", query={"odbc_connect": ";".join(parts)})


def _postgresql_url(descriptor: ConnectionDescriptor) -> URL:
    fields: Dict[str, str] = {}
    query: Dict[str, str] = {}
    for key, value in descriptor.parameters:
        mapped = _PG_KEY_MAP.get(key.lower(), key.lower().replace(" ", ""))
        if mapped in ("host", "port", "database", "username", "password"):
            fields[mapped] = value
        else:
            query[mapped] = value.lower() if mapped == "sslmode" else value
    port = fields.get("port")
    if port is not None:
        try:
            port = int(port)
        except ValueError as e:
            raise ConfigurationError(f"Invalid PostgreSQL port '{port}'.") from e
    return URL.create(
        "postgresql+psycopg",
        username=fields.get("username"),
        password=fields.get("password"),
        host=fields.get("host"),
        port=port,
        database=fields.get("database"),
        query=query,
    )


def _sqlite_url(descriptor: ConnectionDescriptor) -> URL:
    path = descriptor.get(*_SQLITE_PATH_KEYS)
    if not path:
        raise ConfigurationError("SQLite connection string needs a 'Data Source=<file>' entry.")
    return URL.create("sqlite", database=path)


_URL_BUILDERS = {
    "SQLite": _sqlite_url,
    "SqlServer": _mssql_url,
    "PostgreSQL": _postgresql_url,
}


def build_url(descriptor: ConnectionDescriptor) -> URL:
    """SQLAlchemy URL for ``descriptor``."""
    return _URL_BUILDERS[descriptor.provider](descriptor)


def create_engine_for(descriptor: ConnectionDescriptor) -> Engine:
    """Create a SQLAlchemy engine for ``descriptor``. Does not connect yet."""
    logger.debug(f"Creating {descriptor.provider} engine")
    connect_args = {"connect_timeout": CONNECT_TIMEOUT_SECONDS} if descriptor.provider == "PostgreSQL" else {
        "timeout": CONNECT_TIMEOUT_SECONDS
    }
    return create_engine(build_url(descriptor), pool_pre_ping=True, connect_args=connect_args, echo=False)


@contextmanager
def open_connection(engine: Engine) -> Iterator[Connection]:
    """Open the run's single connection. Connection failures surface as ExecutionError."""
    try:
        conn = engine.connect()
    except SQLAlchemyError as e:
        raise ExecutionError(f"Could not connect to database: {e}") from e
    try:
        yield conn
    finally:
        conn.close()
