"""Database dialect adapters for multi-database support."""

from typing import Tuple

from ..errors import ConfigurationError
from .base import DialectAdapter, TableSchema
from .mssql import MssqlAdapter
from .postgresql import PostgresqlAdapter
from .sqlite import SqliteAdapter

_ADAPTERS = {
    "sqlite": SqliteAdapter,
    "sqlserver": MssqlAdapter,
    "postgresql": PostgresqlAdapter,
}


def get_adapter(provider: str) -> DialectAdapter:
    """Get the dialect adapter for the given provider tag.

    Args:
        provider: Provider name from the connection descriptor (SQLite, SqlServer, PostgreSQL).
            Matching is case-insensitive.

    Raises:
        ConfigurationError: if the provider is not supported.
    """
    adapter_cls = _ADAPTERS.get((provider or "").strip().lower())
    if adapter_cls is None:
        raise ConfigurationError(
            f"Provider '{provider}' not supported. Use one of: {', '.join(supported_providers())}"
        )
    return adapter_cls()


def supported_providers() -> Tuple[str, ...]:
    """Return tuple of supported provider names as written in connection descriptors."""
    return tuple(cls.provider for cls in _ADAPTERS.values())


__all__ = [
    "DialectAdapter",
    "MssqlAdapter",
    "PostgresqlAdapter",
    "SqliteAdapter",
    "TableSchema",
    "get_adapter",
    "supported_providers",
]
