"""SQL-backed persistence gateway."""

from huddle.sql.config import StoreConfig
from huddle.sql.dialect import Dialect, SchemaQueries, SQLiteDialect
from huddle.sql.gateway import SQLGateway

__all__ = [
    "Dialect",
    "SchemaQueries",
    "SQLGateway",
    "SQLiteDialect",
    "StoreConfig",
]
