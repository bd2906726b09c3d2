"""Configuration dataclass for the SQL gateway."""

from dataclasses import dataclass


@dataclass
class StoreConfig:
    """Configuration for SQLGateway."""

    table_prefix: str = "huddle_"
    """Prefix for table names. 'messages' becomes 'huddle_messages'."""

    auto_create_tables: bool = True
    """Automatically create tables if they don't exist."""
