"""
Store access for the source (SQL Server) and target (PostgreSQL) databases.

Each worker opens its own connections through these factories; nothing
is pooled or shared across threads.
"""

from .base import ConnectionFactory, StoreConnections
from .postgres import PostgresConnectionFactory
from .sqlserver import SQLServerConnectionFactory

__all__ = [
    "ConnectionFactory",
    "StoreConnections",
    "PostgresConnectionFactory",
    "SQLServerConnectionFactory",
]
