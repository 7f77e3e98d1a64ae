"""SQL Server connection factory for the source store."""

import logging
from typing import Any

import pyodbc

from .base import ConnectionFactory

logger = logging.getLogger(__name__)


class SQLServerConnectionFactory(ConnectionFactory):
    """Connection factory for SQL Server databases."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        connection_string: str | None = None,
        store_name: str = "source",
        connect_timeout: int = 10,
    ):
        """
        Initialize SQL Server connection factory.

        Args:
            host: SQL Server host (required if connection_string not provided)
            port: SQL Server port (required if connection_string not provided)
            database: Database name (required if connection_string not provided)
            user: Username (required if connection_string not provided)
            password: Password (required if connection_string not provided)
            driver: ODBC driver name
            connection_string: Complete ODBC connection string (alternative to individual params)
            store_name: Logical store name
            connect_timeout: Login timeout in seconds
        """
        if not connection_string and not all([host, port, database, user, password]):
            raise ValueError(
                "Either connection_string or all of (host, port, database, user, password) must be provided"
            )

        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.driver = driver
        self.connection_string = connection_string

        if connection_string:
            self.driver = self._extract_from_conn_str(connection_string, "DRIVER") or driver

        super().__init__(store_name)

    @staticmethod
    def _extract_from_conn_str(conn_str: str, key: str) -> str | None:
        """Extract a value from an ODBC connection string."""
        for part in conn_str.split(";"):
            name, sep, value = part.partition("=")
            if sep and name.strip().upper() == key.upper():
                return value.strip().strip("{}")
        return None

    def build_connection_string(self) -> str:
        if self.connection_string:
            return self.connection_string
        return (
            f"DRIVER={{{self.driver}}};"
            f"SERVER={self.host},{self.port};"
            f"DATABASE={self.database};"
            f"UID={self.user};"
            f"PWD={self.password};"
            f"TrustServerCertificate=yes;"
            f"Encrypt=yes;"
        )

    def _create_connection(self) -> pyodbc.Connection:
        conn = pyodbc.connect(self.build_connection_string(), timeout=self.connect_timeout)
        conn.autocommit = True
        return conn

    def _close_connection(self, conn: pyodbc.Connection) -> None:
        conn.close()

    def _get_db_type(self) -> str:
        return "sqlserver"

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        return (pyodbc.Error,)

    def verify_driver(self) -> bool:
        """Check that the configured ODBC driver is registered with the driver manager."""
        try:
            installed: Any = pyodbc.drivers()
        except pyodbc.Error as e:
            logger.error(f"ODBC driver manager unavailable: {e}")
            return False

        if self.driver not in installed:
            logger.error(
                f"ODBC driver '{self.driver}' not installed "
                f"(available: {', '.join(installed) or 'none'})"
            )
            return False
        return True
