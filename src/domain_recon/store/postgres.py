"""PostgreSQL connection factory for the target store."""

import logging
from typing import Any

import psycopg2
import psycopg2.extensions

from .base import ConnectionFactory

logger = logging.getLogger(__name__)


class PostgresConnectionFactory(ConnectionFactory):
    """Connection factory for PostgreSQL databases."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        store_name: str = "target",
        connect_timeout: int = 10,
    ):
        """
        Initialize PostgreSQL connection factory.

        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Username
            password: Password
            store_name: Logical store name
            connect_timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout

        super().__init__(store_name)

    def _create_connection(self) -> psycopg2.extensions.connection:
        conn = psycopg2.connect(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            connect_timeout=self.connect_timeout,
        )
        # Read-only workload, no transaction to manage
        conn.set_session(autocommit=True)
        return conn

    def _close_connection(self, conn: psycopg2.extensions.connection) -> None:
        if not conn.closed:
            conn.close()

    def _get_db_type(self) -> str:
        return "postgresql"

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        return (psycopg2.Error,)

    def verify_driver(self) -> bool:
        """Check that psycopg2 is linked against a usable libpq."""
        try:
            version: Any = psycopg2.extensions.libpq_version()
        except psycopg2.Error as e:
            logger.error(f"PostgreSQL driver unavailable: {e}")
            return False
        logger.debug(f"psycopg2 {psycopg2.__version__} using libpq {version}")
        return True
