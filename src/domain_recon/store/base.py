"""
Base classes for store connection factories.

The engine never shares a connection between workers, so a factory simply
opens a fresh DB-API connection per call and closes it on request. Driver
exceptions are translated into the reconciliation error hierarchy.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from domain_recon.errors import DriverUnavailableError, StoreConnectionError
from domain_recon.utils.tracing import trace_operation

logger = logging.getLogger(__name__)


class ConnectionFactory:
    """
    Opens and closes connections to one logical store.

    Subclasses implement the driver-specific hooks.
    """

    def __init__(self, store_name: str):
        """
        Initialize connection factory.

        Args:
            store_name: Logical store name used in logs and spans ("source" or "target")
        """
        self.store_name = store_name

    def _create_connection(self) -> Any:
        """Create a new database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _close_connection(self, conn: Any) -> None:
        """Close a database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _get_db_type(self) -> str:
        """Get database type for logs and spans. Must be implemented by subclasses."""
        raise NotImplementedError

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        """Exception types raised by the driver. Must be implemented by subclasses."""
        raise NotImplementedError

    def verify_driver(self) -> bool:
        """Check the driver is usable. Must be implemented by subclasses."""
        raise NotImplementedError

    def connect(self) -> Any:
        """
        Open a new connection.

        Returns:
            DB-API connection owned exclusively by the caller

        Raises:
            StoreConnectionError: If the driver fails to connect
        """
        with trace_operation(
            f"{self.store_name}_connect",
            kind=trace.SpanKind.CLIENT,
            database_type=self._get_db_type(),
        ):
            try:
                conn = self._create_connection()
            except self._driver_errors() as e:
                raise StoreConnectionError(
                    f"Failed to connect to {self.store_name} database "
                    f"({self._get_db_type()}): {e}"
                ) from e

        logger.debug(f"Opened {self.store_name} connection ({self._get_db_type()})")
        return conn

    def close(self, conn: Any) -> bool:
        """
        Close a connection, logging rather than raising on failure.

        Returns:
            True if the connection closed cleanly
        """
        if conn is None:
            return True
        try:
            self._close_connection(conn)
            return True
        except Exception as e:
            logger.error(
                f"Failed to close connection to {self.store_name} database: {e}",
                exc_info=True,
            )
            return False

    @contextmanager
    def session(self) -> Iterator[Any]:
        """Open a connection for the duration of a with-block."""
        conn = self.connect()
        try:
            yield conn
        finally:
            self.close(conn)


@dataclass(frozen=True)
class StoreConnections:
    """The two stores a reconciliation run reads from."""

    source: ConnectionFactory
    target: ConnectionFactory

    def require_drivers(self) -> None:
        """
        Check both drivers before any worker starts.

        Raises:
            DriverUnavailableError: If either store's driver is unusable
        """
        for factory in (self.source, self.target):
            if not factory.verify_driver():
                raise DriverUnavailableError(
                    f"No usable {factory._get_db_type()} driver for the "
                    f"{factory.store_name} database"
                )
