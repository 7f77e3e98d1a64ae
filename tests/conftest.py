"""
Pytest configuration and fixtures for domain reconciliation tests.

Provides in-memory stand-ins for the source and target stores so that the
worker and coordinator run their real code paths without a database.
"""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from domain_recon.engine.queries import ReconciliationQueries
from domain_recon.store import ConnectionFactory, StoreConnections


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakeDriverError(Exception):
    """Exception type the fake driver raises."""


class TargetCursor:
    """
    Cursor over an ordered target table.

    A parameterless execute() answers the count query; (start, end) selects
    the 1-based row numbers of the paged query.
    """

    def __init__(self, rows: list[tuple[str, str | None]], fail_on: str | None = None):
        self.rows = rows
        self.fail_on = fail_on
        self.executed: list[tuple | None] = []
        self.closed = False
        self._pending: list = []

    def execute(self, query: str, params: tuple | None = None) -> None:
        if self.fail_on == "execute":
            raise FakeDriverError("relation does not exist")
        self.executed.append(params)
        if params is None:
            self._pending = [(len(self.rows),)]
        else:
            start, end = params
            self._pending = list(self.rows[start - 1:end])

    def fetchone(self):
        if self.fail_on == "fetch":
            raise FakeDriverError("connection reset")
        return self._pending.pop(0) if self._pending else None

    def fetchmany(self, size: int):
        if self.fail_on == "fetch":
            raise FakeDriverError("connection reset")
        page, self._pending = self._pending[:size], self._pending[size:]
        return page

    def close(self) -> None:
        self.closed = True


class SourceCursor:
    """Cursor answering the expected-domains query for one key at a time."""

    def __init__(self, domains_by_key: dict[str, list[str | None]], fail_on: str | None = None):
        self.domains_by_key = domains_by_key
        self.fail_on = fail_on
        self.executed: list[tuple] = []
        self.closed = False
        self._pending: list = []

    def execute(self, query: str, params: tuple) -> None:
        if self.fail_on == "execute":
            raise FakeDriverError("invalid object name")
        self.executed.append(params)
        self._pending = [(domain,) for domain in self.domains_by_key.get(params[0], [])]

    def fetchone(self):
        if self.fail_on == "fetch":
            raise FakeDriverError("communication link failure")
        return self._pending.pop(0) if self._pending else None

    def close(self) -> None:
        self.closed = True


class FakeConnectionFactory(ConnectionFactory):
    """ConnectionFactory whose connections are MagicMocks handing out fake cursors."""

    def __init__(self, store_name: str, cursor_factory, fail_connect: bool = False,
                 driver_available: bool = True):
        super().__init__(store_name)
        self.cursor_factory = cursor_factory
        self.fail_connect = fail_connect
        self.driver_available = driver_available
        self.connections: list[MagicMock] = []
        self.cursors: list = []
        self._lock = threading.Lock()

    def _create_connection(self):
        if self.fail_connect:
            raise FakeDriverError(f"could not connect to {self.store_name}")

        conn = MagicMock(name=f"{self.store_name}_connection")

        def new_cursor():
            cursor = self.cursor_factory()
            with self._lock:
                self.cursors.append(cursor)
            return cursor

        conn.cursor.side_effect = new_cursor
        with self._lock:
            self.connections.append(conn)
        return conn

    def _close_connection(self, conn) -> None:
        conn.close()

    def _get_db_type(self) -> str:
        return f"fake-{self.store_name}"

    def _driver_errors(self):
        return (FakeDriverError,)

    def verify_driver(self) -> bool:
        return self.driver_available


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def queries() -> ReconciliationQueries:
    """Statements for the default schema."""
    return ReconciliationQueries()


@pytest.fixture
def make_connections():
    """
    Build StoreConnections backed by in-memory tables.

    Usage:
        connections = make_connections(
            target_rows=[("K1", "x.com,y.com")],
            domains_by_key={"K1": ["x.com", "w.com"]},
        )
    """

    def _make(
        target_rows=(),
        domains_by_key=None,
        target_fail_on=None,
        source_fail_on=None,
        target_fail_connect=False,
        source_fail_connect=False,
    ) -> StoreConnections:
        rows = list(target_rows)
        domains = dict(domains_by_key or {})
        target = FakeConnectionFactory(
            "target",
            lambda: TargetCursor(rows, fail_on=target_fail_on),
            fail_connect=target_fail_connect,
        )
        source = FakeConnectionFactory(
            "source",
            lambda: SourceCursor(domains, fail_on=source_fail_on),
            fail_connect=source_fail_connect,
        )
        return StoreConnections(source=source, target=target)

    return _make


@pytest.fixture
def scenario_connections(make_connections) -> StoreConnections:
    """K1 is missing w.com; K2 is complete."""
    return make_connections(
        target_rows=[("K1", "x.com,y.com"), ("K2", "z.com")],
        domains_by_key={"K1": ["w.com", "x.com", "y.com"], "K2": ["z.com"]},
    )
