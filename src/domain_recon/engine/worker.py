"""
Per-range reconciliation worker.

A worker owns one row range, one result sink and its own source and target
connections. It pages through its slice of the target table and, for each
organization key, asks the source for the expected domains, writing every
expected domain missing from the target's joined value.

States run strictly in order:

    INIT -> CONNECT_TARGET -> PREPARE_ACTUAL -> CONNECT_SOURCE
         -> PREPARE_EXPECTED -> ITERATE -> DONE

Any failure aborts the worker; cleanup and the barrier signal always run.
"""

import threading
import time
from collections.abc import Iterator
from enum import Enum
from typing import Any

from domain_recon.errors import (
    QueryExecutionError,
    ReconciliationError,
    ResultFetchError,
    ResultWriteError,
    StatementPreparationError,
)
from domain_recon.report.sink import CsvResultSink
from domain_recon.store import StoreConnections
from domain_recon.utils.logging import ContextLogger
from domain_recon.utils.tracing import trace_operation

from .barrier import CompletionBarrier
from .membership import DOMAIN_DELIMITER, missing_values
from .metrics import (
    DISCREPANCIES_FOUND,
    RECORDS_TESTED,
    WORKER_DURATION,
    WORKERS_COMPLETED,
    WORKERS_IN_FLIGHT,
)
from .models import RESULT_HEADER, ResultRow, RowRange, TargetRecord
from .queries import ReconciliationQueries


class WorkerState(Enum):
    INIT = "init"
    CONNECT_TARGET = "connect_target"
    PREPARE_ACTUAL = "prepare_actual"
    CONNECT_SOURCE = "connect_source"
    PREPARE_EXPECTED = "prepare_expected"
    ITERATE = "iterate"
    DONE = "done"


class ReconciliationWorker:
    """
    Reconciles one row range of the target table against the source.

    execute() never raises: failures are logged with the worker's range and
    state, and reflected in ``succeeded``.
    """

    def __init__(
        self,
        row_range: RowRange,
        connections: StoreConnections,
        sink: CsvResultSink,
        barrier: CompletionBarrier,
        queries: ReconciliationQueries,
        fetch_size: int = 500,
        delimiter: str = DOMAIN_DELIMITER,
    ):
        """
        Initialize worker.

        Args:
            row_range: Rows of the target ordering this worker tests
            connections: Factories for the source and target stores
            sink: Destination for this range's discrepancies
            barrier: Barrier to signal exactly once when finished
            queries: Statements to run
            fetch_size: Target rows fetched per round trip
            delimiter: Separator of the target's joined domain list
        """
        if fetch_size < 1:
            raise ValueError(f"fetch_size must be at least 1, got {fetch_size}")

        self.row_range = row_range
        self.connections = connections
        self.sink = sink
        self.barrier = barrier
        self.queries = queries
        self.fetch_size = fetch_size
        self.delimiter = delimiter

        self.state = WorkerState.INIT
        self.succeeded = False
        self._claimed = False
        self._claim_lock = threading.Lock()
        self.records_tested = 0
        self.rows_written = 0

        self._target_conn: Any = None
        self._source_conn: Any = None
        self._actual_cursor: Any = None
        self._expected_cursor: Any = None

        # Keys are ordered, so repeats of a key arrive back to back
        self._current_key: str | None = None
        self._emitted_for_key: set[str] = set()

        self.log = ContextLogger(__name__, start_row=row_range.start, end_row=row_range.end)

    def __repr__(self) -> str:
        return f"ReconciliationWorker({self.row_range}, state={self.state.value})"

    def _claim(self) -> bool:
        with self._claim_lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def abandon(self) -> bool:
        """
        Mark a worker that could not be dispatched as never run.

        Returns:
            True if execute() had not started; the caller then signals the
            barrier on this worker's behalf. False if it is already running.
        """
        return self._claim()

    def execute(self) -> None:
        """Run the worker to completion, then signal the barrier."""
        if not self._claim():
            return
        started = time.monotonic()
        try:
            with trace_operation(
                "reconcile_range",
                start_row=self.row_range.start,
                end_row=self.row_range.end,
            ) as span:
                self._reconcile()
                span.set_attribute("records_tested", self.records_tested)
                span.set_attribute("rows_written", self.rows_written)
            self.state = WorkerState.DONE
            self.succeeded = True
        except ReconciliationError as e:
            self.log.error(
                f"Worker aborted during {self.state.value}: {e}",
                exc_info=True,
                state=self.state.value,
            )
        except Exception as e:
            self.log.error(
                f"Unexpected error during {self.state.value}: {e}",
                exc_info=True,
                state=self.state.value,
            )
        finally:
            try:
                self._cleanup()
                duration = time.monotonic() - started
                WORKER_DURATION.observe(duration)
                WORKERS_COMPLETED.labels(status="success" if self.succeeded else "failed").inc()
                WORKERS_IN_FLIGHT.dec()
                self.log.info(
                    f"Range {self.row_range} {'complete' if self.succeeded else 'FAILED'}: "
                    f"{self.records_tested} records tested, "
                    f"{self.rows_written} discrepancies written in {duration:.2f}s"
                )
            finally:
                self.barrier.decrement()

    def _reconcile(self) -> None:
        self.state = WorkerState.INIT
        if not self.sink.start(RESULT_HEADER):
            raise ResultWriteError(f"Failed to write header to {self.sink.path}")

        self.state = WorkerState.CONNECT_TARGET
        self._target_conn = self.connections.target.connect()

        self.state = WorkerState.PREPARE_ACTUAL
        self._actual_cursor = self._create_cursor(
            self._target_conn, "target", self.queries.actual_values_query
        )
        self._execute(
            self._actual_cursor,
            self.queries.actual_values_query,
            (self.row_range.start, self.row_range.end),
        )

        self.state = WorkerState.CONNECT_SOURCE
        self._source_conn = self.connections.source.connect()

        self.state = WorkerState.PREPARE_EXPECTED
        self._expected_cursor = self._create_cursor(
            self._source_conn, "source", self.queries.expected_values_query
        )

        self.state = WorkerState.ITERATE
        for record in self._target_records():
            self._reconcile_record(record)

    def _create_cursor(self, conn: Any, store: str, query: str) -> Any:
        try:
            return conn.cursor()
        except Exception as e:
            raise StatementPreparationError(
                f"Failed to create statement on {store} connection: {e}", query=query
            ) from e

    def _execute(self, cursor: Any, query: str, params: tuple) -> None:
        try:
            cursor.execute(query, params)
        except Exception as e:
            raise QueryExecutionError(f"Failed to execute query: {e}", query=query, params=params) from e

    def _target_records(self) -> Iterator[TargetRecord]:
        """Page through the target rows of this range in key order."""
        query = self.queries.actual_values_query
        while True:
            try:
                rows = self._actual_cursor.fetchmany(self.fetch_size)
            except Exception as e:
                raise ResultFetchError(
                    f"Failed to fetch next rows from actual values: {e}",
                    query=query,
                    params=(self.row_range.start, self.row_range.end),
                ) from e

            if not rows:
                return

            for key, actual_value in rows:
                yield TargetRecord(
                    key=str(key),
                    actual_value=actual_value if actual_value is not None else "",
                )

    def _expected_values(self, key: str) -> Iterator[str]:
        """Stream the source's expected domains for one key."""
        query = self.queries.expected_values_query
        params = (key,)
        self._execute(self._expected_cursor, query, params)

        while True:
            try:
                row = self._expected_cursor.fetchone()
            except Exception as e:
                raise ResultFetchError(
                    f"Failed to fetch next row from expected values: {e}",
                    query=query,
                    params=params,
                ) from e
            if row is None:
                return
            if row[0] is not None:
                yield row[0]

    def _reconcile_record(self, record: TargetRecord) -> None:
        if record.key != self._current_key:
            self._current_key = record.key
            self._emitted_for_key = set()

        # Drains the per-key result set before the next key executes
        for expected in missing_values(
            record.actual_value, self._expected_values(record.key), self.delimiter
        ):
            if expected in self._emitted_for_key:
                continue

            result = ResultRow(record.key, record.actual_value, expected)
            if not self.sink.write_row(result):
                raise ResultWriteError(
                    f"Failed to write result row to {self.sink.path}",
                    params=result,
                )

            self._emitted_for_key.add(expected)
            self.rows_written += 1
            DISCREPANCIES_FOUND.inc()

        self.records_tested += 1
        RECORDS_TESTED.inc()

    def _close_cursor(self, cursor: Any, store: str) -> None:
        if cursor is None:
            return
        try:
            cursor.close()
        except Exception as e:
            self.log.error(f"Failed to close {store} cursor: {e}", exc_info=True)

    def _cleanup(self) -> None:
        self._close_cursor(self._expected_cursor, "source")
        self._close_cursor(self._actual_cursor, "target")
        self.connections.source.close(self._source_conn)
        self.connections.target.close(self._target_conn)
        self._expected_cursor = self._actual_cursor = None
        self._source_conn = self._target_conn = None
