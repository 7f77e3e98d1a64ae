"""
Reconciliation run coordinator.

Counts the target rows, partitions them into one range per worker, runs
every worker on its own thread and blocks on a CompletionBarrier until all
of them have signalled.
"""

import contextvars
import logging
import os
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path

from opentelemetry import trace

from domain_recon.errors import InterruptedWaitError, ReconciliationError
from domain_recon.report.sink import TIMESTAMP_FORMAT, CsvResultSink, result_file_name
from domain_recon.store import StoreConnections
from domain_recon.utils.tracing import add_span_event, trace_operation

from .barrier import CompletionBarrier
from .counter import count_target_records
from .metrics import RUN_DURATION, WORKERS_COMPLETED, WORKERS_IN_FLIGHT
from .models import RowRange, RunSummary
from .partition import partition
from .queries import ReconciliationQueries
from .worker import ReconciliationWorker

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """One worker per available CPU."""
    return os.cpu_count() or 1


class Coordinator:
    """
    Orchestrates one reconciliation run.

    Workers run concurrently on a ThreadPoolExecutor sized to the number of
    ranges; the barrier, not the executor, decides when the run is over.
    """

    def __init__(
        self,
        connections: StoreConnections,
        queries: ReconciliationQueries,
        workers: int | None = None,
        output_dir: str | Path = ".",
        sink_factory: Callable[[Path], CsvResultSink] = CsvResultSink,
        fetch_size: int = 500,
        clock: Callable[[], datetime] = datetime.now,
        announce: Callable[[str], None] = print,
    ):
        """
        Initialize coordinator.

        Args:
            connections: Factories for the source and target stores
            queries: Statements workers and the record counter run
            workers: Maximum concurrent workers (default: CPU count)
            output_dir: Directory receiving one result file per range
            sink_factory: Builds the sink for a result file path
            fetch_size: Target rows each worker fetches per round trip
            clock: Source of the run timestamp used in file names
            announce: Receives operator-facing progress lines (stdout by default)
        """
        self.connections = connections
        self.queries = queries
        self.workers = workers if workers is not None else default_worker_count()
        self.output_dir = Path(output_dir)
        self.sink_factory = sink_factory
        self.fetch_size = fetch_size
        self.clock = clock
        self.announce = announce
        self.summary = RunSummary()

        if self.workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {self.workers}")

        logger.info(
            f"Coordinator initialized: workers={self.workers}, "
            f"output_dir={self.output_dir}"
        )

    def run(self) -> bool:
        """
        Execute the run.

        Returns:
            True only if every range was reconciled. Which ranges failed is
            reported in each worker's diagnostics and in ``self.summary``.
        """
        self.summary = RunSummary()
        started = time.monotonic()

        with trace_operation(
            "reconciliation_run",
            kind=trace.SpanKind.INTERNAL,
            max_workers=self.workers,
        ) as span:
            with RUN_DURATION.labels(worker_count=self.workers).time():
                succeeded = self._run()

            self.summary.duration_seconds = time.monotonic() - started
            span.set_attribute("succeeded", succeeded)
            span.set_attribute("failed_ranges", len(self.summary.failed_ranges))

        return succeeded

    def _run(self) -> bool:
        try:
            total = count_target_records(self.connections.target, self.queries.count_query)
        except ReconciliationError as e:
            logger.error(f"Failed to count target records: {e}", exc_info=True)
            return False

        self.summary.total_records = total
        self.announce(f"Testing {total} records.")

        ranges = partition(total, self.workers)
        self.summary.ranges = ranges
        if not ranges:
            logger.warning("No test records found in target table.")
            return True

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create output directory {self.output_dir}: {e}")
            return False

        run_timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
        barrier = CompletionBarrier()
        workers = [self._create_worker(row_range, barrier, run_timestamp) for row_range in ranges]

        logger.info(
            f"Dispatching {len(workers)} worker(s) over {total} records: "
            f"{', '.join(str(r) for r in ranges)}"
        )

        executor = ThreadPoolExecutor(
            max_workers=len(workers), thread_name_prefix="recon-worker"
        )
        futures: list[Future] = []
        try:
            for worker in workers:
                barrier.increment()
                WORKERS_IN_FLIGHT.inc()
                # Each worker thread gets its own copy so spans nest under this run
                ctx = contextvars.copy_context()
                try:
                    futures.append(executor.submit(ctx.run, worker.execute))
                except RuntimeError as e:
                    logger.error(f"Failed to dispatch worker for range {worker.row_range}: {e}")
                    self._release_undispatched(worker, barrier)
            add_span_event("workers_dispatched", count=len(futures))

            try:
                barrier.wait()
            except InterruptedWaitError as e:
                logger.error(f"Process was interrupted. Some records were not tested. ({e})")
                self._release_unstarted(futures, barrier)
                add_span_event("run_interrupted", in_flight=barrier.in_flight)
                self.summary.interrupted = True
                return False
        finally:
            executor.shutdown(wait=not self.summary.interrupted, cancel_futures=True)

        self.summary.failed_ranges = [w.row_range for w in workers if not w.succeeded]
        self.summary.rows_written = sum(w.rows_written for w in workers)

        if self.summary.failed_ranges:
            logger.error(
                f"{len(self.summary.failed_ranges)} of {len(workers)} range(s) failed; "
                f"some records were not tested"
            )
        logger.info(
            f"Reconciliation complete: {total} records in {len(workers)} range(s), "
            f"{self.summary.rows_written} discrepancies written"
        )

        return not self.summary.failed_ranges

    def _create_worker(
        self, row_range: RowRange, barrier: CompletionBarrier, run_timestamp: str
    ) -> ReconciliationWorker:
        path = self.output_dir / result_file_name(run_timestamp, row_range.start, row_range.end)
        return ReconciliationWorker(
            row_range=row_range,
            connections=self.connections,
            sink=self.sink_factory(path),
            barrier=barrier,
            queries=self.queries,
            fetch_size=self.fetch_size,
        )

    @staticmethod
    def _release_undispatched(worker: ReconciliationWorker, barrier: CompletionBarrier) -> None:
        # A submit that failed may still have queued the work item
        if worker.abandon():
            barrier.decrement()
            WORKERS_IN_FLIGHT.dec()
            WORKERS_COMPLETED.labels(status="failed").inc()

    @staticmethod
    def _release_unstarted(futures: list[Future], barrier: CompletionBarrier) -> None:
        """Cancel workers that never started and signal on their behalf."""
        for future in futures:
            if future.cancel():
                barrier.decrement()
                WORKERS_IN_FLIGHT.dec()
