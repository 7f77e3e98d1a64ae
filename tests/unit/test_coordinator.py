"""
Unit tests for the reconciliation coordinator.

Tests counting, partitioning into per-range result files, genuine
concurrent dispatch, failure aggregation and interrupt handling.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import patch

import pytest

from domain_recon.engine.barrier import CompletionBarrier
from domain_recon.engine.coordinator import Coordinator, default_worker_count
from domain_recon.engine.models import RowRange
from domain_recon.engine.worker import ReconciliationWorker
from domain_recon.errors import InterruptedWaitError
from domain_recon.report.sink import read_result_file

FIXED_NOW = datetime(2024, 1, 31, 12, 0, 0)


def make_coordinator(connections, queries, output_dir, workers=1, **kwargs):
    announced = []
    coordinator = Coordinator(
        connections=connections,
        queries=queries,
        workers=workers,
        output_dir=output_dir,
        clock=lambda: FIXED_NOW,
        announce=announced.append,
        **kwargs,
    )
    return coordinator, announced


class TestCoordinatorInit:
    def test_default_worker_count_is_cpu_count(self, scenario_connections, queries, tmp_path):
        coordinator = Coordinator(scenario_connections, queries, output_dir=tmp_path)

        assert coordinator.workers == default_worker_count()
        assert coordinator.workers >= 1

    def test_invalid_worker_count_raises(self, scenario_connections, queries, tmp_path):
        with pytest.raises(ValueError):
            Coordinator(scenario_connections, queries, workers=0, output_dir=tmp_path)


class TestCoordinatorRun:
    """Test Coordinator.run()"""

    def test_single_worker_scenario(self, scenario_connections, queries, tmp_path):
        coordinator, announced = make_coordinator(scenario_connections, queries, tmp_path)

        assert coordinator.run() is True

        assert announced == ["Testing 2 records."]
        result_file = tmp_path / "20240131120000_RESULTS_1_2.csv"
        assert read_result_file(result_file) == [
            ["KEY", "ACTUAL VALUE", "EXPECTED VALUE"],
            ["K1", "x.com,y.com", "w.com"],
        ]
        assert coordinator.summary.total_records == 2
        assert coordinator.summary.rows_written == 1
        assert coordinator.summary.succeeded is True

    def test_one_file_per_range(self, make_connections, queries, tmp_path):
        rows = [(f"K{i:02d}", "a.com") for i in range(1, 11)]
        connections = make_connections(
            target_rows=rows,
            domains_by_key={key: ["a.com", "b.com"] for key, _ in rows},
        )
        coordinator, _ = make_coordinator(connections, queries, tmp_path, workers=3)

        assert coordinator.run() is True

        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == [
            "20240131120000_RESULTS_1_4.csv",
            "20240131120000_RESULTS_5_7.csv",
            "20240131120000_RESULTS_8_10.csv",
        ]
        assert coordinator.summary.ranges == [RowRange(1, 4), RowRange(5, 7), RowRange(8, 10)]
        assert coordinator.summary.rows_written == 10

        # Every key reported exactly once across all files
        keys = []
        for path in tmp_path.iterdir():
            keys.extend(row[0] for row in read_result_file(path)[1:])
        assert sorted(keys) == [key for key, _ in rows]

    def test_more_workers_than_rows(self, scenario_connections, queries, tmp_path):
        coordinator, _ = make_coordinator(scenario_connections, queries, tmp_path, workers=5)

        assert coordinator.run() is True

        assert coordinator.summary.ranges == [RowRange(1, 1), RowRange(2, 2)]
        assert len(list(tmp_path.iterdir())) == 2

    def test_workers_run_concurrently(self, make_connections, queries, tmp_path):
        """Every worker must be inside execute() at the same time"""
        rows = [(f"K{i}", "a.com") for i in range(1, 4)]
        connections = make_connections(target_rows=rows, domains_by_key={})
        rendezvous = threading.Barrier(3, timeout=5)

        original_reconcile = ReconciliationWorker._reconcile

        def reconcile_after_rendezvous(worker):
            rendezvous.wait()
            original_reconcile(worker)

        with patch.object(ReconciliationWorker, "_reconcile", reconcile_after_rendezvous):
            coordinator, _ = make_coordinator(connections, queries, tmp_path, workers=3)
            assert coordinator.run() is True

        assert rendezvous.broken is False

    def test_empty_target_table(self, make_connections, queries, tmp_path):
        output_dir = tmp_path / "results"
        coordinator, announced = make_coordinator(make_connections(), queries, output_dir)

        assert coordinator.run() is True

        assert announced == ["Testing 0 records."]
        assert coordinator.summary.ranges == []
        assert not output_dir.exists()

    def test_count_failure_returns_false(self, make_connections, queries, tmp_path):
        connections = make_connections(target_fail_connect=True)
        coordinator, announced = make_coordinator(connections, queries, tmp_path)

        assert coordinator.run() is False

        assert announced == []
        assert list(tmp_path.iterdir()) == []

    def test_count_query_failure_returns_false(self, make_connections, queries, tmp_path):
        connections = make_connections(target_rows=[("K1", "a.com")], target_fail_on="execute")
        coordinator, _ = make_coordinator(connections, queries, tmp_path)

        assert coordinator.run() is False
        connections.target.connections[0].close.assert_called_once()

    def test_failed_range_reported_without_stopping_others(self, make_connections, queries, tmp_path):
        rows = [("K1", "a.com"), ("K2", "a.com")]
        connections = make_connections(target_rows=rows, domains_by_key={"K1": ["b.com"], "K2": ["c.com"]})
        coordinator, _ = make_coordinator(connections, queries, tmp_path, workers=2)

        original_reconcile = ReconciliationWorker._reconcile

        def fail_second_range(worker):
            if worker.row_range.start == 2:
                raise RuntimeError("simulated failure")
            original_reconcile(worker)

        with patch.object(ReconciliationWorker, "_reconcile", fail_second_range):
            assert coordinator.run() is False

        assert coordinator.summary.failed_ranges == [RowRange(2, 2)]
        assert coordinator.summary.rows_written == 1
        assert coordinator.summary.succeeded is False

    def test_output_dir_is_created(self, scenario_connections, queries, tmp_path):
        output_dir = tmp_path / "nested" / "results"
        coordinator, _ = make_coordinator(scenario_connections, queries, output_dir)

        assert coordinator.run() is True
        assert (output_dir / "20240131120000_RESULTS_1_2.csv").exists()

    def test_interrupt_returns_false(self, scenario_connections, queries, tmp_path):
        coordinator, _ = make_coordinator(scenario_connections, queries, tmp_path)

        with patch(
            "domain_recon.engine.coordinator.CompletionBarrier.wait",
            side_effect=InterruptedWaitError("Interrupted while waiting on 1 worker(s)"),
        ):
            assert coordinator.run() is False

        assert coordinator.summary.interrupted is True
        assert coordinator.summary.succeeded is False

    def test_interrupt_cancels_workers_that_never_started(self, make_connections, queries, tmp_path):
        """Queued workers are cancelled and released; the running one signals for itself"""
        rows = [(f"K{i}", "a.com") for i in range(1, 4)]
        connections = make_connections(target_rows=rows, domains_by_key={})
        running = threading.Event()
        release = threading.Event()
        observed = {}
        started = []

        def held_reconcile(worker):
            started.append(worker.row_range)
            running.set()
            release.wait(timeout=5)

        def interrupted_wait(barrier, timeout=None):
            assert running.wait(timeout=5)
            observed["barrier"] = barrier
            observed["before"] = barrier.in_flight
            raise InterruptedWaitError("Interrupted while waiting on 3 worker(s)")

        def one_thread_executor(max_workers, thread_name_prefix):
            return ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)

        with patch.object(ReconciliationWorker, "_reconcile", held_reconcile), \
                patch.object(CompletionBarrier, "wait", interrupted_wait), \
                patch("domain_recon.engine.coordinator.ThreadPoolExecutor",
                      side_effect=one_thread_executor):
            coordinator, _ = make_coordinator(connections, queries, tmp_path, workers=3)
            try:
                assert coordinator.run() is False
                barrier = observed["barrier"]
                assert observed["before"] == 3
                assert barrier.in_flight == 1
            finally:
                release.set()

        assert barrier.wait(timeout=5) is True
        assert coordinator.summary.interrupted is True
        assert started == [RowRange(1, 1)]

    def test_dispatch_failure_fails_only_that_range(self, make_connections, queries, tmp_path):
        rows = [("K1", "a.com"), ("K2", "a.com")]
        connections = make_connections(target_rows=rows, domains_by_key={"K1": ["b.com"], "K2": ["c.com"]})

        class NoThreadForSecondRange(ThreadPoolExecutor):
            def submit(self, fn, *args, **kwargs):
                if args[0].__self__.row_range.start == 2:
                    raise RuntimeError("can't start new thread")
                return super().submit(fn, *args, **kwargs)

        with patch("domain_recon.engine.coordinator.ThreadPoolExecutor", NoThreadForSecondRange):
            coordinator, _ = make_coordinator(connections, queries, tmp_path, workers=2)
            assert coordinator.run() is False

        assert coordinator.summary.failed_ranges == [RowRange(2, 2)]
        assert coordinator.summary.rows_written == 1
        assert [p.name for p in tmp_path.iterdir()] == ["20240131120000_RESULTS_1_1.csv"]

    def test_rerun_in_same_second_replaces_result_file(self, scenario_connections, queries, tmp_path):
        for _ in range(2):
            coordinator, _ = make_coordinator(scenario_connections, queries, tmp_path)
            assert coordinator.run() is True

        assert read_result_file(tmp_path / "20240131120000_RESULTS_1_2.csv") == [
            ["KEY", "ACTUAL VALUE", "EXPECTED VALUE"],
            ["K1", "x.com,y.com", "w.com"],
        ]
