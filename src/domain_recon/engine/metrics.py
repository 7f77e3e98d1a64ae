"""
Prometheus metrics for reconciliation runs.

This module defines metrics to track worker throughput and outcomes.
"""

import logging

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, push_to_gateway

logger = logging.getLogger(__name__)


def _existing(name: str):
    # Re-imports (e.g. under test runners) hit the already-registered collector
    return REGISTRY._names_to_collectors.get(name)


try:
    RECORDS_TESTED = Counter(
        "domain_recon_records_tested_total",
        "Target rows compared against the source",
        registry=REGISTRY,
    )
except ValueError:
    RECORDS_TESTED = _existing("domain_recon_records_tested_total")

try:
    DISCREPANCIES_FOUND = Counter(
        "domain_recon_discrepancies_total",
        "Expected domains missing from the target",
        registry=REGISTRY,
    )
except ValueError:
    DISCREPANCIES_FOUND = _existing("domain_recon_discrepancies_total")

try:
    WORKERS_COMPLETED = Counter(
        "domain_recon_workers_completed_total",
        "Workers finished, by outcome",
        ["status"],  # success, failed
        registry=REGISTRY,
    )
except ValueError:
    WORKERS_COMPLETED = _existing("domain_recon_workers_completed_total")

try:
    WORKERS_IN_FLIGHT = Gauge(
        "domain_recon_workers_in_flight",
        "Workers dispatched and not yet finished",
        registry=REGISTRY,
    )
except ValueError:
    WORKERS_IN_FLIGHT = _existing("domain_recon_workers_in_flight")

try:
    WORKER_DURATION = Histogram(
        "domain_recon_worker_seconds",
        "Time for one worker to reconcile its row range",
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
        registry=REGISTRY,
    )
except ValueError:
    WORKER_DURATION = _existing("domain_recon_worker_seconds")

try:
    RUN_DURATION = Histogram(
        "domain_recon_run_seconds",
        "Total time for one reconciliation run",
        ["worker_count"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600, 7200],
        registry=REGISTRY,
    )
except ValueError:
    RUN_DURATION = _existing("domain_recon_run_seconds")


def push_metrics(gateway: str, job: str = "domain_recon") -> bool:
    """
    Push the current registry to a Prometheus Pushgateway.

    Called once when a run ends.

    Returns:
        True if the push succeeded, False otherwise
    """
    try:
        push_to_gateway(gateway, job=job, registry=REGISTRY)
    except OSError as e:
        logger.error(f"Failed to push metrics to {gateway}: {e}")
        return False
    logger.info(f"Pushed metrics to {gateway}")
    return True
