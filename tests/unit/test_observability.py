"""
Unit tests for metrics publishing and tracing setup.
"""

from unittest.mock import patch
from urllib.error import URLError

import pytest
from prometheus_client import REGISTRY

from domain_recon.engine.coordinator import Coordinator
from domain_recon.engine.metrics import push_metrics
from domain_recon.utils import tracing
from domain_recon.utils.tracing import tracer as tracer_module


def sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestRunMetrics:
    def test_run_updates_counters(self, scenario_connections, queries, tmp_path):
        tested_before = sample("domain_recon_records_tested_total")
        found_before = sample("domain_recon_discrepancies_total")
        success_before = sample("domain_recon_workers_completed_total", {"status": "success"})
        in_flight_before = sample("domain_recon_workers_in_flight")

        coordinator = Coordinator(
            scenario_connections, queries, workers=2, output_dir=tmp_path, announce=lambda _: None
        )
        assert coordinator.run() is True

        assert sample("domain_recon_records_tested_total") - tested_before == 2
        assert sample("domain_recon_discrepancies_total") - found_before == 1
        assert sample("domain_recon_workers_completed_total", {"status": "success"}) - success_before == 2
        assert sample("domain_recon_workers_in_flight") == in_flight_before


class TestPushMetrics:
    @patch("domain_recon.engine.metrics.push_to_gateway")
    def test_push(self, mock_push):
        assert push_metrics("localhost:9091") is True
        mock_push.assert_called_once_with("localhost:9091", job="domain_recon", registry=REGISTRY)

    @patch("domain_recon.engine.metrics.push_to_gateway", side_effect=URLError("refused"))
    def test_push_failure_returns_false(self, mock_push):
        assert push_metrics("localhost:9091") is False


class TestTracing:
    @pytest.fixture(autouse=True)
    def reset_tracing(self):
        yield
        tracer_module._tracer = None
        tracer_module._is_initialized = False

    def test_get_tracer_without_initialization(self):
        assert tracing.get_tracer() is not None

    def test_trace_operation_records_and_reraises(self):
        with pytest.raises(RuntimeError):
            with tracing.trace_operation("failing_op", store="target"):
                raise RuntimeError("boom")

    @patch("domain_recon.utils.tracing.tracer.trace.set_tracer_provider")
    def test_initialize_is_idempotent(self, mock_set_provider, monkeypatch):
        monkeypatch.delenv("OTLP_ENDPOINT", raising=False)

        first = tracing.initialize_tracing(service_name="domain-recon-test")
        second = tracing.initialize_tracing(service_name="domain-recon-test")

        assert first is second
        mock_set_provider.assert_called_once()

    @patch("domain_recon.utils.tracing.tracer.OTLPSpanExporter")
    @patch("domain_recon.utils.tracing.tracer.trace.set_tracer_provider")
    def test_otlp_exporter_configured(self, mock_set_provider, mock_exporter):
        tracing.initialize_tracing(otlp_endpoint="localhost:4317")

        mock_exporter.assert_called_once_with(endpoint="localhost:4317", insecure=True)

    def test_shutdown_without_initialization_is_noop(self):
        tracing.shutdown_tracing()

    def test_span_event_outside_span_is_noop(self):
        tracing.add_span_event("workers_dispatched", count=3)
