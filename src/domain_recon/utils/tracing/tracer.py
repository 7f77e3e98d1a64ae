"""
Tracer initialization and configuration for OpenTelemetry.

Provides setup functions for distributed tracing with OTLP exporters.
Until initialize_tracing() is called, spans go to the API's no-op
provider, so library code can trace unconditionally.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "domain-recon"

# Global tracer instance
_tracer: trace.Tracer | None = None
_is_initialized = False


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
    sampling_rate: float = 1.0
) -> trace.Tracer:
    """
    Initialize distributed tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (default: OTLP_ENDPOINT env var, if set)
        console_export: If True, also export traces to console (debug)
        sampling_rate: Sampling rate 0.0-1.0 (1.0 = trace everything)

    Returns:
        Configured tracer instance

    Example:
        >>> tracer = initialize_tracing(
        ...     service_name="domain-recon",
        ...     otlp_endpoint="localhost:4317"
        ... )
    """
    global _tracer, _is_initialized

    if _is_initialized:
        logger.warning("Tracing already initialized, returning existing tracer")
        return _tracer

    resource = Resource(attributes={
        SERVICE_NAME: service_name
    })

    provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(sampling_rate),
    )

    exporters = []

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTLP_ENDPOINT")

    if otlp_endpoint:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=otlp_endpoint,
                insecure=True
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            exporters.append("OTLP")
            logger.info(f"OTLP exporter configured: {otlp_endpoint}")
        except Exception as e:
            logger.warning(f"Failed to configure OTLP exporter: {e}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")
        logger.info("Console exporter configured")

    if not exporters:
        logger.warning("No trace exporters configured, tracing will be a no-op")

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)
    _is_initialized = True

    logger.info(
        f"Tracing initialized: {service_name} "
        f"(exporters: {', '.join(exporters) or 'none'}, sampling: {sampling_rate})"
    )

    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Get the global tracer instance.

    Returns the configured tracer, or a tracer bound to the global
    provider (a no-op unless one was installed) when tracing was never
    initialized.
    """
    if _tracer is not None:
        return _tracer
    return trace.get_tracer(DEFAULT_SERVICE_NAME)


def shutdown_tracing() -> None:
    """
    Shutdown tracing and flush pending spans.

    Should be called before application exit.
    """
    global _tracer, _is_initialized

    if _is_initialized:
        try:
            provider = trace.get_tracer_provider()
            if hasattr(provider, 'shutdown'):
                provider.shutdown()
            logger.info("Tracing shutdown complete")
        except Exception as e:
            logger.error(f"Error during tracing shutdown: {e}")
        finally:
            _tracer = None
            _is_initialized = False
