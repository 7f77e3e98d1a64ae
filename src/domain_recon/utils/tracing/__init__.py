"""
Distributed tracing using OpenTelemetry.

Spans cover the coordinator run, each worker's range and every store
connection attempt.
"""

from .context import add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_event",
]
