"""
Context managers and utilities for span management.

Provides a context manager for creating spans and a helper for adding
events to the current span without an explicit span reference.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for tracing operations.

    Automatically creates a span, adds attributes, handles errors,
    and ensures proper span completion.

    Args:
        operation_name: Name of the operation being traced
        kind: Span kind (INTERNAL, CLIENT, SERVER, etc.)
        **attributes: Custom attributes to add to the span

    Yields:
        Span instance for adding custom events/attributes

    Example:
        >>> with trace_operation("reconcile_range", start_row=1, end_row=500) as span:
        ...     worker.execute()
        ...     span.set_attribute("rows_written", worker.rows_written)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        operation_name,
        kind=kind
    ) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def add_span_event(name: str, **attributes):
    """
    Add an event to the current span.

    Args:
        name: Event name
        **attributes: Event attributes
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(
            name,
            attributes={key: str(value) for key, value in attributes.items()}
        )
