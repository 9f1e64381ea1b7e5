"""
Distributed tracing using OpenTelemetry.

Spans cover the whole export run and each exported table. They are sent
to an OTLP collector when one is configured and dropped otherwise.
"""

from .context import add_span_attributes, trace_operation
from .tracer import (
    get_tracer,
    initialize_tracing,
    shutdown_tracing,
)

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
]
