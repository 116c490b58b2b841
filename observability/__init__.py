"""
Observability Module
====================

Metrics, tracing, and structured logging for the database agent.
"""

from observability.logging_config import bind_context, clear_context, get_logger, setup_logging
from observability.metrics import MetricsObserver, metrics_endpoint, setup_metrics
from observability.tracing import get_tracer, setup_tracing, trace_agent_operation

__all__ = [
    "setup_metrics",
    "metrics_endpoint",
    "MetricsObserver",
    "setup_tracing",
    "get_tracer",
    "trace_agent_operation",
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
