"""
OpenTelemetry Tracing
=====================

Distributed tracing for the HTTP service and agent runs.
"""

import os
from functools import wraps
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from db_agent import __version__

logger = structlog.get_logger(__name__)


def setup_tracing(
    app: FastAPI,
    service_name: str = "db-agent-api",
    otlp_endpoint: Optional[str] = None,
) -> None:
    """
    Set up OpenTelemetry tracing for the application.

    Args:
        app: FastAPI application instance
        service_name: Name of the service for traces
        otlp_endpoint: OTLP collector endpoint (default: OTEL_EXPORTER_OTLP_ENDPOINT,
            ``disabled`` turns export off)
    """
    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "disabled")

    resource = Resource.create({
        SERVICE_NAME: service_name,
        "service.version": __version__,
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    })
    provider = TracerProvider(resource=resource)

    if endpoint and endpoint != "disabled":
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )
        logger.info("tracing_exporter_configured", endpoint=endpoint)

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)


def get_tracer(name: str = __name__) -> trace.Tracer:
    """Get a tracer from the global provider."""
    return trace.get_tracer(name)


def trace_agent_operation(operation_name: str) -> Callable:
    """
    Decorator spanning a call that returns an AgentResult.

    Args:
        operation_name: Name of the span
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            tracer = get_tracer(__name__)
            with tracer.start_as_current_span(operation_name) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

                if hasattr(result, "success"):
                    span.set_attribute("run.success", result.success)
                    span.set_attribute("run.touched_files", len(result.touched_files))
                    span.set_attribute("run.errors", len(result.errors))
                    span.set_attribute("run.migration_completed", result.migration_completed)
                    span.set_attribute("run.dry_run", result.dry_run)
                    if not result.success:
                        span.set_status(Status(StatusCode.ERROR, "; ".join(result.errors)[:500]))
                return result
        return wrapper
    return decorator
