"""
Prometheus Metrics
==================

Run, step, migration and HTTP metrics for the database agent.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

from db_agent import __version__
from db_agent.models import AgentRequest, AgentResult, ExecutionPlan, ExecutionStep
from db_agent.observers import RunObserver

REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "db_agent",
    "Database agent build information",
    registry=REGISTRY,
)

# Run metrics
RUNS_TOTAL = Counter(
    "db_agent_runs_total",
    "Total orchestrator runs",
    ["status", "mode"],  # success|failure, execute|dry_run
    registry=REGISTRY,
)

RUN_DURATION = Histogram(
    "db_agent_run_duration_seconds",
    "Orchestrator run duration in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

PLAN_STEPS = Histogram(
    "db_agent_plan_steps",
    "Number of steps per generated plan",
    buckets=[1, 2, 3, 5, 8, 13, 21],
    registry=REGISTRY,
)

# Step metrics
STEPS_TOTAL = Counter(
    "db_agent_steps_total",
    "Executed steps by kind and outcome",
    ["kind", "status"],
    registry=REGISTRY,
)

FILES_TOUCHED_TOTAL = Counter(
    "db_agent_files_touched_total",
    "Files written by steps",
    ["kind"],
    registry=REGISTRY,
)

# Migration metrics
MIGRATIONS_TOTAL = Counter(
    "db_agent_migrations_total",
    "Migration trigger invocations",
    ["status"],
    registry=REGISTRY,
)

ACTIVE_RUNS = Gauge(
    "db_agent_active_runs",
    "Number of runs currently in progress",
    registry=REGISTRY,
)

# HTTP metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=REGISTRY,
)


class MetricsObserver(RunObserver):
    """Feeds run lifecycle events into the Prometheus registry."""

    def __init__(self) -> None:
        self._started_at: float | None = None
        self._migration_requested = False

    def on_run_started(self, request: AgentRequest) -> None:
        self._started_at = time.perf_counter()
        self._migration_requested = False
        ACTIVE_RUNS.inc()

    def on_plan_ready(self, plan: ExecutionPlan) -> None:
        PLAN_STEPS.observe(len(plan.steps))

    def on_step_completed(self, index: int, step: ExecutionStep, paths: list[str]) -> None:
        STEPS_TOTAL.labels(kind=step.kind, status="success").inc()
        if paths:
            FILES_TOUCHED_TOTAL.labels(kind=step.kind).inc(len(paths))

    def on_step_errored(self, index: int, step: ExecutionStep, message: str) -> None:
        STEPS_TOTAL.labels(kind=step.kind, status="failure").inc()

    def on_migration_started(self) -> None:
        self._migration_requested = True

    def on_run_completed(self, result: AgentResult) -> None:
        if self._migration_requested:
            MIGRATIONS_TOTAL.labels(
                status="success" if result.migration_completed else "failure"
            ).inc()
        RUNS_TOTAL.labels(
            status="success" if result.success else "failure",
            mode="dry_run" if result.dry_run else "execute",
        ).inc()

        if self._started_at is not None:
            RUN_DURATION.observe(time.perf_counter() - self._started_at)
            self._started_at = None
            ACTIVE_RUNS.dec()


def setup_metrics(app: FastAPI, environment: str = "development") -> None:
    """
    Register the HTTP metrics middleware on the application.

    Args:
        app: FastAPI application instance
        environment: Deployment environment reported in APP_INFO
    """
    APP_INFO.info({
        "version": __version__,
        "environment": environment,
    })

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        """Record request count and latency per route."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        HTTP_REQUESTS_TOTAL.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code,
        ).inc()
        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=request.url.path,
        ).observe(duration)

        return response


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    # Handle multiprocess mode if using gunicorn
    try:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        metrics = generate_latest(registry)
    except ValueError:
        # Not in multiprocess mode
        metrics = generate_latest(REGISTRY)

    return Response(
        content=metrics,
        media_type=CONTENT_TYPE_LATEST,
    )
