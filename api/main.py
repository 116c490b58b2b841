"""
FastAPI Application
===================

HTTP service running the database agent against one project root.
"""

import os
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes.health import router as health_router
from api.routes.run import router as run_router
from api.schemas import ErrorResponse
from db_agent import AgentSettings, AuditTrailObserver, create_agent, load_settings
from db_agent.llm import LLMInterface
from db_agent.migration import MigrationTrigger
from observability.logging_config import get_logger, setup_logging
from observability.metrics import MetricsObserver, metrics_endpoint, setup_metrics
from observability.tracing import setup_tracing


def create_app(
    settings: AgentSettings | None = None,
    llm: LLMInterface | None = None,
    migration_trigger: MigrationTrigger | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Agent settings (default: loaded from the environment at startup)
        llm: Planner LLM override
        migration_trigger: Migration trigger override

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Application lifespan handler."""
        setup_logging()
        logger = get_logger(__name__)

        app.state.settings = settings or load_settings()
        app.state.audit = AuditTrailObserver()
        app.state.run_lock = threading.Lock()
        app.state.agent = create_agent(
            app.state.settings,
            llm=llm,
            migration_trigger=migration_trigger,
            observers=[app.state.audit, MetricsObserver()],
        )
        logger.info(
            "api_started",
            version=__version__,
            project_root=str(app.state.settings.project_root),
            llm_provider=app.state.settings.llm_provider,
        )

        yield

        logger.info("api_stopped")

    app = FastAPI(
        title="Database Agent API",
        description=(
            "Natural-language-driven schema, API and component generation "
            "for Next.js + Drizzle projects."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(run_router)

    setup_metrics(app, environment=os.getenv("ENVIRONMENT", "development"))
    app.add_route("/metrics", metrics_endpoint)
    setup_tracing(app)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
