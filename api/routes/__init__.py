"""API Routes."""

from api.routes.health import router as health_router
from api.routes.run import router as run_router

__all__ = ["run_router", "health_router"]
