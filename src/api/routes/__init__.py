"""API routes."""

from src.api.routes.health import router as health_router
from src.api.routes.inbox import router as inbox_router
from src.api.routes.webhooks import router as webhooks_router

__all__ = ["health_router", "inbox_router", "webhooks_router"]
