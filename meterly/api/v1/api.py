"""API routes for the FastAPI application."""

from meterly.api.router import TrailingSlashRouter
from meterly.api.v1.endpoints import (
    admin,
    api_keys,
    credits,
    external,
    health,
    plan,
    webhooks,
)

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(credits.router, prefix="/credits", tags=["credits"])
api_router.include_router(plan.router, prefix="/plan", tags=["plan"])
api_router.include_router(api_keys.router, prefix="/api-keys", tags=["api-keys"])
api_router.include_router(external.router, prefix="/external", tags=["external"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
