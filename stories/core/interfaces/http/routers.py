"""API router configuration."""

from fastapi import APIRouter

from stories.modules.signals.interfaces.router import router as signals_router
from stories.modules.sources.interfaces.router import router as sources_router
from stories.modules.sources.interfaces.webhook_router import router as webhook_router

api_router = APIRouter()

# Sources
api_router.include_router(sources_router)

# Webhooks
api_router.include_router(webhook_router)

# Signals / Stories
api_router.include_router(signals_router)
