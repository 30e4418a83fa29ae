from fastapi import APIRouter

from app.features.health.routes.health import router as health_router


api_router = APIRouter()

# Register all JSON API routes
api_router.include_router(health_router)
