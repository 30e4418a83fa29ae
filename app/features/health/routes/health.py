from fastapi import APIRouter, status

from app.platform.config import settings
from app.platform.response import api_response
from app.platform.websocket_manager import manager


router = APIRouter()

@router.get("/health", tags=["health"])
async def health_check():
    return api_response(
        data={
            "status": "ok",
            "service": settings.APP_NAME,
            "active_sessions": manager.get_active_session_count(),
        },
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
