"""
Health, readiness and metrics endpoints shared by the platform services
"""
from fastapi import APIRouter, HTTPException, Response, status
from datetime import datetime
from typing import Any, Callable, Dict

from .metrics import render_latest


def build_health_router(service_name: str, check_db_connection: Callable[[], bool]) -> APIRouter:
    """Build ``/health``, ``/ready`` and ``/metrics`` for a service backed by ``check_db_connection``."""
    router = APIRouter(tags=["health"])

    @router.get("/health", status_code=status.HTTP_200_OK)
    async def health_check() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": service_name,
            "timestamp": datetime.utcnow().isoformat()
        }

    @router.get("/ready", status_code=status.HTTP_200_OK)
    async def readiness_check() -> Dict[str, Any]:
        """
        Readiness check with database status.

        Raises:
            HTTPException: 503 if the database is unreachable
        """
        db_connected = check_db_connection()

        response = {
            "status": "ready" if db_connected else "not_ready",
            "service": service_name,
            "database": "connected" if db_connected else "disconnected",
            "timestamp": datetime.utcnow().isoformat()
        }

        if not db_connected:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=response
            )

        return response

    @router.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        body, content_type = render_latest()
        return Response(content=body, media_type=content_type)

    return router
