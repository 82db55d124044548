"""
Health API Endpoints

Endpoints:
- GET /api/v1/health/system - Environment, database and storage checks

Author: TM3
Date: 2025-10-17
"""
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.services.health_service import HealthService

router = APIRouter()


@router.get("/system")
def system_health():
    """
    Full system health check

    Returns 503 when the system is unhealthy, 200 otherwise (including degraded).
    """
    try:
        health = HealthService().system_health()
    except Exception as e:
        return JSONResponse(status_code=500, content={
            "status": "error",
            "detail": f"Health check failed: {str(e)}",
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    status_code = 503 if health["status"] == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=health)
