"""Health check route."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..database import check_connection
from ..infrastructure.services.redis_client import get_redis

router = APIRouter()


@router.get("/api/health")
def health():
    """Database down -> 503; Redis down only degrades the status."""
    checks = {
        "database": "ok" if check_connection() else "error",
        "redis": "ok" if get_redis().ping() else "error",
    }
    status = "ok" if all(value == "ok" for value in checks.values()) else "degraded"
    status_code = 200 if checks["database"] == "ok" else 503
    return JSONResponse(status_code=status_code, content={"status": status, "checks": checks})
