# routers/health.py

from fastapi import APIRouter, Depends

from core.config import settings
from core.supabase_client import ping_supabase
from services.storage import UnifiedStorageService, get_storage

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + table queries
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
async def health_db():
    """
    Verifies full Supabase connectivity.
    - Checks if URL + key are configured
    - Attempts to query the main module tables
    - Returns row-count + error details per table
    """
    try:
        status = ping_supabase()
        return {
            "service": "Supabase",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Supabase",
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/storage
# Which backend new images will land in
# -----------------------------------------------------
@router.get("/storage", summary="Image storage health check")
def health_storage(storage: UnifiedStorageService = Depends(get_storage)):
    details = storage.describe()
    return {
        "service": "Storage",
        "status": "ok",
        "mode": "object-storage" if details["object_storage_configured"] else "filesystem",
        "details": details,
    }


# -----------------------------------------------------
# GET /health/app
# Simple API health check for uptime monitors
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "env": settings.ENV,
    }
