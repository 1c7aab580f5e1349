from fastapi import APIRouter, Depends
from sqlalchemy import text

from astra_pos.database import Database, get_database
from astra_pos.api.deps import get_cache
from astra_pos.utils.cache import CacheService

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
def health_check():
    """Simple health check."""
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the ledger database is ready and whether Redis is reachable."
)
def readiness_check(
    database: Database = Depends(get_database),
    cache: CacheService = Depends(get_cache)
):
    """
    Readiness check for all dependencies.

    Redis only backs the dashboard cache and the task queue, so the service
    is ready as long as the database answers.
    """
    checks = {
        "database": False,
        "redis": False
    }

    try:
        with database.session() as db:
            db.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        checks["database_error"] = str(e)

    checks["redis"] = cache.ping()

    return {
        "status": "ready" if checks["database"] else "not_ready",
        "checks": checks
    }


@router.get(
    "/cache/stats",
    summary="Cache statistics",
    description="Get Redis cache statistics."
)
def cache_stats(cache: CacheService = Depends(get_cache)):
    """Get cache statistics."""
    try:
        info = cache.client.info()
        return {
            "connected_clients": info.get("connected_clients"),
            "used_memory": info.get("used_memory_human"),
            "total_keys": cache.client.dbsize(),
            "uptime_seconds": info.get("uptime_in_seconds")
        }
    except Exception as e:
        return {"error": str(e)}
