"""Health check endpoint."""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_login_rate_limiter
from adapter.mongodb.connection import get_mongodb_client
from port.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health(
    limiter: RateLimiter = Depends(get_login_rate_limiter),
):
    """Health check endpoint with dependency status.

    Plain ``def``: the pings block, so FastAPI runs this in its threadpool.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "services": {}
    }

    overall_healthy = True

    # Rate limiter backend (Redis, or in-process which is always up)
    try:
        if limiter.ping():
            health_status["services"]["rate_limiter"] = {
                "status": "healthy",
                "message": "Connection successful"
            }
        else:
            health_status["services"]["rate_limiter"] = {
                "status": "unhealthy",
                "message": "Connection failed or not configured"
            }
            overall_healthy = False
    except Exception as e:
        logger.warning("Rate limiter health check failed", extra={"error": str(e)[:200]})
        health_status["services"]["rate_limiter"] = {
            "status": "unhealthy",
            "message": "Connection error"
        }
        overall_healthy = False

    # Credential store
    try:
        mongo_client = get_mongodb_client()
        if mongo_client:
            mongo_client.admin.command('ping')
            health_status["services"]["mongodb"] = {
                "status": "healthy",
                "message": "Connection successful"
            }
        else:
            health_status["services"]["mongodb"] = {
                "status": "unhealthy",
                "message": "Connection failed or not configured"
            }
            overall_healthy = False
    except Exception as e:
        logger.warning("MongoDB health check failed", extra={"error": str(e)[:200]})
        health_status["services"]["mongodb"] = {
            "status": "unhealthy",
            "message": "Connection error"
        }
        overall_healthy = False

    if not overall_healthy:
        health_status["status"] = "degraded"

    status_code = status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        content=health_status,
        status_code=status_code
    )
