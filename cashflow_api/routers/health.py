"""
Health check router with database and Redis connectivity verification.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from cashflow_api.core.revocation import RedisRevocationRegistry
from cashflow_api.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check verifying:
    - Database connectivity
    - Redis connectivity (when Redis holds the revocation list)

    Returns 200 if all critical services are healthy.
    Returns 503 if any critical service is down.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {},
    }
    is_healthy = True

    try:
        db.execute(text("SELECT 1"))
        health_status["services"]["database"] = "connected"
    except Exception:
        logger.exception("Health check: database unreachable")
        health_status["services"]["database"] = "disconnected"
        is_healthy = False

    registry = request.app.state.revocation_registry
    if isinstance(registry, RedisRevocationRegistry):
        try:
            registry.client.ping()
            health_status["services"]["redis"] = "connected"
        except Exception:
            logger.exception("Health check: redis unreachable")
            health_status["services"]["redis"] = "disconnected"
            # Revocation checks fail without Redis
            is_healthy = False

    if not is_healthy:
        health_status["status"] = "unhealthy"
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=health_status
        )

    return health_status


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe: the database must answer."""
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "error": "Database not available"},
        )
    return {"status": "ready"}
