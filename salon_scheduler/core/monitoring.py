"""Health checks"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from salon_scheduler.config.database import get_db
from salon_scheduler.config.settings import settings

health_router = APIRouter()


@health_router.get("")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": settings.APP_NAME}


@health_router.get("/detailed")
async def detailed_health_check(request: Request, db: Session = Depends(get_db)):
    """Database connectivity and the active rate limiter backend"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "rateLimiter": type(getattr(request.app.state, "rate_limiter", None)).__name__,
        "overall": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    checks["overall"] = "healthy" if checks["database"] == "healthy" else "degraded"
    return checks
