"""
FastAPI application for the salon booking engine
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salon_scheduler.api.v1.router import api_v1_router
from salon_scheduler.config.settings import get_settings
from salon_scheduler.core.exceptions import register_exception_handlers
from salon_scheduler.core.middleware import correlation_id_middleware, request_logging_middleware
from salon_scheduler.core.monitoring import health_router
from salon_scheduler.services.rate_limit.rate_limiter import RateLimiter, build_rate_limiter
from salon_scheduler.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Starts and stops the components owned by the app"""
    setup_logging()
    rate_limiter: RateLimiter = app.state.rate_limiter
    await rate_limiter.start()
    logger.info(f"🚀 {settings.APP_NAME} starting up (rate limiter: {type(rate_limiter).__name__})")

    yield

    await rate_limiter.close()
    logger.info(f"🛑 {settings.APP_NAME} shutting down...")


def create_app(rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Appointment availability and booking engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "salon_scheduler.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
