"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from progression.api.metrics_routes import router as metrics_router
from progression.api.middleware import setup_cors, setup_rate_limiting
from progression.api.models import HealthCheckResponse
from progression.api.routes import router
from progression.config import ENABLE_PERIOD_RESET_SCHEDULER, RESET_TIMEZONE
from progression.exceptions import ProgressionError
from progression.scheduler.period_reset import PeriodResetScheduler
from progression.services.container import init_container
from progression.services.progression_service import ProgressionService

logger = logging.getLogger(__name__)


def create_api_application(
    service: Optional[ProgressionService] = None,
    enable_scheduler: bool = ENABLE_PERIOD_RESET_SCHEDULER,
) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        service: Pre-built service; when omitted the lifespan builds one for STORE_BACKEND
        enable_scheduler: Run the weekly/monthly reset loop in this process
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for FastAPI application"""
        # Startup
        logger.info("Starting API server...")
        container = None
        if app.state.service is None:
            container = init_container()
            await container.open()
            app.state.service = container.progression_service
            logger.info(f"Store ready: {type(app.state.service.store).__name__}")

        if enable_scheduler:
            app.state.scheduler = PeriodResetScheduler(app.state.service.reset_period, tz_name=RESET_TIMEZONE)
            await app.state.scheduler.start()

        yield

        # Shutdown
        logger.info("Shutting down API server...")
        if app.state.scheduler:
            await app.state.scheduler.stop()
        if container:
            await container.close()

    app = FastAPI(
        title="Fitness Progression API",
        description="Points, levels, streaks, achievements, leaderboards and rewards",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.service = service
    app.state.scheduler = None

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.get("/health", response_model=HealthCheckResponse)
    async def health_check(request: Request):
        """Liveness check (no authentication)"""
        current = request.app.state.service
        scheduler = request.app.state.scheduler
        return HealthCheckResponse(
            status="healthy" if current is not None else "starting",
            timestamp=datetime.now(timezone.utc),
            store=type(current.store).__name__ if current is not None else "none",
            scheduler=bool(scheduler and scheduler.running),
        )

    @app.exception_handler(ProgressionError)
    async def progression_exception_handler(request: Request, exc: ProgressionError):
        return JSONResponse(
            status_code=exc.http_status,
            content=exc.to_dict()
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
