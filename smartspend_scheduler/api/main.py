"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from smartspend_scheduler.api.middleware import RequestIDMiddleware, MetricsMiddleware
from smartspend_scheduler.api.v1 import jobs
from smartspend_scheduler.infrastructure.database.session import SessionLocal
from smartspend_scheduler.infrastructure.observability.logging import setup_logging
from smartspend_scheduler.jobs.registry import build_job_runner
from smartspend_scheduler.jobs.runner import JobRunner
from smartspend_scheduler.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app(job_runner: Optional[JobRunner] = None, start_scheduler: Optional[bool] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    The job runner is built from settings unless one is passed in; it is
    started with the app when scheduling is enabled.
    """
    runner = job_runner or build_job_runner(settings, SessionLocal)
    should_start = settings.scheduler_enabled if start_scheduler is None else start_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if should_start:
            runner.start()
        try:
            yield
        finally:
            runner.shutdown()

    app = FastAPI(
        title="SmartSpend Scheduler",
        description="Recurring transactions, goal contributions and reminders",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.job_runner = runner

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name, "scheduler_running": runner.running}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(jobs.router, prefix="/v1", tags=["jobs"])

    return app


app = create_app()
