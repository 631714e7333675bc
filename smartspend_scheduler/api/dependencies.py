"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from smartspend_scheduler.jobs.runner import JobRunner


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_job_runner(request: Request) -> JobRunner:
    """Provide the application's job runner"""
    return request.app.state.job_runner
