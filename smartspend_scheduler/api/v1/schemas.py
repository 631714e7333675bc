"""Pydantic schemas for API responses"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class JobSchema(BaseModel):
    """Registered scheduler job"""

    name: str
    schedule: str
    next_run_time: Optional[datetime] = None


class JobListResponse(BaseModel):
    """Response for GET /v1/jobs"""

    running: bool
    jobs: List[JobSchema]


class RunReportResponse(BaseModel):
    """Response for POST /v1/jobs/{name}/run"""

    job: str
    outcome: str
    selected: int
    succeeded: int
    failed: int
    skipped: int
    failed_ids: List[str]
    duration_ms: float
