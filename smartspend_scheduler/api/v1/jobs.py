"""GET /v1/jobs and POST /v1/jobs/{name}/run - inspect and trigger scheduler jobs"""

import logging
import time
from datetime import date, datetime, time as dt_time
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from smartspend_scheduler.api.dependencies import get_job_runner, get_request_id
from smartspend_scheduler.api.v1.schemas import JobListResponse, JobSchema, RunReportResponse
from smartspend_scheduler.domain.exceptions import JobNotFoundError
from smartspend_scheduler.jobs.runner import JobRunner

router = APIRouter()


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(runner: JobRunner = Depends(get_job_runner)):
    """List registered jobs with their schedules and next fire time"""
    return JobListResponse(
        running=runner.running,
        jobs=[
            JobSchema(name=job.name, schedule=job.schedule, next_run_time=runner.next_run_time(job.name))
            for job in runner.jobs
        ],
    )


@router.post("/jobs/{name}/run", response_model=RunReportResponse)
def run_job(
    name: str,
    request: Request,
    as_of: Optional[date] = Query(None, description="Run as if it were midnight of this date"),
    runner: JobRunner = Depends(get_job_runner),
):
    """
    Trigger a job immediately, outside its schedule.

    Jobs only act on records that are currently due, so a manual run next to
    the scheduled one does not double-process anything.
    """
    request_id = get_request_id(request)
    now: Optional[datetime] = datetime.combine(as_of, dt_time(), runner.timezone) if as_of else None
    start_time = time.time()

    try:
        report = runner.run_now(name, now=now)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logging.error(f"Manual job run failed: {e}", extra={"request_id": request_id, "job": name})
        raise HTTPException(status_code=500, detail="Job run failed")

    return RunReportResponse(
        job=report.job,
        outcome=report.outcome,
        selected=report.selected,
        succeeded=report.succeeded,
        failed=report.failed,
        skipped=report.skipped,
        failed_ids=report.failed_ids,
        duration_ms=(time.time() - start_time) * 1000,
    )
