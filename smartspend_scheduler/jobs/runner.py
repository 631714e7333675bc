"""Cron-style job runner built on APScheduler"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from smartspend_scheduler.domain.exceptions import ConfigurationError, JobNotFoundError
from smartspend_scheduler.domain.models import RunReport
from smartspend_scheduler.infrastructure.observability.logging import log_job_run
from smartspend_scheduler.infrastructure.observability.metrics import record_job_error, record_job_run

logger = logging.getLogger(__name__)

JobHandler = Callable[[datetime], RunReport]

# Standard cron numbering: 0 and 7 are Sunday. APScheduler counts from Monday.
CRON_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def _weekday_number(token: str) -> int:
    if token.isdigit() and int(token) <= 7:
        return int(token)
    if token.lower() in CRON_WEEKDAYS:
        return CRON_WEEKDAYS.index(token.lower())
    raise ValueError(f"Invalid day of week: {token!r}")


def weekday_field(field: str) -> str:
    """
    Rewrite a standard cron day-of-week field as weekday names.

    A bare wildcard passes through unchanged. Days, ranges and steps are
    expanded to an explicit list, e.g. ``0`` -> ``sun``, ``1-5/2`` -> ``mon,wed,fri``,
    ``sun-tue`` -> ``sun,mon,tue``.

    Raises:
        ValueError: On a malformed field
    """
    if field == "*":
        return field

    days: List[int] = []
    for item in field.split(","):
        base, _, step = item.partition("/")
        if base == "*":
            first, last = 0, 6
        else:
            start, _, end = base.partition("-")
            first = _weekday_number(start)
            last = _weekday_number(end) if end else (6 if step else first)
        increment = int(step) if step else 1
        if increment < 1 or first > last:
            raise ValueError(f"Invalid day of week: {item!r}")
        for day in range(first, last + 1, increment):
            if day % 7 not in days:
                days.append(day % 7)

    return ",".join(CRON_WEEKDAYS[day] for day in days)


def cron_trigger(schedule: str, timezone: ZoneInfo) -> CronTrigger:
    """Build a trigger from a 5-field crontab expression using standard weekday numbering"""
    fields = schedule.split()
    if len(fields) == 5:
        fields[4] = weekday_field(fields[4])
    return CronTrigger.from_crontab(" ".join(fields), timezone=timezone)


@dataclass
class Job:
    """Registered (name, schedule, handler) entry"""

    name: str
    schedule: str
    trigger: CronTrigger
    handler: JobHandler


class JobRunner:
    """
    Registry of scheduled jobs plus the background scheduler that fires them.

    Handlers receive the current time in the runner's timezone and must be safe
    to re-invoke: each run only acts on records that are currently due.
    """

    def __init__(self, timezone: str = "UTC"):
        try:
            self.timezone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Invalid scheduler timezone: {timezone!r}") from e
        self._jobs: Dict[str, Job] = {}
        self._scheduler: Optional[BackgroundScheduler] = None

    def register(self, name: str, schedule: str, handler: JobHandler) -> Job:
        """
        Add a job under a 5-field cron expression.

        Raises:
            ConfigurationError: Duplicate name or invalid cron expression
        """
        if name in self._jobs:
            raise ConfigurationError(f"Job already registered: {name}")
        if not schedule or not schedule.strip():
            raise ConfigurationError(f"Missing schedule for job {name}")
        try:
            trigger = cron_trigger(schedule, self.timezone)
        except ValueError as e:
            raise ConfigurationError(f"Invalid cron expression for job {name}: {schedule!r} ({e})") from e

        job = Job(name=name, schedule=schedule, trigger=trigger, handler=handler)
        self._jobs[name] = job
        logger.info("Job registered", extra={"job": name, "schedule": schedule})
        return job

    @property
    def jobs(self) -> List[Job]:
        return list(self._jobs.values())

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def get(self, name: str) -> Job:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFoundError(f"Unknown job: {name}") from None

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def next_run_time(self, name: str) -> Optional[datetime]:
        job = self.get(name)
        if self._scheduler is not None:
            scheduled = self._scheduler.get_job(name)
            return scheduled.next_run_time if scheduled else None
        return job.trigger.get_next_fire_time(None, self.now())

    def run_now(self, name: str, now: Optional[datetime] = None) -> RunReport:
        """
        Run a job immediately and record its metrics.

        Raises:
            JobNotFoundError: If ``name`` is not registered
            Exception: Whatever aborted the run before per-record processing
        """
        job = self.get(name)
        now = now or self.now()
        start_time = time.time()

        try:
            report = job.handler(now)
        except Exception:
            record_job_error(name)
            raise

        duration = time.time() - start_time
        record_job_run(report, duration)
        log_job_run(report, duration * 1000)
        return report

    def _execute(self, name: str) -> None:
        try:
            self.run_now(name)
        except Exception:  # noqa: BLE001
            # The schedule stays in place; the next tick retries
            logger.exception("Scheduled job run failed", extra={"job": name})

    def start(self) -> None:
        if self._scheduler is not None:
            logger.info("Job runner already started; ignoring duplicate start")
            return

        scheduler = BackgroundScheduler(timezone=self.timezone)
        for job in self._jobs.values():
            scheduler.add_job(
                self._execute,
                trigger=job.trigger,
                args=[job.name],
                id=job.name,
                name=job.name,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=3600,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Job runner started", extra={"jobs": sorted(self._jobs)})

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler is None:
            return
        try:
            self._scheduler.shutdown(wait=wait)
            logger.info("Job runner stopped")
        finally:
            self._scheduler = None
