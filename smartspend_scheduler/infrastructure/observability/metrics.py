"""Prometheus metrics for monitoring scheduler runs, record outcomes, and side-effect delivery"""

from prometheus_client import Counter, Histogram

from smartspend_scheduler.domain.models import RunReport

# Job metrics
job_run_counter = Counter(
    "smartspend_job_runs_total",
    "Scheduler job runs",
    ["job", "outcome"],  # success | partial | failed | error
)

job_duration_histogram = Histogram(
    "smartspend_job_duration_seconds",
    "Scheduler job run time",
    ["job"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

record_counter = Counter(
    "smartspend_job_records_total",
    "Records handled by scheduler jobs",
    ["job", "outcome"],  # succeeded | failed | skipped
)

# Domain metrics
contribution_cents_counter = Counter(
    "smartspend_goal_contribution_cents_total",
    "Amount deposited into goals by automatic contributions",
    ["frequency"],
)

achievement_counter = Counter(
    "smartspend_achievements_awarded_total",
    "Achievements newly awarded",
    ["key"],
)

# Side-effect delivery metrics
delivery_latency_histogram = Histogram(
    "smartspend_delivery_latency_seconds",
    "Push and email delivery response time",
    ["channel"],  # push | email
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

side_effect_failure_counter = Counter(
    "smartspend_side_effect_failures_total",
    "Best-effort side effects that failed",
    ["sink"],  # notification | push | email | achievement
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_job_run(report: RunReport, duration_seconds: float) -> None:
    """Record outcome counters of a finished run"""
    job_run_counter.labels(job=report.job, outcome=report.outcome).inc()
    job_duration_histogram.labels(job=report.job).observe(duration_seconds)

    record_counter.labels(job=report.job, outcome="succeeded").inc(report.succeeded)
    record_counter.labels(job=report.job, outcome="failed").inc(report.failed)
    record_counter.labels(job=report.job, outcome="skipped").inc(report.skipped)


def record_job_error(job: str) -> None:
    """Run aborted before processing records (e.g. the due-record query failed)"""
    job_run_counter.labels(job=job, outcome="error").inc()
