"""Integration tests for the job runner and default job registry"""

import pytest
from datetime import date, datetime, timezone

from smartspend_scheduler.config import Settings
from smartspend_scheduler.domain.exceptions import ConfigurationError, JobNotFoundError
from smartspend_scheduler.domain.models import RunReport
from smartspend_scheduler.infrastructure.database.models import Transaction
from smartspend_scheduler.jobs.registry import build_job_runner
from smartspend_scheduler.jobs.runner import JobRunner

EXPECTED_JOBS = {
    "recurring_transactions",
    "goal_lifecycle",
    "daily_goal_contributions",
    "weekly_goal_contributions",
    "monthly_goal_contributions",
    "bill_reminders",
}


def test_invalid_cron_expression_rejected():
    """Test bad schedules fail at registration"""
    runner = JobRunner()

    with pytest.raises(ConfigurationError):
        runner.register("broken", "every day", lambda now: RunReport(job="broken"))
    with pytest.raises(ConfigurationError):
        runner.register("broken", "0 25 * * *", lambda now: RunReport(job="broken"))
    with pytest.raises(ConfigurationError):
        runner.register("broken", "", lambda now: RunReport(job="broken"))


def test_duplicate_job_rejected():
    """Test job names are unique"""
    runner = JobRunner()
    runner.register("job", "0 0 * * *", lambda now: RunReport(job="job"))

    with pytest.raises(ConfigurationError):
        runner.register("job", "0 1 * * *", lambda now: RunReport(job="job"))


def test_invalid_timezone_rejected():
    """Test unknown timezones are a configuration error"""
    with pytest.raises(ConfigurationError):
        JobRunner(timezone="Mars/Olympus_Mons")


def test_run_now_passes_time_to_handler():
    """Test manual run invokes the handler with the given time"""
    runner = JobRunner()
    seen = []

    def handler(now):
        seen.append(now)
        return RunReport(job="job", selected=1, succeeded=1)

    runner.register("job", "0 0 * * *", handler)
    when = datetime(2024, 1, 1, tzinfo=timezone.utc)

    report = runner.run_now("job", now=when)

    assert seen == [when]
    assert report.succeeded == 1


def test_run_now_unknown_job():
    """Test unknown job names raise"""
    with pytest.raises(JobNotFoundError):
        JobRunner().run_now("nope")


def test_run_now_propagates_run_failure():
    """Test a run that fails before record processing surfaces to the caller"""
    runner = JobRunner()

    def handler(now):
        raise RuntimeError("database unavailable")

    runner.register("job", "0 0 * * *", handler)

    with pytest.raises(RuntimeError):
        runner.run_now("job")


def test_scheduled_failure_is_contained():
    """Test a failing scheduled tick does not raise out of the scheduler thread"""
    runner = JobRunner()
    runner.register("job", "0 0 * * *", lambda now: 1 / 0)

    runner._execute("job")


def test_next_run_time_before_start():
    """Test next fire time is computed from the trigger when not started"""
    runner = JobRunner()
    runner.register("monthly", "0 0 1 * *", lambda now: RunReport(job="monthly"))

    next_run = runner.next_run_time("monthly")

    assert next_run.day == 1
    assert next_run.hour == 0


def test_start_and_shutdown():
    """Test the background scheduler picks up every job"""
    runner = JobRunner()
    runner.register("job", "0 0 * * *", lambda now: RunReport(job="job"))

    runner.start()
    try:
        assert runner.running is True
        assert runner.next_run_time("job") is not None
    finally:
        runner.shutdown(wait=False)

    assert runner.running is False


def test_default_registry(session_factory, push_client, email_client):
    """Test every job is registered with its default cadence"""
    runner = build_job_runner(Settings(), session_factory, push_client, email_client)

    schedules = {job.name: job.schedule for job in runner.jobs}
    assert set(schedules) == EXPECTED_JOBS
    assert schedules["recurring_transactions"] == "0 0 * * *"
    assert schedules["goal_lifecycle"] == "0 9 * * *"
    assert schedules["weekly_goal_contributions"] == "0 0 * * sun"
    assert schedules["monthly_goal_contributions"] == "0 0 1 * *"


def test_weekly_contribution_fires_on_sunday(session_factory, push_client, email_client):
    """Test the weekly bucket schedule lands on Sunday midnight"""
    runner = build_job_runner(Settings(), session_factory, push_client, email_client)
    trigger = runner.get("weekly_goal_contributions").trigger

    fire = trigger.get_next_fire_time(None, datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc))

    assert fire.date() == date(2024, 6, 9)
    assert fire.weekday() == 6


def test_invalid_schedule_in_settings_aborts(session_factory, push_client, email_client):
    """Test misconfigured cadence fails the whole startup"""
    settings = Settings(recurring_processor_schedule="0 0 * *")

    with pytest.raises(ConfigurationError):
        build_job_runner(settings, session_factory, push_client, email_client)


def test_registry_runs_recurring_processor(db, session_factory, push_client, email_client, make_user, make_recurring):
    """Test the registered handler drives the processor with the run date"""
    runner = build_job_runner(Settings(), session_factory, push_client, email_client)
    user = make_user()
    template = make_recurring(user, next_date=date(2024, 1, 1))

    report = runner.run_now("recurring_transactions", now=datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc))

    assert report.succeeded == 1
    assert db.query(Transaction).filter(Transaction.source_id == template.id).count() == 1


@pytest.mark.parametrize("schedule", ["0 0 * * 0", "0 0 * * 7"])
def test_numeric_sunday_fires_on_sunday(schedule, session_factory, push_client, email_client):
    """Test a configured crontab with numeric Sunday is not shifted to Monday"""
    settings = Settings(weekly_contribution_schedule=schedule)
    runner = build_job_runner(settings, session_factory, push_client, email_client)
    trigger = runner.get("weekly_goal_contributions").trigger

    fire = trigger.get_next_fire_time(None, datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc))

    assert fire.date() == date(2024, 6, 9)
    assert runner.get("weekly_goal_contributions").schedule == schedule


def test_weekday_range_uses_cron_numbering():
    """Test 1-5 means Monday to Friday"""
    runner = JobRunner()
    job = runner.register("weekdays", "0 9 * * 1-5", lambda now: RunReport(job="weekdays"))

    saturday = datetime(2024, 6, 8, 12, 0, tzinfo=timezone.utc)
    fire = job.trigger.get_next_fire_time(None, saturday)

    assert fire == datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)


def test_out_of_range_weekday_rejected():
    """Test day-of-week above 7 fails at registration"""
    with pytest.raises(ConfigurationError):
        JobRunner().register("broken", "0 0 * * 8", lambda now: RunReport(job="broken"))
