"""Builds the job runner with every scheduler job wired to its collaborators"""

from sqlalchemy.orm import sessionmaker

from smartspend_scheduler.config import Settings
from smartspend_scheduler.domain.models import ContributionFrequency
from smartspend_scheduler.infrastructure.clients.email import EmailClient
from smartspend_scheduler.infrastructure.clients.push import PushClient
from smartspend_scheduler.jobs.runner import JobRunner
from smartspend_scheduler.services.bills import BillReminderNotifier
from smartspend_scheduler.services.contributions import GoalContributionScheduler, job_name
from smartspend_scheduler.services.lifecycle import GoalLifecycleNotifier
from smartspend_scheduler.services.recurring import RecurringTransactionProcessor
from smartspend_scheduler.services.sinks import AchievementSink, EmailSink, NotificationSink


def build_job_runner(
    settings: Settings,
    session_factory: sessionmaker,
    push_client: PushClient | None = None,
    email_client: EmailClient | None = None,
) -> JobRunner:
    """
    Register the default jobs:

    - recurring_transactions: materialize due recurring expenses/incomes
    - goal_lifecycle: expiring-soon and expired/achieved goal notices
    - daily/weekly/monthly_goal_contributions: one job per contribution bucket
    - bill_reminders: reminders for unpaid bills

    Raises:
        ConfigurationError: If any schedule is invalid
    """
    notifications = NotificationSink(session_factory, push_client or PushClient())
    emails = EmailSink(email_client or EmailClient())
    achievements = AchievementSink(session_factory, notifications)
    limits = {"deadline_seconds": settings.job_deadline_seconds, "max_workers": settings.job_max_workers}

    recurring = RecurringTransactionProcessor(
        session_factory, notifications, drain_backlog=settings.recurring_drain_backlog, **limits
    )
    contributions = GoalContributionScheduler(session_factory, notifications, emails, achievements, **limits)
    lifecycle = GoalLifecycleNotifier(
        session_factory, notifications, emails, lookback_days=settings.goal_expiry_lookback_days, **limits
    )
    bills = BillReminderNotifier(session_factory, notifications, emails, **limits)

    runner = JobRunner(timezone=settings.scheduler_timezone)
    runner.register(
        recurring.name,
        settings.recurring_processor_schedule,
        lambda now: recurring.run(now.date()),
    )
    runner.register(
        lifecycle.name,
        settings.goal_lifecycle_schedule,
        lambda now: lifecycle.run(now.date(), now),
    )

    bucket_schedules = {
        ContributionFrequency.DAILY: settings.daily_contribution_schedule,
        ContributionFrequency.WEEKLY: settings.weekly_contribution_schedule,
        ContributionFrequency.MONTHLY: settings.monthly_contribution_schedule,
    }
    for frequency, schedule in bucket_schedules.items():
        runner.register(
            job_name(frequency),
            schedule,
            lambda now, frequency=frequency: contributions.run(frequency, now),
        )

    runner.register(bills.name, settings.bill_reminder_schedule, bills.run)
    return runner
