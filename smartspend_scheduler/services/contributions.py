"""Goal contribution scheduler: periodic automatic deposits into savings goals"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from smartspend_scheduler.domain.achievements import highest_milestone
from smartspend_scheduler.domain.contributions import plan_contribution
from smartspend_scheduler.domain.messages import contribution_added, contribution_added_email, contribution_failed
from smartspend_scheduler.domain.models import AchievementKey, ContributionFrequency, Recipient, RunReport
from smartspend_scheduler.infrastructure.database.models import Goal
from smartspend_scheduler.infrastructure.database.repositories import GoalRepository
from smartspend_scheduler.infrastructure.observability.metrics import (
    contribution_cents_counter,
    side_effect_failure_counter,
)
from smartspend_scheduler.services.batch import DueRecord, run_batch
from smartspend_scheduler.services.sinks import AchievementSink, EmailSink, NotificationSink, SessionFactory

logger = logging.getLogger(__name__)


def job_name(frequency: ContributionFrequency) -> str:
    return f"{frequency.value}_goal_contributions"


def _is_eligible(goal: Goal, frequency: ContributionFrequency) -> bool:
    return (
        goal.monthly_contribution_cents > 0
        and goal.contribution_frequency == frequency.value
        and goal.saved_amount_cents < goal.target_amount_cents
        and goal.user is not None
        and bool(goal.user.is_verified)
    )


class GoalContributionScheduler:
    """One implementation shared by the daily, weekly and monthly buckets"""

    def __init__(
        self,
        session_factory: SessionFactory,
        notifications: NotificationSink,
        emails: EmailSink,
        achievements: AchievementSink,
        deadline_seconds: Optional[float] = None,
        max_workers: int = 1,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.emails = emails
        self.achievements = achievements
        self.deadline_seconds = deadline_seconds
        self.max_workers = max_workers

    def run(self, frequency: ContributionFrequency, now: datetime) -> RunReport:
        """
        Deposit the planned amount into every eligible goal of ``frequency``.

        Flow per goal:
        1. Clamp the deposit to the remaining gap, prepend the contribution
        2. Commit the new saved amount
        3. Notify and email the owner (best-effort)
        4. On completion, award the goal-completed and milestone achievements
        """
        name = job_name(frequency)
        with self.session_factory() as db:
            due = [
                DueRecord(id=g.id, owner_id=g.user_id, label=g.name, tag=frequency.value)
                for g in GoalRepository(db).load_goals_for_bucket(frequency)
            ]

        logger.info("Goals due for contribution", extra={"job": name, "count": len(due)})

        return run_batch(
            name,
            due,
            lambda record: self._process(record, frequency, now),
            on_error=self._report_failure,
            deadline_seconds=self.deadline_seconds,
            max_workers=self.max_workers,
        )

    def _process(self, record: DueRecord, frequency: ContributionFrequency, now: datetime) -> None:
        with self.session_factory() as db:
            repo = GoalRepository(db)
            try:
                goal = repo.get_for_update(record.id)
                if goal is None or not _is_eligible(goal, frequency):
                    db.rollback()
                    logger.debug("Goal no longer eligible for contribution", extra={"record_id": str(record.id)})
                    return

                plan = plan_contribution(
                    target_cents=goal.target_amount_cents,
                    saved_cents=goal.saved_amount_cents,
                    planned_cents=goal.monthly_contribution_cents,
                    frequency=frequency,
                )
                repo.add_contribution(goal, plan, now)

                completed_goals = repo.count_completed_goals(goal.user_id) if plan.completes_goal else 0
                recipient = Recipient(
                    user_id=goal.user.id,
                    name=goal.user.name,
                    email=goal.user.email,
                    email_notifications=bool(goal.user.email_notifications),
                )
                goal_name = goal.name
                target_cents = goal.target_amount_cents
                db.commit()

            except Exception:
                db.rollback()
                raise

        contribution_cents_counter.labels(frequency=frequency.value).inc(plan.amount_cents)
        logger.info(
            "Goal contribution added",
            extra={
                "record_id": str(record.id),
                "user_id": str(recipient.user_id),
                "amount_cents": plan.amount_cents,
                "saved_cents": plan.saved_after_cents,
                "target_cents": target_cents,
            },
        )

        self.notifications.notify_message(
            recipient.user_id,
            contribution_added(goal_name, plan.amount_cents),
            related_id=str(record.id),
            related_type="Goal",
        )
        self.emails.send_to(
            recipient,
            contribution_added_email(recipient.name, goal_name, plan.amount_cents, plan.saved_after_cents, target_cents),
        )

        if plan.completes_goal:
            self._award_completion(recipient.user_id, record.id, completed_goals)

    def _award_completion(self, user_id: uuid.UUID, goal_id: uuid.UUID, completed_goals: int) -> None:
        """Goal-completed badge once per goal, plus the highest milestone reached"""
        try:
            self.achievements.award(user_id, AchievementKey.GOAL_COMPLETED, completed_goals, scope=str(goal_id))
            milestone = highest_milestone(completed_goals)
            if milestone is not None:
                threshold, key = milestone
                self.achievements.award(user_id, key, threshold)
        except Exception:  # noqa: BLE001
            side_effect_failure_counter.labels(sink="achievement").inc()
            logger.exception("Achievement check failed", extra={"user_id": str(user_id)})

    def _report_failure(self, record: DueRecord, error: Exception) -> None:
        self.notifications.notify_message(
            record.owner_id,
            contribution_failed(record.label),
            related_id=str(record.id),
            related_type="Goal",
        )
