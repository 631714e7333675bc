"""Goal lifecycle notifier: "expiring soon" and "expired or achieved" notices"""

import logging
from datetime import date, datetime
from typing import Optional

from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.domain.messages import (
    as_email,
    goal_achieved,
    goal_expired,
    goal_expiring_soon,
    goal_notice_failed,
)
from smartspend_scheduler.domain.models import Recipient, RunReport
from smartspend_scheduler.infrastructure.database.repositories import GoalRepository
from smartspend_scheduler.services.batch import DueRecord, run_batch
from smartspend_scheduler.services.sinks import EmailSink, NotificationSink, SessionFactory
from smartspend_scheduler.utils.date_utils import day_window, tomorrow_of, utcnow, yesterday_of

logger = logging.getLogger(__name__)

EXPIRING = "expiring"
CLOSED = "closed"


class GoalLifecycleNotifier:
    """
    Daily scan for goals around their target date.

    Each goal gets at most one "expiring soon" notice and one closing notice
    ("achieved" or "expired"). Delivery is recorded on the goal, so re-running
    the job on the same day sends nothing new.
    """

    name = "goal_lifecycle"

    def __init__(
        self,
        session_factory: SessionFactory,
        notifications: NotificationSink,
        emails: EmailSink,
        lookback_days: int = 1,
        deadline_seconds: Optional[float] = None,
        max_workers: int = 1,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.emails = emails
        self.lookback_days = lookback_days
        self.deadline_seconds = deadline_seconds
        self.max_workers = max_workers

    def run(self, today: date, now: Optional[datetime] = None) -> RunReport:
        now = now or utcnow()
        start, end = day_window(yesterday_of(today), self.lookback_days)

        with self.session_factory() as db:
            repo = GoalRepository(db)
            due = [
                DueRecord(id=g.id, owner_id=g.user_id, label=g.name, tag=EXPIRING)
                for g in repo.load_goals_expiring_on(tomorrow_of(today))
            ]
            due += [
                DueRecord(id=g.id, owner_id=g.user_id, label=g.name, tag=CLOSED)
                for g in repo.load_goals_expired_between(start, end)
            ]

        logger.info(
            "Goals due for lifecycle notices",
            extra={
                "job": self.name,
                "expiring": sum(1 for r in due if r.tag == EXPIRING),
                "closed": sum(1 for r in due if r.tag == CLOSED),
            },
        )

        return run_batch(
            self.name,
            due,
            lambda record: self._process(record, now),
            on_error=self._report_failure,
            deadline_seconds=self.deadline_seconds,
            max_workers=self.max_workers,
        )

    def _process(self, record: DueRecord, now: datetime) -> None:
        with self.session_factory() as db:
            repo = GoalRepository(db)
            try:
                goal = repo.get_for_update(record.id)
                if goal is None:
                    db.rollback()
                    return

                if record.tag == EXPIRING:
                    if goal.expiring_notified_at is not None:
                        db.rollback()
                        return
                    message = goal_expiring_soon(
                        goal.name, goal.target_date, goal.saved_amount_cents, goal.target_amount_cents
                    )
                else:
                    if goal.closed_notified_at is not None:
                        db.rollback()
                        return
                    if goal.saved_amount_cents >= goal.target_amount_cents:
                        message = goal_achieved(goal.name, goal.saved_amount_cents, goal.target_amount_cents)
                    else:
                        message = goal_expired(goal.name, goal.saved_amount_cents, goal.target_amount_cents)

                recipient = Recipient(
                    user_id=goal.user.id,
                    name=goal.user.name,
                    email=goal.user.email,
                    email_notifications=bool(goal.user.email_notifications),
                )

                # The flag is only stamped once the notice is stored, so a failed notice is retried next run
                notification_id = self.notifications.notify_message(
                    recipient.user_id, message, related_id=str(record.id), related_type="Goal"
                )
                if notification_id is None:
                    raise DeliveryError(f"Could not store {record.tag} notice for goal {record.id}")

                if record.tag == EXPIRING:
                    goal.expiring_notified_at = now
                else:
                    goal.closed_notified_at = now
                db.commit()

            except Exception:
                db.rollback()
                raise

        self.emails.send_to(recipient, as_email(recipient.name, message))
        logger.info(
            "Goal lifecycle notice sent",
            extra={"record_id": str(record.id), "notice": message.title, "user_id": str(recipient.user_id)},
        )

    def _report_failure(self, record: DueRecord, error: Exception) -> None:
        self.notifications.notify_message(
            record.owner_id,
            goal_notice_failed(record.label),
            related_id=str(record.id),
            related_type="Goal",
        )
