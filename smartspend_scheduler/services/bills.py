"""Bill reminder notifier"""

import logging
from datetime import datetime
from typing import Optional

from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.domain.messages import as_email, bill_reminder, bill_reminder_failed
from smartspend_scheduler.domain.models import Recipient, RunReport
from smartspend_scheduler.infrastructure.database.repositories import BillRepository
from smartspend_scheduler.services.batch import DueRecord, run_batch
from smartspend_scheduler.services.sinks import EmailSink, NotificationSink, SessionFactory

logger = logging.getLogger(__name__)


class BillReminderNotifier:
    """Sends one reminder per unpaid bill once its reminder time has passed"""

    name = "bill_reminders"

    def __init__(
        self,
        session_factory: SessionFactory,
        notifications: NotificationSink,
        emails: EmailSink,
        deadline_seconds: Optional[float] = None,
        max_workers: int = 1,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.emails = emails
        self.deadline_seconds = deadline_seconds
        self.max_workers = max_workers

    def run(self, now: datetime) -> RunReport:
        with self.session_factory() as db:
            due = [
                DueRecord(id=b.id, owner_id=b.user_id, label=b.name)
                for b in BillRepository(db).load_bills_needing_reminder(now)
            ]

        logger.info("Bills needing reminders", extra={"job": self.name, "count": len(due)})

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
            repo = BillRepository(db)
            try:
                bill = repo.get_for_update(record.id)
                if bill is None or bill.is_paid or bill.reminder_sent_at is not None:
                    db.rollback()
                    return

                message = bill_reminder(bill.name, bill.amount_cents, bill.due_date)
                recipient = Recipient(
                    user_id=bill.user.id,
                    name=bill.user.name,
                    email=bill.user.email,
                    email_notifications=bool(bill.user.email_notifications),
                )

                notification_id = self.notifications.notify_message(
                    recipient.user_id, message, related_id=str(record.id), related_type="Bill"
                )
                if notification_id is None:
                    raise DeliveryError(f"Could not store reminder for bill {record.id}")

                bill.reminder_sent_at = now
                db.commit()

            except Exception:
                db.rollback()
                raise

        self.emails.send_to(recipient, as_email(recipient.name, message))
        logger.info("Bill reminder sent", extra={"record_id": str(record.id), "user_id": str(recipient.user_id)})

    def _report_failure(self, record: DueRecord, error: Exception) -> None:
        self.notifications.notify_message(
            record.owner_id,
            bill_reminder_failed(record.label),
            related_id=str(record.id),
            related_type="Bill",
        )
