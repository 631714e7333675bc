"""Recurring transaction processor: materializes due occurrences and advances or ends each template"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from smartspend_scheduler.domain.messages import recurring_failed, recurring_processed
from smartspend_scheduler.domain.models import RunReport, Terminated, TransactionKind
from smartspend_scheduler.domain.recurrence import plan_occurrences
from smartspend_scheduler.infrastructure.database.models import Transaction
from smartspend_scheduler.infrastructure.database.repositories import (
    TransactionRepository,
    apply_recurrence_state,
    recurrence_state,
)
from smartspend_scheduler.services.batch import DueRecord, run_batch
from smartspend_scheduler.services.sinks import NotificationSink, SessionFactory

logger = logging.getLogger(__name__)


def _is_due(txn: Transaction, today: date) -> bool:
    return (
        bool(txn.is_recurring)
        and txn.next_recurring_date is not None
        and txn.next_recurring_date <= today
        and (txn.recurring_end_date is None or txn.recurring_end_date >= today)
    )


def _kind_label(kind: Optional[str]) -> Tuple[TransactionKind, str]:
    """(kind, notification related_type) for a stored kind tag"""
    kind_enum = TransactionKind(kind)
    return kind_enum, kind_enum.value.capitalize()


class RecurringTransactionProcessor:
    """Daily scan of recurring expenses and incomes"""

    name = "recurring_transactions"

    def __init__(
        self,
        session_factory: SessionFactory,
        notifications: NotificationSink,
        drain_backlog: bool = False,
        deadline_seconds: Optional[float] = None,
        max_workers: int = 1,
    ):
        self.session_factory = session_factory
        self.notifications = notifications
        self.drain_backlog = drain_backlog
        self.deadline_seconds = deadline_seconds
        self.max_workers = max_workers

    def run(self, today: date) -> RunReport:
        """
        Process every recurring template due on or before ``today``.

        Flow per template (one DB transaction):
        1. Materialize the occurrence(s) as non-recurring transactions
        2. Advance next occurrence, or clear the recurrence past its end date
        3. Commit, then notify the owner for each new transaction
        """
        with self.session_factory() as db:
            due = [
                DueRecord(id=t.id, owner_id=t.user_id, label=t.description, tag=t.kind)
                for t in TransactionRepository(db).load_due_recurring(today)
            ]

        logger.info("Recurring transactions due", extra={"job": self.name, "count": len(due), "today": today.isoformat()})

        return run_batch(
            self.name,
            due,
            lambda record: self._process(record, today),
            on_error=self._report_failure,
            deadline_seconds=self.deadline_seconds,
            max_workers=self.max_workers,
        )

    def _process(self, record: DueRecord, today: date) -> None:
        created: List[Tuple[str, date]] = []

        with self.session_factory() as db:
            repo = TransactionRepository(db)
            try:
                template = repo.get_for_update(record.id)
                if template is None or not _is_due(template, today):
                    # Edited, deleted, or handled by another run since the scan
                    db.rollback()
                    logger.debug("Recurring transaction no longer due", extra={"record_id": str(record.id)})
                    return

                kind, related_type = _kind_label(template.kind)
                plan = plan_occurrences(recurrence_state(template), today, drain_backlog=self.drain_backlog)

                for occurred_on in plan.occurrences:
                    occurrence = repo.materialize(template, occurred_on)
                    created.append((str(occurrence.id), occurred_on))

                apply_recurrence_state(template, plan.final_state)
                description = template.description
                amount_cents = template.amount_cents
                db.commit()

            except Exception:
                db.rollback()
                raise

        for occurrence_id, occurred_on in created:
            logger.info(
                "Recurring transaction materialized",
                extra={"record_id": str(record.id), "occurrence_id": occurrence_id, "date": occurred_on.isoformat()},
            )
            self.notifications.notify_message(
                record.owner_id,
                recurring_processed(kind, description, amount_cents),
                related_id=occurrence_id,
                related_type=related_type,
            )

        if isinstance(plan.final_state, Terminated):
            logger.info("Recurring transaction ended", extra={"record_id": str(record.id), "kind": kind.value})

    def _report_failure(self, record: DueRecord, error: Exception) -> None:
        try:
            kind, related_type = _kind_label(record.tag)
        except ValueError:
            kind, related_type = TransactionKind.EXPENSE, None
        self.notifications.notify_message(
            record.owner_id,
            recurring_failed(kind, record.label),
            related_id=str(record.id),
            related_type=related_type,
        )
