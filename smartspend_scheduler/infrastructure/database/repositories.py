"""Data access layer for scheduler entities"""

import uuid
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from smartspend_scheduler.infrastructure.database.models import (
    Achievement,
    Bill,
    Goal,
    GoalContribution,
    Notification,
    Transaction,
    User,
)
from smartspend_scheduler.domain.models import (
    ActiveRecurrence,
    AchievementDefinition,
    ContributionFrequency,
    ContributionPlan,
    RecurrenceState,
    Severity,
    Terminated,
)
from smartspend_scheduler.domain.recurrence import parse_interval


def recurrence_state(txn: Transaction) -> RecurrenceState:
    """
    Read the tagged recurrence state of a transaction row.

    Raises:
        InvalidIntervalError: If an active row carries an unknown interval tag
    """
    if not txn.is_recurring or txn.next_recurring_date is None:
        return Terminated()
    return ActiveRecurrence(
        interval=parse_interval(txn.recurring_interval),
        next_occurrence=txn.next_recurring_date,
        end_date=txn.recurring_end_date,
    )


def apply_recurrence_state(txn: Transaction, state: RecurrenceState) -> None:
    """Write a recurrence state back onto its row"""
    if isinstance(state, Terminated):
        txn.is_recurring = False
        txn.recurring_interval = None
        txn.recurring_end_date = None
        txn.next_recurring_date = None
    else:
        txn.is_recurring = True
        txn.recurring_interval = state.interval.value
        txn.next_recurring_date = state.next_occurrence
        txn.recurring_end_date = state.end_date


class TransactionRepository:
    """Repository for recurring templates and materialized occurrences"""

    def __init__(self, db: Session):
        self.db = db

    def load_due_recurring(self, today: date) -> List[Transaction]:
        """Recurring templates due on or before ``today`` whose end date has not passed"""
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.is_recurring.is_(True),
                Transaction.next_recurring_date.isnot(None),
                Transaction.next_recurring_date <= today,
                or_(Transaction.recurring_end_date.is_(None), Transaction.recurring_end_date >= today),
            )
            .order_by(Transaction.kind.asc(), Transaction.next_recurring_date.asc())
            .all()
        )

    def get_for_update(self, txn_id: uuid.UUID) -> Optional[Transaction]:
        """Fetch a row and lock it for the rest of the transaction"""
        return (
            self.db.query(Transaction)
            .filter(Transaction.id == txn_id)
            .with_for_update()
            .first()
        )

    def materialize(self, template: Transaction, occurred_on: date) -> Transaction:
        """Create a concrete, non-recurring copy of a template dated ``occurred_on``"""
        occurrence = Transaction(
            user_id=template.user_id,
            kind=template.kind,
            amount_cents=template.amount_cents,
            description=template.description,
            category=template.category,
            date=occurred_on,
            payment_method=template.payment_method,
            bank_account_id=template.bank_account_id,
            is_recurring=False,
            source_id=template.id,
        )
        self.db.add(occurrence)
        self.db.flush()  # Get ID without committing
        return occurrence

    def list_occurrences(self, template_id: uuid.UUID) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.source_id == template_id)
            .order_by(Transaction.date.asc())
            .all()
        )


class GoalRepository:
    """Repository for savings goals"""

    def __init__(self, db: Session):
        self.db = db

    def load_goals_for_bucket(self, frequency: ContributionFrequency) -> List[Goal]:
        """Unfinished goals of verified users with a contribution plan in ``frequency``"""
        return (
            self.db.query(Goal)
            .join(User, Goal.user_id == User.id)
            .filter(
                Goal.monthly_contribution_cents > 0,
                Goal.contribution_frequency == frequency.value,
                Goal.saved_amount_cents < Goal.target_amount_cents,
                User.is_verified.is_(True),
            )
            .order_by(Goal.created_at.asc())
            .all()
        )

    def load_goals_expiring_on(self, day: date) -> List[Goal]:
        """Goals of verified users due on ``day`` that were not yet warned"""
        return (
            self.db.query(Goal)
            .join(User, Goal.user_id == User.id)
            .filter(
                Goal.target_date == day,
                Goal.expiring_notified_at.is_(None),
                User.is_verified.is_(True),
            )
            .all()
        )

    def load_goals_expired_between(self, start: date, end: date) -> List[Goal]:
        """Goals of verified users due within [start, end] without a closing notice"""
        return (
            self.db.query(Goal)
            .join(User, Goal.user_id == User.id)
            .filter(
                Goal.target_date >= start,
                Goal.target_date <= end,
                Goal.closed_notified_at.is_(None),
                User.is_verified.is_(True),
            )
            .all()
        )

    def get_for_update(self, goal_id: uuid.UUID) -> Optional[Goal]:
        return (
            self.db.query(Goal)
            .filter(Goal.id == goal_id)
            .with_for_update()
            .first()
        )

    def add_contribution(self, goal: Goal, plan: ContributionPlan, contributed_at: datetime) -> GoalContribution:
        """Record a deposit and raise the saved amount"""
        contribution = GoalContribution(
            amount_cents=plan.amount_cents,
            contributed_at=contributed_at,
            description=plan.description,
        )
        goal.contributions.insert(0, contribution)
        goal.saved_amount_cents = plan.saved_after_cents
        goal.updated_at = contributed_at
        self.db.flush()
        return contribution

    def count_completed_goals(self, user_id: uuid.UUID) -> int:
        return (
            self.db.query(Goal)
            .filter(
                Goal.user_id == user_id,
                Goal.saved_amount_cents >= Goal.target_amount_cents,
            )
            .count()
        )


class AchievementRepository:
    """Repository for earned achievements"""

    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: uuid.UUID, key: str, scope: str) -> Optional[Achievement]:
        return (
            self.db.query(Achievement)
            .filter(
                Achievement.user_id == user_id,
                Achievement.key == key,
                Achievement.scope == scope,
            )
            .first()
        )

    def create(self, user_id: uuid.UUID, definition: AchievementDefinition, value: int, scope: str) -> Achievement:
        achievement = Achievement(
            user_id=user_id,
            key=definition.key.value,
            type=definition.type,
            title=definition.title,
            description=definition.description,
            icon=definition.icon,
            value=value,
            scope=scope,
        )
        self.db.add(achievement)
        self.db.flush()
        return achievement

    def list_for_user(self, user_id: uuid.UUID) -> List[Achievement]:
        return (
            self.db.query(Achievement)
            .filter(Achievement.user_id == user_id)
            .order_by(Achievement.earned_at.asc())
            .all()
        )


class NotificationRepository:
    """Repository for in-app notifications"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        severity: Severity,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            severity=severity.value,
            related_id=related_id,
            related_type=related_type,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for_user(self, user_id: uuid.UUID) -> List[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.asc())
            .all()
        )


class BillRepository:
    """Repository for bills awaiting reminders"""

    def __init__(self, db: Session):
        self.db = db

    def load_bills_needing_reminder(self, now: datetime) -> List[Bill]:
        """Unpaid bills of verified users whose reminder time passed and was never sent"""
        return (
            self.db.query(Bill)
            .join(User, Bill.user_id == User.id)
            .filter(
                Bill.is_paid.is_(False),
                Bill.reminder_date.isnot(None),
                Bill.reminder_date <= now,
                Bill.reminder_sent_at.is_(None),
                User.is_verified.is_(True),
            )
            .order_by(Bill.due_date.asc())
            .all()
        )

    def get_for_update(self, bill_id: uuid.UUID) -> Optional[Bill]:
        return (
            self.db.query(Bill)
            .filter(Bill.id == bill_id)
            .with_for_update()
            .first()
        )
