"""SQLAlchemy ORM models for the records the scheduler reads and mutates"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    UniqueConstraint,
    Uuid,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    """Account owner (managed by the main application, read-only here)"""

    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    email_notifications = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    goals = relationship("Goal", back_populates="user")


class Transaction(Base):
    """Expense or income; recurring rows act as templates for new occurrences"""

    __tablename__ = "financial_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(Text, nullable=False)  # "expense" | "income"
    amount_cents = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    payment_method = Column(Text, nullable=True)
    bank_account_id = Column(Text, nullable=True)

    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(Text, nullable=True)
    next_recurring_date = Column(Date, nullable=True)
    recurring_end_date = Column(Date, nullable=True)

    # Template this occurrence was materialized from
    source_id = Column(Uuid, ForeignKey("financial_transaction.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User")

    __table_args__ = (
        Index("ix_transaction_recurring_due", "is_recurring", "next_recurring_date"),
    )


class Goal(Base):
    """Savings goal with an optional fixed automatic contribution"""

    __tablename__ = "savings_goal"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    target_amount_cents = Column(BigInteger, nullable=False)
    saved_amount_cents = Column(BigInteger, nullable=False, default=0)
    target_date = Column(Date, nullable=False, index=True)
    monthly_contribution_cents = Column(BigInteger, nullable=False, default=0)
    contribution_frequency = Column(Text, nullable=False, default="monthly")

    # Lifecycle notifications already delivered
    expiring_notified_at = Column(DateTime(timezone=True), nullable=True)
    closed_notified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="goals")
    contributions = relationship(
        "GoalContribution",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="desc(GoalContribution.contributed_at)",
    )


class GoalContribution(Base):
    """Single deposit into a goal"""

    __tablename__ = "goal_contribution"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    goal_id = Column(Uuid, ForeignKey("savings_goal.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    contributed_at = Column(DateTime(timezone=True), nullable=False)
    description = Column(Text, nullable=False, default="")

    goal = relationship("Goal", back_populates="contributions")


class Achievement(Base):
    """Badge earned by a user; one row per (user, key, scope)"""

    __tablename__ = "achievement"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    key = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(Text, nullable=False, default="🏆")
    value = Column(Integer, nullable=False, default=0)
    # What the badge was earned for: the completed goal id, or the milestone threshold
    scope = Column(Text, nullable=False)
    is_seen = Column(Boolean, nullable=False, default=False)
    earned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "key", "scope", name="uq_achievement_user_key_scope"),
    )


class Notification(Base):
    """In-app notification (append-only)"""

    __tablename__ = "notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(Text, nullable=False, default="info")
    read = Column(Boolean, nullable=False, default=False)
    related_id = Column(Text, nullable=True)
    related_type = Column(Text, nullable=True)  # "Expense" | "Income" | "Goal" | "Bill"
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_notification_user_read_created", "user_id", "read", "created_at"),
    )


class Bill(Base):
    """Upcoming bill with an optional reminder"""

    __tablename__ = "bill"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    reminder_date = Column(DateTime(timezone=True), nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User")
