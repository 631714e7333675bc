"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from typing import Callable, Generator, List, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.infrastructure.database.models import Base, Bill, Goal, Transaction, User
from smartspend_scheduler.services.sinks import AchievementSink, EmailSink, NotificationSink


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakePushClient:
    """Records pushed events instead of calling the realtime gateway"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published: List[tuple] = []
        self.enabled = True

    def publish(self, user_id: str, payload: dict) -> None:
        if self.fail:
            raise DeliveryError("gateway down")
        self.published.append((user_id, payload))


class FakeEmailClient:
    """Records sent emails instead of calling the email API"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []
        self.enabled = True

    def send(self, address: str, subject: str, text: str, html: str) -> None:
        if self.fail:
            raise DeliveryError("email API down")
        self.sent.append({"to": address, "subject": subject, "text": text, "html": html})


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Session the tests use to arrange data and inspect results"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def push_client() -> FakePushClient:
    return FakePushClient()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def notifications(session_factory: sessionmaker, push_client: FakePushClient) -> NotificationSink:
    return NotificationSink(session_factory, push_client)


@pytest.fixture
def emails(email_client: FakeEmailClient) -> EmailSink:
    return EmailSink(email_client)


@pytest.fixture
def achievements(session_factory: sessionmaker, notifications: NotificationSink) -> AchievementSink:
    return AchievementSink(session_factory, notifications)


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(
        name: str = "Asha",
        email: Optional[str] = "asha@example.com",
        is_verified: bool = True,
        email_notifications: bool = True,
    ) -> User:
        user = User(name=name, email=email, is_verified=is_verified, email_notifications=email_notifications)
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_recurring(db: Session) -> Callable[..., Transaction]:
    def _make_recurring(
        user: User,
        interval: Optional[str] = "monthly",
        next_date: Optional[date] = date(2024, 1, 1),
        end_date: Optional[date] = None,
        kind: str = "expense",
        amount_cents: int = 120000,
        description: str = "Rent",
        category: str = "Rent/Housing",
    ) -> Transaction:
        txn = Transaction(
            user_id=user.id,
            kind=kind,
            amount_cents=amount_cents,
            description=description,
            category=category,
            date=next_date or date(2024, 1, 1),
            payment_method="Bank Transfer",
            bank_account_id="acct-1",
            is_recurring=True,
            recurring_interval=interval,
            next_recurring_date=next_date,
            recurring_end_date=end_date,
        )
        db.add(txn)
        db.commit()
        return txn

    return _make_recurring


@pytest.fixture
def make_goal(db: Session) -> Callable[..., Goal]:
    def _make_goal(
        user: User,
        name: str = "Emergency fund",
        target_cents: int = 10000,
        saved_cents: int = 0,
        contribution_cents: int = 1000,
        frequency: str = "monthly",
        target_date: date = date(2030, 1, 1),
    ) -> Goal:
        goal = Goal(
            user_id=user.id,
            name=name,
            target_amount_cents=target_cents,
            saved_amount_cents=saved_cents,
            monthly_contribution_cents=contribution_cents,
            contribution_frequency=frequency,
            target_date=target_date,
        )
        db.add(goal)
        db.commit()
        return goal

    return _make_goal


@pytest.fixture
def make_bill(db: Session) -> Callable[..., Bill]:
    def _make_bill(
        user: User,
        name: str = "Electricity",
        amount_cents: int = 4500,
        due_date: date = date(2024, 5, 10),
        reminder_date: Optional[datetime] = datetime(2024, 5, 7, 9, 0, tzinfo=timezone.utc),
        is_paid: bool = False,
    ) -> Bill:
        bill = Bill(
            user_id=user.id,
            name=name,
            amount_cents=amount_cents,
            due_date=due_date,
            reminder_date=reminder_date,
            is_paid=is_paid,
        )
        db.add(bill)
        db.commit()
        return bill

    return _make_bill
