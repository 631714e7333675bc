"""Domain models - pure Python dataclasses representing scheduler entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Union


class Interval(str, Enum):
    """Recurrence interval of a recurring transaction"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ContributionFrequency(str, Enum):
    """Contribution bucket of a goal's automatic contribution"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class Severity(str, Enum):
    """Notification severity shown to the user"""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class AchievementKey(str, Enum):
    GOAL_COMPLETED = "GOAL_COMPLETED"
    THREE_GOALS = "THREE_GOALS"
    FIVE_GOALS = "FIVE_GOALS"
    TEN_GOALS = "TEN_GOALS"


@dataclass(frozen=True)
class ActiveRecurrence:
    """Recurring template that still produces occurrences"""

    interval: Interval
    next_occurrence: date
    end_date: Optional[date] = None


@dataclass(frozen=True)
class Terminated:
    """Recurring template that reached its end date; never produces again"""

    pass


RecurrenceState = Union[ActiveRecurrence, Terminated]


@dataclass
class RecurrencePlan:
    """Occurrences to materialize in one run and the state left afterwards"""

    occurrences: List[date]
    final_state: RecurrenceState


@dataclass
class ContributionPlan:
    """Automatic deposit computed for a goal"""

    amount_cents: int
    description: str
    saved_after_cents: int
    completes_goal: bool


@dataclass(frozen=True)
class AchievementDefinition:
    key: AchievementKey
    title: str
    description: str
    type: str  # "goal_completed" | "milestone"
    icon: str


@dataclass
class Message:
    """In-app notification content"""

    title: str
    body: str
    severity: Severity


@dataclass
class EmailContent:
    subject: str
    text: str
    html: str


@dataclass
class RunReport:
    """Outcome counters of a single scanner run"""

    job: str
    selected: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failed_ids: List[str] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if self.failed and not self.succeeded:
            return "failed"
        if self.failed or self.skipped:
            return "partial"
        return "success"


@dataclass(frozen=True)
class Recipient:
    """Contact details of a notification recipient"""

    user_id: uuid.UUID
    name: str
    email: Optional[str]
    email_notifications: bool = True


@dataclass(frozen=True)
class AwardedAchievement:
    key: AchievementKey
    title: str
    value: int
