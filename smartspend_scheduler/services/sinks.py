"""
Side-effect sinks used by the scheduler jobs.

All three sinks are best-effort from the caller's point of view: a failure is
logged and counted, never propagated into the financial transaction that
triggered it. Each call opens its own session so it commits independently of
the caller's unit of work.
"""

import logging
import uuid
from typing import Callable, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartspend_scheduler.domain.achievements import get_definition
from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.domain.messages import achievement_unlocked
from smartspend_scheduler.domain.models import (
    AchievementKey,
    AwardedAchievement,
    EmailContent,
    Message,
    Recipient,
    Severity,
)
from smartspend_scheduler.infrastructure.clients.email import EmailClient
from smartspend_scheduler.infrastructure.clients.push import PushClient
from smartspend_scheduler.infrastructure.database.repositories import AchievementRepository, NotificationRepository
from smartspend_scheduler.infrastructure.observability.metrics import achievement_counter, side_effect_failure_counter

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class NotificationSink:
    """Persists in-app notifications and pushes them to connected clients"""

    def __init__(self, session_factory: SessionFactory, push_client: PushClient):
        self.session_factory = session_factory
        self.push_client = push_client

    def notify(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        severity: Severity,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None,
    ) -> Optional[uuid.UUID]:
        """
        Store a notification and push it to the owner.

        Returns the notification ID, or None when it could not be stored. A
        failed push does not undo the stored notification.
        """
        with self.session_factory() as db:
            try:
                notification = NotificationRepository(db).create(
                    user_id=user_id,
                    title=title,
                    message=message,
                    severity=severity,
                    related_id=related_id,
                    related_type=related_type,
                )
                notification_id = notification.id
                db.commit()
            except Exception:
                db.rollback()
                side_effect_failure_counter.labels(sink="notification").inc()
                logger.exception("Failed to store notification", extra={"user_id": str(user_id), "title": title})
                return None

        try:
            self.push_client.publish(
                str(user_id),
                {
                    "id": str(notification_id),
                    "title": title,
                    "message": message,
                    "type": severity.value,
                    "related_id": related_id,
                    "related_type": related_type,
                },
            )
        except DeliveryError as e:
            side_effect_failure_counter.labels(sink="push").inc()
            logger.warning(f"Notification push failed: {e}", extra={"user_id": str(user_id)})

        return notification_id

    def notify_message(
        self,
        user_id: uuid.UUID,
        message: Message,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None,
    ) -> Optional[uuid.UUID]:
        return self.notify(user_id, message.title, message.body, message.severity, related_id, related_type)


class EmailSink:
    """Sends emails through the email API, honouring the recipient's opt-out"""

    def __init__(self, email_client: EmailClient):
        self.email_client = email_client

    def send(self, address: str, subject: str, text: str, html: str) -> bool:
        """Returns True when the email was accepted for delivery"""
        if not self.email_client.enabled:
            logger.debug("Email delivery disabled; skipping", extra={"subject": subject})
            return False
        try:
            self.email_client.send(address, subject, text, html)
            return True
        except DeliveryError as e:
            side_effect_failure_counter.labels(sink="email").inc()
            logger.warning(f"Email delivery failed: {e}", extra={"subject": subject})
            return False

    def send_to(self, recipient: Recipient, content: EmailContent) -> bool:
        if not recipient.email or not recipient.email_notifications:
            return False
        return self.send(recipient.email, content.subject, content.text, content.html)


class AchievementSink:
    """Idempotently records achievements and announces new ones"""

    def __init__(self, session_factory: SessionFactory, notifications: NotificationSink):
        self.session_factory = session_factory
        self.notifications = notifications

    def award(
        self,
        user_id: uuid.UUID,
        key: AchievementKey | str,
        value: int = 0,
        scope: Optional[str] = None,
    ) -> Tuple[AwardedAchievement, bool]:
        """
        Award an achievement unless (user, key, scope) already exists.

        ``scope`` names what the badge was earned for and defaults to ``value``.

        Returns:
            (achievement, already_existed)

        Raises:
            UnknownAchievementError: If ``key`` has no definition
        """
        definition = get_definition(key)
        awarded = AwardedAchievement(key=definition.key, title=definition.title, value=value)
        scope = str(value) if scope is None else scope

        with self.session_factory() as db:
            repo = AchievementRepository(db)
            if repo.find(user_id, definition.key.value, scope) is not None:
                return awarded, True
            try:
                repo.create(user_id, definition, value, scope)
                db.commit()
            except IntegrityError:
                # Concurrent award of the same badge won the race
                db.rollback()
                return awarded, True

        achievement_counter.labels(key=definition.key.value).inc()
        logger.info(
            "Achievement awarded",
            extra={"user_id": str(user_id), "achievement": definition.key.value, "value": value, "scope": scope},
        )
        self.notifications.notify_message(user_id, achievement_unlocked(definition.title))
        return awarded, False
