# mentorship_engine/services/notification_service.py
import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """
    Fire-and-forget delivery of lifecycle notifications.

    emit() never raises: a failed notification is logged and the operation that
    produced it is left untouched.
    """

    @abstractmethod
    def send(
        self,
        recipient_id: int,
        type: NotificationType,
        title: str,
        message: str,
        related_request_id: Optional[int] = None,
    ) -> None:
        pass

    def emit(
        self,
        recipient_id: Optional[int],
        type: NotificationType,
        title: str,
        message: str,
        related_request_id: Optional[int] = None,
    ) -> None:
        if recipient_id is None:
            logger.debug(f"Skipping '{NotificationType(type).value}' notification: no recipient.")
            return
        try:
            self.send(recipient_id, NotificationType(type), title, message, related_request_id)
        except Exception as e:
            logger.error(
                f"Failed to send '{NotificationType(type).value}' notification to {recipient_id}: {e}",
                exc_info=True,
            )


class DatabaseNotificationSink(NotificationSink):
    """Stores notifications as rows, committed separately after the primary change."""

    def __init__(self, db: Session):
        self.db = db

    def send(self, recipient_id, type, title, message, related_request_id=None):
        notification = Notification(
            recipient_id=recipient_id,
            type=type.value,
            title=title,
            message=message,
            related_request_id=related_request_id,
            is_read=False,
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class LoggingNotificationSink(NotificationSink):
    """For deployments without notification storage."""

    def send(self, recipient_id, type, title, message, related_request_id=None):
        logger.info(f"Notification [{type.value}] to {recipient_id} (request {related_request_id}): {title} - {message}")
