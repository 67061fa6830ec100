# mentorship_engine/services/__init__.py
from .mentorship_service import MentorshipService
from .matching_service import MatchingService
from .session_service import SessionService
from .feedback_service import FeedbackService
from .capacity_service import MentorCapacityService
from .notification_service import NotificationSink, DatabaseNotificationSink, LoggingNotificationSink

__all__ = [
    "MentorshipService",
    "MatchingService",
    "SessionService",
    "FeedbackService",
    "MentorCapacityService",
    "NotificationSink",
    "DatabaseNotificationSink",
    "LoggingNotificationSink",
]
