# mentorship_engine/dependencies/service_dependencies.py
from functools import lru_cache
from fastapi import Depends
from sqlalchemy.orm import Session
from ..config import get_settings
from ..database import get_db
from ..core.semantic import SemanticProvider, get_semantic_provider
from ..services.mentorship_service import MentorshipService
from ..services.session_service import SessionService
from ..services.feedback_service import FeedbackService
from ..services.notification_service import NotificationSink, DatabaseNotificationSink, LoggingNotificationSink

@lru_cache()
def get_default_semantic_provider() -> SemanticProvider:
    return get_semantic_provider()

def get_notification_sink(db: Session = Depends(get_db)) -> NotificationSink:
    if get_settings().NOTIFICATION_SINK == "logging":
        return LoggingNotificationSink()
    return DatabaseNotificationSink(db)

def get_mentorship_service(
    db: Session = Depends(get_db),
    semantic_provider: SemanticProvider = Depends(get_default_semantic_provider),
    notifier: NotificationSink = Depends(get_notification_sink),
) -> MentorshipService:
    return MentorshipService(db, semantic_provider=semantic_provider, notifier=notifier)

def get_session_service(
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
) -> SessionService:
    return SessionService(db, notifier=notifier)

def get_feedback_service(db: Session = Depends(get_db)) -> FeedbackService:
    return FeedbackService(db)
