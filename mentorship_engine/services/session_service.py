# mentorship_engine/services/session_service.py
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import MentorshipSession, MentorshipRequest, RequestStatus, SessionStatus, NotificationType
from ..constants import ErrorMessages, BusinessRules
from ..exceptions import BusinessLogicError, IllegalStateError
from ..utils.datetime import utc_now, ensure_aware_utc
from ..utils.validation_utils import ValidationUtils, validate_schedule, validate_text
from .notification_service import NotificationSink, DatabaseNotificationSink

logger = logging.getLogger(__name__)


class SessionService:
    """Schedules and closes the sessions attached to a mentorship request."""

    def __init__(self, db: Session, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.validator = ValidationUtils(db)
        self.notifier = notifier or DatabaseNotificationSink(db)

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while saving session: {e}")
            raise BusinessLogicError("Database error while saving session") from e

    def schedule_session(
        self,
        request_id: int,
        scheduled_at: datetime,
        duration: int = BusinessRules.DEFAULT_SESSION_MINUTES,
        meeting_link: Optional[str] = None,
        notes: Optional[str] = None,
        mentor_id: Optional[int] = None,
    ) -> MentorshipSession:
        """
        Appends a Scheduled session to the request and moves a Matched request to Scheduled.
        Overlapping sessions for the same mentor are not checked.
        """
        validate_schedule(scheduled_at, duration)
        notes = validate_text(notes, "Notes", BusinessRules.MAX_NOTES_LENGTH)

        request = self.validator.get_request_or_404(request_id)
        if mentor_id is not None:
            mentor_id = self.validator.get_mentor_or_404(mentor_id).id
        else:
            mentor_id = request.selected_mentor_id
        if mentor_id is None:
            raise IllegalStateError(ErrorMessages.NO_SELECTED_MENTOR)
        self.validator.validate_request_status(request, RequestStatus.MATCHED, RequestStatus.SCHEDULED)

        session = self._append_session(request, mentor_id, scheduled_at, duration, meeting_link, notes)
        logger.info(f"Session scheduled for request {request.id} with mentor {mentor_id} at {session.scheduled_at}.")
        self._notify_scheduled(request, session)
        return session

    def cancel_session(self, request_id: int, session_id: int) -> MentorshipSession:
        request, session = self._get_open_session(request_id, session_id)
        session.status = SessionStatus.CANCELLED.value
        self._commit()
        logger.info(f"Session {session_id} of request {request.id} cancelled.")
        return session

    def mark_no_show(self, request_id: int, session_id: int) -> MentorshipSession:
        request, session = self._get_open_session(request_id, session_id)
        if ensure_aware_utc(session.scheduled_at) > utc_now():
            raise IllegalStateError("Cannot mark a session as no-show before it starts")
        session.status = SessionStatus.NO_SHOW.value
        self._commit()
        logger.info(f"Session {session_id} of request {request.id} marked as no-show.")
        return session

    def reschedule_session(
        self,
        request_id: int,
        session_id: int,
        scheduled_at: datetime,
        duration: Optional[int] = None,
    ) -> MentorshipSession:
        """Closes the session as Rescheduled and returns its replacement."""
        request, old = self._get_open_session(request_id, session_id)
        duration = old.duration if duration is None else duration
        validate_schedule(scheduled_at, duration)

        old.status = SessionStatus.RESCHEDULED.value
        session = self._append_session(
            request, old.mentor_id, scheduled_at, duration, old.meeting_link, old.notes,
            rescheduled_from_id=old.id,
        )
        logger.info(f"Session {old.id} of request {request.id} rescheduled as session {session.id}.")
        self._notify_scheduled(request, session)
        return session

    def _get_open_session(self, request_id: int, session_id: int):
        request = self.validator.get_request_or_404(request_id)
        session = self.validator.get_session_or_404(request, session_id)
        # Completed and Cancelled requests are frozen
        self.validator.validate_request_status(request, RequestStatus.MATCHED, RequestStatus.SCHEDULED)
        self.validator.validate_session_open(session)
        return request, session

    def _append_session(
        self,
        request: MentorshipRequest,
        mentor_id: int,
        scheduled_at: datetime,
        duration: int,
        meeting_link: Optional[str],
        notes: Optional[str],
        rescheduled_from_id: Optional[int] = None,
    ) -> MentorshipSession:
        session = MentorshipSession(
            mentor_id=mentor_id,
            scheduled_at=ensure_aware_utc(scheduled_at),
            duration=duration,
            meeting_link=meeting_link,
            notes=notes,
            status=SessionStatus.SCHEDULED.value,
            rescheduled_from_id=rescheduled_from_id,
        )
        try:
            request.sessions.append(session)
            if request.status == RequestStatus.MATCHED:
                request.transition_to(RequestStatus.SCHEDULED)
            self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise
        self.db.refresh(session)
        return session

    def _notify_scheduled(self, request: MentorshipRequest, session: MentorshipSession):
        when = ensure_aware_utc(session.scheduled_at).strftime("%Y-%m-%d %H:%M UTC")
        mentor = self.validator.get_mentor_or_404(session.mentor_id)
        for recipient_id in (mentor.user_id, request.requester_id):
            self.notifier.emit(
                recipient_id=recipient_id,
                type=NotificationType.SESSION_SCHEDULED,
                title="Mentorship Session Scheduled",
                message=f"A session for '{request.topic}' is scheduled for {when} ({session.duration} minutes).",
                related_request_id=request.id,
            )
