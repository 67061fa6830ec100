# mentorship_engine/services/mentorship_service.py
import logging
from contextlib import nullcontext
from datetime import timedelta
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import (
    Mentor, MentorshipRequest, MatchEntry, MentorshipSession, MentorAvailability,
    RequestStatus, MatchStatus, SessionStatus, NotificationType, URGENCY_RANK, Urgency,
)
from ..config import get_settings
from ..constants import ErrorMessages, BusinessRules
from ..core.locks import mentor_locks, MentorLockRegistry
from ..core.semantic import SemanticProvider
from ..exceptions import BusinessLogicError, CapacityExceededError, IllegalStateError, NotFoundError, ValidationError
from ..utils.datetime import utc_now, ensure_aware_utc
from ..utils.validation_utils import ValidationUtils, validate_text
from .capacity_service import MentorCapacityService
from .matching_service import MatchingService
from .notification_service import NotificationSink, DatabaseNotificationSink

logger = logging.getLogger(__name__)

# Requests still holding a mentee slot on their selected mentor
ACTIVE_STATUSES = (RequestStatus.MATCHED.value, RequestStatus.SCHEDULED.value)


class MentorshipService:
    def __init__(
        self,
        db: Session,
        semantic_provider: Optional[SemanticProvider] = None,
        notifier: Optional[NotificationSink] = None,
        locks: MentorLockRegistry = mentor_locks,
    ):
        self.db = db
        self.settings = get_settings()
        self.validator = ValidationUtils(db)
        self.matching = MatchingService(db, semantic_provider)
        self.capacity = MentorCapacityService(db, locks)
        self.locks = locks
        self.notifier = notifier or DatabaseNotificationSink(db)

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while saving mentorship request: {e}")
            raise BusinessLogicError("Database error while saving mentorship request") from e

    # --- Commands ---

    def create_request(
        self,
        startup_id: int,
        requester_id: int,
        topic: str,
        description: str,
        skills: List[str],
        domains: Optional[List[str]] = None,
        urgency: str = Urgency.MEDIUM.value,
        preferred_times: Optional[List[Dict[str, Any]]] = None,
        include_semantic: bool = True,
    ) -> MentorshipRequest:
        """Creates a Pending request and runs matching once."""
        fields = self.validator.validate_request_fields(
            topic, description, skills, domains, urgency, preferred_times
        )
        request = MentorshipRequest(
            startup_id=startup_id,
            requester_id=requester_id,
            status=RequestStatus.PENDING.value,
            **fields,
        )
        self.db.add(request)
        self._commit()
        self.db.refresh(request)
        logger.info(f"Mentorship request {request.id} created for startup {startup_id}.")

        self.notifier.emit(
            recipient_id=requester_id,
            type=NotificationType.REQUEST_CREATED,
            title="Mentorship request created",
            message=f"Your request '{request.topic}' was received. We are finding mentors for you.",
            related_request_id=request.id,
        )

        request_id = request.id
        try:
            request = self.run_matching(request_id, include_semantic=include_semantic)
        except Exception as e:
            # The request stands without matches; matching can be re-run later
            self.db.rollback()
            logger.error(f"Matching failed for request {request_id}: {e}", exc_info=True)
            request = self.validator.get_request_or_404(request_id)
        return request

    def run_matching(self, request_id: int, include_semantic: bool = True) -> MentorshipRequest:
        """Replaces the request's matched mentors with a fresh ranking."""
        request = self.validator.get_request_or_404(request_id)
        self.validator.validate_request_status(request, RequestStatus.PENDING, RequestStatus.MATCHED)
        if request.selected_mentor_id is not None:
            raise IllegalStateError(ErrorMessages.ALREADY_SELECTED)

        try:
            matches = self.matching.get_mentor_matches(request, include_semantic=include_semantic)

            request.matched_mentors = [
                MatchEntry(status=MatchStatus.SUGGESTED.value, **match) for match in matches
            ]
            summary = self.matching.get_recommendation_summary(request, matches)
            if summary:
                request.notes = summary
            request.transition_to(RequestStatus.MATCHED if matches else RequestStatus.PENDING)
            self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise

        logger.info(f"Request {request.id} now has {len(matches)} matched mentors (status {request.status}).")

        for match in matches[:self.settings.MATCH_NOTIFY_TOP]:
            self.notifier.emit(
                recipient_id=self._mentor_user_id(match["mentor_id"]),
                type=NotificationType.MENTOR_MATCHED,
                title="New Mentorship Request",
                message=f"You've been matched with a startup for: {request.topic}",
                related_request_id=request.id,
            )
        return request

    def select_mentor(self, request_id: int, mentor_id: int) -> MentorshipRequest:
        request = self.validator.get_request_or_404(request_id)
        entry = request.find_match(mentor_id)
        if entry is None:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_MATCHED)
        self.validator.validate_request_status(request, RequestStatus.MATCHED, RequestStatus.SCHEDULED)
        if request.selected_mentor_id is not None:
            raise IllegalStateError(ErrorMessages.ALREADY_SELECTED)
        if entry.status == MatchStatus.DECLINED:
            raise IllegalStateError("Cannot select a declined mentor")

        try:
            with self.capacity.locked_mentor(mentor_id) as mentor:
                if not mentor.add_mentee(request.startup_id):
                    logger.warning(f"Mentor {mentor_id} is at capacity; selection for request {request.id} rejected.")
                    raise CapacityExceededError(ErrorMessages.CAPACITY_EXCEEDED)
                entry.status = MatchStatus.ACCEPTED.value
                entry.accepted_at = utc_now()
                request.selected_mentor_id = mentor_id
                self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise

        logger.info(f"Mentor {mentor_id} selected for request {request.id}.")
        self.notifier.emit(
            recipient_id=self._mentor_user_id(mentor_id),
            type=NotificationType.MENTOR_SELECTED,
            title="You've been selected as a mentor!",
            message=f"A startup has selected you as their mentor for: {request.topic}",
            related_request_id=request.id,
        )
        return request

    def decline_match(self, request_id: int, mentor_id: int, reason: Optional[str] = None) -> MentorshipRequest:
        request = self.validator.get_request_or_404(request_id)
        entry = request.find_match(mentor_id)
        if entry is None:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_MATCHED)
        self.validator.validate_request_status(request, RequestStatus.MATCHED, RequestStatus.SCHEDULED)
        if entry.status == MatchStatus.ACCEPTED:
            raise IllegalStateError("Cannot decline the selected mentor")
        reason = validate_text(reason, "Decline reason", BusinessRules.MAX_CANCEL_REASON_LENGTH)

        if entry.status != MatchStatus.DECLINED:
            entry.status = MatchStatus.DECLINED.value
            entry.declined_at = utc_now()
            entry.decline_reason = reason
            self._commit()
            logger.info(f"Mentor {mentor_id} declined for request {request.id}.")
        return request

    def cancel_request(self, request_id: int, cancelled_by: int, reason: str = "") -> MentorshipRequest:
        request = self.validator.get_request_or_404(request_id)
        reason = validate_text(reason, "Cancellation reason", BusinessRules.MAX_CANCEL_REASON_LENGTH)
        if not request.can_be_cancelled():
            raise IllegalStateError(f"{ErrorMessages.CANNOT_CANCEL} ({request.status})")

        try:
            with self._mentor_lock(request):
                self._close_open_sessions(request)
                request.transition_to(RequestStatus.CANCELLED)
                request.cancelled_at = utc_now()
                request.cancelled_by = cancelled_by
                request.cancellation_reason = reason or None
                self._release_mentee(request)
                self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise

        logger.info(f"Request {request.id} cancelled by {cancelled_by}.")
        return request

    def complete_request(self, request_id: int) -> MentorshipRequest:
        request = self.validator.get_request_or_404(request_id)

        try:
            with self._mentor_lock(request):
                request.transition_to(RequestStatus.COMPLETED)
                self._close_open_sessions(request)
                request.completed_at = utc_now()
                self._release_mentee(request)
                self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise

        logger.info(f"Request {request.id} completed.")
        return request

    def _close_open_sessions(self, request: MentorshipRequest):
        for session in request.sessions:
            if session.is_open:
                session.status = SessionStatus.CANCELLED.value
                logger.info(f"Open session {session.id} of request {request.id} closed with the request.")

    def _mentor_lock(self, request: MentorshipRequest):
        if request.selected_mentor_id is None:
            return nullcontext()
        return self.locks.hold(request.selected_mentor_id)

    def _release_mentee(self, request: MentorshipRequest):
        """Frees the startup's slot unless another active request still uses this mentor. Caller holds the lock."""
        if request.selected_mentor_id is None:
            return
        still_active = self.db.query(MentorshipRequest).filter(
            MentorshipRequest.id != request.id,
            MentorshipRequest.startup_id == request.startup_id,
            MentorshipRequest.selected_mentor_id == request.selected_mentor_id,
            MentorshipRequest.status.in_(ACTIVE_STATUSES),
        ).count()
        if still_active:
            return
        mentor = self.capacity.load_for_update(request.selected_mentor_id)
        mentor.remove_mentee(request.startup_id)

    def _mentor_user_id(self, mentor_id: int) -> Optional[int]:
        mentor = self.db.get(Mentor, mentor_id)
        return mentor.user_id if mentor else None

    # --- Queries ---

    def get_request(self, request_id: int) -> MentorshipRequest:
        return self.validator.get_request_or_404(request_id)

    def list_requests(
        self,
        startup_id: Optional[int] = None,
        mentor_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[MentorshipRequest], int]:
        """Newest first. Returns one page of requests and the total count."""
        query = self.db.query(MentorshipRequest)
        if startup_id is not None:
            query = query.filter(MentorshipRequest.startup_id == startup_id)
        if mentor_id is not None:
            query = query.filter(MentorshipRequest.matched_mentors.any(MatchEntry.mentor_id == mentor_id))
        if status is not None:
            try:
                status = RequestStatus(status).value
            except ValueError:
                raise ValidationError(f"Invalid status '{status}'")
            query = query.filter(MentorshipRequest.status == status)

        total = query.count()
        page = max(page, 1)
        limit = max(limit, 1)
        items = (
            query.order_by(MentorshipRequest.created_at.desc(), MentorshipRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def get_requests_for_mentor(self, mentor_id: int) -> List[MentorshipRequest]:
        """Open requests on which the mentor appears as a match."""
        return (
            self.db.query(MentorshipRequest)
            .filter(
                MentorshipRequest.matched_mentors.any(MatchEntry.mentor_id == mentor_id),
                MentorshipRequest.status.in_(ACTIVE_STATUSES),
            )
            .order_by(MentorshipRequest.created_at.desc(), MentorshipRequest.id.desc())
            .all()
        )

    def get_requests_needing_attention(self, days: Optional[int] = None) -> List[MentorshipRequest]:
        """Pending requests older than ``days``, most urgent first, then oldest first."""
        days = self.settings.ATTENTION_AFTER_DAYS if days is None else days
        cutoff = utc_now() - timedelta(days=days)

        pending = (
            self.db.query(MentorshipRequest)
            .filter(MentorshipRequest.status == RequestStatus.PENDING.value)
            .order_by(MentorshipRequest.created_at.asc(), MentorshipRequest.id.asc())
            .all()
        )
        stale = [r for r in pending if r.created_at is not None and ensure_aware_utc(r.created_at) < cutoff]
        stale.sort(key=lambda r: URGENCY_RANK.get(Urgency(r.urgency), len(URGENCY_RANK)))
        return stale

    def get_startup_stats(self, startup_id: int) -> Dict[str, int]:
        rows = (
            self.db.query(MentorshipRequest.status, func.count(MentorshipRequest.id))
            .filter(MentorshipRequest.startup_id == startup_id)
            .group_by(MentorshipRequest.status)
            .all()
        )
        counts = {status: count for status, count in rows}
        total_sessions = (
            self.db.query(func.count(MentorshipSession.id))
            .join(MentorshipRequest, MentorshipSession.request_id == MentorshipRequest.id)
            .filter(MentorshipRequest.startup_id == startup_id)
            .scalar()
        )
        return {
            "total": sum(counts.values()),
            "pending": counts.get(RequestStatus.PENDING.value, 0),
            "matched": counts.get(RequestStatus.MATCHED.value, 0),
            "scheduled": counts.get(RequestStatus.SCHEDULED.value, 0),
            "completed": counts.get(RequestStatus.COMPLETED.value, 0),
            "cancelled": counts.get(RequestStatus.CANCELLED.value, 0),
            "total_sessions": total_sessions or 0,
        }

    def list_mentors(
        self,
        active_only: bool = True,
        domain: Optional[str] = None,
        skill: Optional[str] = None,
        availability: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Mentor], int]:
        """Highest rated first. Returns one page of mentors and the total count."""
        query = self.db.query(Mentor)
        if active_only:
            query = query.filter(Mentor.is_active == True)
        if availability is not None:
            try:
                availability = MentorAvailability(availability).value
            except ValueError:
                raise ValidationError(f"Invalid availability '{availability}'")
            query = query.filter(Mentor.availability == availability)
        mentors = query.order_by(Mentor.rating.desc(), Mentor.id.asc()).all()

        # JSON columns differ between PostgreSQL and SQLite; filter list fields in Python
        if domain:
            mentors = [m for m in mentors if domain in (m.domains or [])]
        if skill:
            wanted = skill.strip().lower()
            mentors = [m for m in mentors if any(wanted in s.lower() for s in (m.expertise or []))]
        if search and search.strip():
            term = search.strip().lower()
            mentors = [m for m in mentors if self._mentor_matches_search(m, term)]

        total = len(mentors)
        page = max(page, 1)
        limit = max(limit, 1)
        start = (page - 1) * limit
        return mentors[start:start + limit], total

    @staticmethod
    def _mentor_matches_search(mentor: Mentor, term: str) -> bool:
        fields = [mentor.name or "", mentor.bio or ""] + list(mentor.expertise or [])
        return any(term in field.lower() for field in fields)

    def get_mentor(self, mentor_id: int) -> Mentor:
        return self.validator.get_mentor_or_404(mentor_id)
