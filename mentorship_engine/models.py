# mentorship_engine/models.py
import logging
from enum import Enum
from typing import Optional
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Boolean, Float, ForeignKey, Sequence
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, validates

from .database import Base
from .constants import BusinessRules, ErrorMessages
from .core.scoring import round2
from .exceptions import InvalidStatusTransitionError, ValidationError
from .utils.datetime import utc_now

logger = logging.getLogger(__name__)

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB, "postgresql")

# Enum for Mentorship Request Status
class RequestStatus(str, Enum):
    PENDING = "Pending"
    MATCHED = "Matched"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed" # Terminal
    CANCELLED = "Cancelled" # Terminal

class Urgency(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

class MatchStatus(str, Enum):
    SUGGESTED = "Suggested"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    PENDING = "Pending"

class SessionStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No-Show"
    RESCHEDULED = "Rescheduled"

class MentorAvailability(str, Enum):
    AVAILABLE = "Available"
    BUSY = "Busy"
    UNAVAILABLE = "Unavailable"

class NotificationType(str, Enum):
    REQUEST_CREATED = "mentorship_request_created"
    MENTOR_MATCHED = "mentor_matched"
    MENTOR_SELECTED = "mentor_selected"
    SESSION_SCHEDULED = "session_scheduled"

# Allowed request status transitions; anything else is rejected
REQUEST_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.MATCHED, RequestStatus.CANCELLED},
    RequestStatus.MATCHED: {RequestStatus.SCHEDULED, RequestStatus.CANCELLED, RequestStatus.PENDING},
    RequestStatus.SCHEDULED: {RequestStatus.COMPLETED, RequestStatus.CANCELLED},
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}

CANCELLABLE_STATUSES = {RequestStatus.PENDING, RequestStatus.MATCHED, RequestStatus.SCHEDULED}

# Urgency ordering for "most urgent first" queries
URGENCY_RANK = {Urgency.CRITICAL: 0, Urgency.HIGH: 1, Urgency.MEDIUM: 2, Urgency.LOW: 3}


class Mentor(Base):
    __tablename__ = "mentors"

    id = Column(Integer, Sequence('mentor_id_seq'), primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    name = Column(String(100), nullable=False, index=True)

    expertise = Column(JSONType, nullable=False)
    domains = Column(JSONType, nullable=False)
    bio = Column(Text, nullable=True)
    avatar = Column(String, nullable=True, default="https://via.placeholder.com/150")
    company = Column(String(200), nullable=True)
    title = Column(String(100), nullable=True)

    availability = Column(String, nullable=False, default=MentorAvailability.AVAILABLE.value)
    # True while Busy was set by the capacity tracker rather than by the mentor
    busy_from_capacity = Column(Boolean, nullable=False, default=False)

    max_mentees = Column(Integer, nullable=False, default=BusinessRules.DEFAULT_MAX_MENTEES)
    current_mentees = Column(JSONType, nullable=False) # startup ids

    rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)
    sessions_completed = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    def __init__(self, **kwargs):
        # Column defaults only apply on flush; in-memory mentors need them too
        kwargs.setdefault("expertise", [])
        kwargs.setdefault("domains", [])
        kwargs.setdefault("current_mentees", [])
        kwargs.setdefault("availability", MentorAvailability.AVAILABLE.value)
        kwargs.setdefault("busy_from_capacity", False)
        kwargs.setdefault("max_mentees", BusinessRules.DEFAULT_MAX_MENTEES)
        kwargs.setdefault("rating", 0.0)
        kwargs.setdefault("total_ratings", 0)
        kwargs.setdefault("sessions_completed", 0)
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    @validates("max_mentees")
    def validate_max_mentees(self, key, value):
        if value is None or not BusinessRules.MIN_MAX_MENTEES <= value <= BusinessRules.MAX_MAX_MENTEES:
            raise ValidationError(
                f"Max mentees must be between {BusinessRules.MIN_MAX_MENTEES} and {BusinessRules.MAX_MAX_MENTEES}"
            )
        return value

    @property
    def mentee_count(self) -> int:
        return len(self.current_mentees or [])

    @property
    def is_at_capacity(self) -> bool:
        return self.mentee_count >= self.max_mentees

    @property
    def available_slots(self) -> int:
        return max(0, self.max_mentees - self.mentee_count)

    def add_mentee(self, startup_id: int) -> bool:
        """Adds a startup to the mentor's mentees. Returns False, without mutating, when full."""
        mentees = list(self.current_mentees or [])
        if startup_id in mentees:
            return True
        if len(mentees) >= self.max_mentees:
            return False

        # Reassign rather than append so the JSON column is flagged dirty
        self.current_mentees = mentees + [startup_id]
        # Only an Available mentor is auto-flagged; Unavailable stays an explicit opt-out
        if self.is_at_capacity and self.availability == MentorAvailability.AVAILABLE.value:
            self.availability = MentorAvailability.BUSY.value
            self.busy_from_capacity = True
        return True

    def remove_mentee(self, startup_id: int) -> bool:
        """Removes a startup if present. Returns whether anything was removed."""
        mentees = list(self.current_mentees or [])
        if startup_id not in mentees:
            return False

        mentees.remove(startup_id)
        self.current_mentees = mentees
        if (
            self.availability == MentorAvailability.BUSY.value
            and self.busy_from_capacity
            and not self.is_at_capacity
        ):
            self.availability = MentorAvailability.AVAILABLE.value
            self.busy_from_capacity = False
        return True

    def update_rating(self, new_rating: int) -> float:
        """Folds one more rating into the rolling average."""
        if new_rating is None or not BusinessRules.MIN_RATING <= new_rating <= BusinessRules.MAX_RATING:
            raise ValidationError("Rating must be between 1 and 5")

        current_total = (self.rating or 0) * (self.total_ratings or 0)
        self.total_ratings = (self.total_ratings or 0) + 1
        self.rating = round2((current_total + new_rating) / self.total_ratings)
        return self.rating

    def complete_session(self):
        self.sessions_completed = (self.sessions_completed or 0) + 1

    def public_summary(self) -> dict:
        """Fields safe to copy onto a match entry."""
        return {
            "id": self.id,
            "name": self.name,
            "expertise": list(self.expertise or []),
            "domains": list(self.domains or []),
            "bio": self.bio,
            "rating": self.rating,
            "sessions_completed": self.sessions_completed,
            "availability": self.availability,
            "avatar": self.avatar,
            "company": self.company,
        }

    def __repr__(self):
        return f"<Mentor(id={self.id}, name='{self.name}', mentees={self.mentee_count}/{self.max_mentees})>"


class MentorshipRequest(Base):
    __tablename__ = "mentorship_requests"

    id = Column(Integer, Sequence('mentorship_request_id_seq'), primary_key=True, index=True)

    startup_id = Column(Integer, nullable=False, index=True)
    requester_id = Column(Integer, nullable=False, index=True)

    topic = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    skills = Column(JSONType, nullable=False)
    domains = Column(JSONType, nullable=False)
    urgency = Column(String, nullable=False, default=Urgency.MEDIUM.value)
    preferred_times = Column(JSONType, nullable=True)

    status = Column(String, default=RequestStatus.PENDING.value, nullable=False, index=True)

    selected_mentor_id = Column(Integer, ForeignKey("mentors.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    matched_mentors = relationship(
        "MatchEntry",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="MatchEntry.rank",
    )
    sessions = relationship(
        "MentorshipSession",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="MentorshipSession.id",
    )
    selected_mentor = relationship("Mentor", foreign_keys=[selected_mentor_id])

    def __init__(self, **kwargs):
        kwargs.setdefault("status", RequestStatus.PENDING.value)
        kwargs.setdefault("urgency", Urgency.MEDIUM.value)
        kwargs.setdefault("domains", [])
        kwargs.setdefault("preferred_times", [])
        super().__init__(**kwargs)

    def transition_to(self, new_status: RequestStatus):
        current = RequestStatus(self.status)
        new_status = RequestStatus(new_status)
        if new_status == current:
            return
        if new_status not in REQUEST_TRANSITIONS[current]:
            logger.warning(f"Rejected status transition for request {self.id}: {current.value} -> {new_status.value}")
            raise InvalidStatusTransitionError(
                f"{ErrorMessages.INVALID_STATUS}: {current.value} -> {new_status.value}"
            )
        self.status = new_status.value

    def can_be_cancelled(self) -> bool:
        return RequestStatus(self.status) in CANCELLABLE_STATUSES

    def find_match(self, mentor_id: int) -> Optional["MatchEntry"]:
        return next((m for m in self.matched_mentors if m.mentor_id == mentor_id), None)

    def find_session(self, session_id: int) -> Optional["MentorshipSession"]:
        return next((s for s in self.sessions if s.id == session_id), None)

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    @property
    def completed_session_count(self) -> int:
        return sum(1 for s in self.sessions if s.status == SessionStatus.COMPLETED)

    @property
    def completion_rate(self) -> int:
        if not self.sessions:
            return 0
        return int(self.completed_session_count / self.session_count * 100 + 0.5)

    def __repr__(self):
        return f"<MentorshipRequest(id={self.id}, startup_id={self.startup_id}, status='{self.status}')>"


class MatchEntry(Base):
    __tablename__ = "match_entries"

    id = Column(Integer, Sequence('match_entry_id_seq'), primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("mentorship_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    mentor_id = Column(Integer, ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    rank = Column(Integer, nullable=False)

    score = Column(Float, nullable=False)
    skill_match_score = Column(Integer, nullable=False)
    domain_match_score = Column(Integer, nullable=False)
    availability_score = Column(Integer, nullable=False)
    rating_score = Column(Integer, nullable=False)
    capacity_score = Column(Integer, nullable=False)
    semantic_score = Column(Integer, nullable=True)

    status = Column(String, nullable=False, default=MatchStatus.SUGGESTED.value)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    decline_reason = Column(String(500), nullable=True)

    mentor_summary = Column(JSONType, nullable=True)
    explanations = Column(JSONType, nullable=True)

    request = relationship("MentorshipRequest", back_populates="matched_mentors")
    mentor = relationship("Mentor")

    def __repr__(self):
        return f"<MatchEntry(request_id={self.request_id}, mentor_id={self.mentor_id}, score={self.score}, status='{self.status}')>"


class MentorshipSession(Base):
    __tablename__ = "mentorship_sessions"

    id = Column(Integer, Sequence('mentorship_session_id_seq'), primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("mentorship_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    mentor_id = Column(Integer, ForeignKey("mentors.id"), nullable=False, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False, default=BusinessRules.DEFAULT_SESSION_MINUTES)
    meeting_link = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=SessionStatus.SCHEDULED.value)

    # {"rating": int, "comment": str | None, "submitted_at": iso8601}
    founder_feedback = Column(JSONType, nullable=True)
    mentor_feedback = Column(JSONType, nullable=True)

    rescheduled_from_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    request = relationship("MentorshipRequest", back_populates="sessions")

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.SCHEDULED

    @property
    def has_both_feedback(self) -> bool:
        return self.founder_feedback is not None and self.mentor_feedback is not None

    def record_feedback(self, is_founder: bool, rating: int, comment: Optional[str] = None) -> bool:
        """Stores one side's feedback. Returns True when this completed the session."""
        feedback = {
            "rating": rating,
            "comment": comment,
            "submitted_at": utc_now().isoformat(),
        }
        if is_founder:
            self.founder_feedback = feedback
        else:
            self.mentor_feedback = feedback

        if self.has_both_feedback:
            self.status = SessionStatus.COMPLETED.value
            return True
        return False

    def __repr__(self):
        return f"<MentorshipSession(id={self.id}, request_id={self.request_id}, status='{self.status}')>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, Sequence('notification_id_seq'), primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)
    related_request_id = Column(Integer, nullable=True, index=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type='{self.type}')>"
