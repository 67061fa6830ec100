from datetime import datetime
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, HttpUrl
from .models import RequestStatus, Urgency, MatchStatus, SessionStatus, MentorAvailability
from .constants import BusinessRules

# --- Input Models ---

class PreferredTime(BaseModel):
    day: str = Field(..., description="Weekday name, e.g. 'Monday'.")
    timeSlot: Optional[str] = Field(None, description="Free-form slot, e.g. '09:00-11:00'.")

class MentorshipRequestCreate(BaseModel):
    startup_id: int
    requester_id: int
    topic: str = Field(..., min_length=1, max_length=BusinessRules.MAX_TOPIC_LENGTH)
    description: str = Field(..., min_length=1, max_length=BusinessRules.MAX_DESCRIPTION_LENGTH)
    skills: List[str] = Field(..., min_length=1, description="Skills the startup needs help with.")
    domains: List[str] = Field(default_factory=list, description="Incubator domains, e.g. 'FinTech'.")
    urgency: Urgency = Urgency.MEDIUM
    preferred_times: List[PreferredTime] = Field(default_factory=list)

class RunMatchingRequest(BaseModel):
    include_semantic: bool = True

class SelectMentorRequest(BaseModel):
    mentor_id: int

class DeclineMentorRequest(BaseModel):
    mentor_id: int
    reason: Optional[str] = Field(None, max_length=BusinessRules.MAX_CANCEL_REASON_LENGTH)

class ScheduleSessionRequest(BaseModel):
    scheduled_at: datetime
    duration: int = Field(BusinessRules.DEFAULT_SESSION_MINUTES, description="Minutes, 15-240.")
    meeting_link: Optional[HttpUrl] = None
    notes: Optional[str] = Field(None, max_length=BusinessRules.MAX_NOTES_LENGTH)
    mentor_id: Optional[int] = Field(None, description="Defaults to the selected mentor.")

class RescheduleSessionRequest(BaseModel):
    scheduled_at: datetime
    duration: Optional[int] = None

class FeedbackCreate(BaseModel):
    session_id: int
    is_founder: bool = Field(..., description="True when the founder is rating, False for the mentor.")
    rating: int = Field(..., description="Rating of the session (1-5).")
    comment: Optional[str] = Field(None, max_length=BusinessRules.MAX_COMMENT_LENGTH)

class CancelRequest(BaseModel):
    cancelled_by: int
    reason: str = Field("", max_length=BusinessRules.MAX_CANCEL_REASON_LENGTH)


# --- Output Models ---

class MentorResponse(BaseModel):
    id: int
    user_id: Optional[int]
    name: str
    expertise: List[str]
    domains: List[str]
    bio: Optional[str]
    avatar: Optional[str]
    company: Optional[str]
    title: Optional[str]
    availability: MentorAvailability
    rating: float
    total_ratings: int
    sessions_completed: int
    max_mentees: int
    mentee_count: int
    available_slots: int
    is_at_capacity: bool
    is_active: bool

    model_config = {
        "from_attributes": True,
    }

class MatchEntryResponse(BaseModel):
    mentor_id: int
    rank: int
    score: float
    skill_match_score: int
    domain_match_score: int
    availability_score: int
    rating_score: int
    capacity_score: int
    semantic_score: Optional[int]
    status: MatchStatus
    accepted_at: Optional[datetime]
    declined_at: Optional[datetime]
    decline_reason: Optional[str]
    mentor_summary: Optional[Dict[str, Any]]
    explanations: List[str] = []

    model_config = {
        "from_attributes": True,
    }

class FeedbackResponse(BaseModel):
    rating: int
    comment: Optional[str]
    submitted_at: datetime

class SessionResponse(BaseModel):
    id: int
    request_id: int
    mentor_id: int
    scheduled_at: datetime
    duration: int
    meeting_link: Optional[str]
    notes: Optional[str]
    status: SessionStatus
    founder_feedback: Optional[FeedbackResponse]
    mentor_feedback: Optional[FeedbackResponse]
    rescheduled_from_id: Optional[int]

    model_config = {
        "from_attributes": True,
    }

class MentorshipRequestResponse(BaseModel):
    id: int
    startup_id: int
    requester_id: int
    topic: str
    description: str
    skills: List[str]
    domains: List[str]
    urgency: Urgency
    preferred_times: Optional[List[Dict[str, Any]]]
    status: RequestStatus
    selected_mentor_id: Optional[int]
    notes: Optional[str]
    matched_mentors: List[MatchEntryResponse] = []
    sessions: List[SessionResponse] = []
    session_count: int
    completed_session_count: int
    completion_rate: int
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[int]
    cancellation_reason: Optional[str]
    completed_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {
        "from_attributes": True,
    }

class MentorshipRequestList(BaseModel):
    items: List[MentorshipRequestResponse]
    total: int
    page: int
    limit: int

class MentorList(BaseModel):
    items: List[MentorResponse]
    total: int
    page: int
    limit: int

class StartupStats(BaseModel):
    total: int
    pending: int
    matched: int
    scheduled: int
    completed: int
    cancelled: int
    total_sessions: int
