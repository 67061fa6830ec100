# mentorship_engine/utils/validation_utils.py
from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
from ..models import Mentor, MentorshipRequest, MentorshipSession, RequestStatus, Urgency
from ..constants import BusinessRules, DOMAINS, WEEKDAYS, ErrorMessages
from ..exceptions import ValidationError, NotFoundError, SessionNotFoundError, IllegalStateError
from .datetime import utc_now, ensure_aware_utc


def dedupe_skills(skills: List[str]) -> List[str]:
    """Trims skills and drops case-insensitive duplicates, keeping the first spelling."""
    seen = set()
    result = []
    for skill in skills or []:
        if not isinstance(skill, str):
            raise ValidationError("Skills must be strings")
        cleaned = skill.strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


def validate_text(value: Optional[str], field: str, max_length: int, required: bool = False) -> Optional[str]:
    if value is None or not value.strip():
        if required:
            raise ValidationError(f"{field} is required")
        return value
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return value


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not BusinessRules.MIN_RATING <= rating <= BusinessRules.MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def validate_schedule(scheduled_at: datetime, duration: int):
    """scheduled_at must be strictly in the future and duration within the session bounds."""
    if scheduled_at is None:
        raise ValidationError("Scheduled date is required")
    if ensure_aware_utc(scheduled_at) <= utc_now():
        raise ValidationError("Scheduled date must be in the future")
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationError("Duration must be a whole number of minutes")
    if not BusinessRules.MIN_SESSION_MINUTES <= duration <= BusinessRules.MAX_SESSION_MINUTES:
        raise ValidationError(
            f"Duration must be between {BusinessRules.MIN_SESSION_MINUTES} and {BusinessRules.MAX_SESSION_MINUTES} minutes"
        )


class ValidationUtils:
    def __init__(self, db: Session):
        self.db = db

    def get_mentor_or_404(self, mentor_id: int) -> Mentor:
        mentor = self.db.query(Mentor).filter(Mentor.id == mentor_id).first()
        if not mentor:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_FOUND)
        return mentor

    def get_request_or_404(self, request_id: int) -> MentorshipRequest:
        request = self.db.query(MentorshipRequest).filter(MentorshipRequest.id == request_id).first()
        if not request:
            raise NotFoundError(ErrorMessages.REQUEST_NOT_FOUND)
        return request

    def get_session_or_404(self, request: MentorshipRequest, session_id: int) -> MentorshipSession:
        session = request.find_session(session_id)
        if not session:
            raise SessionNotFoundError(ErrorMessages.SESSION_NOT_FOUND)
        return session

    def validate_request_status(self, request: MentorshipRequest, *allowed: RequestStatus):
        if RequestStatus(request.status) not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise IllegalStateError(f"Request must be {expected} (current: {request.status})")

    def validate_session_open(self, session: MentorshipSession):
        if not session.is_open:
            raise IllegalStateError(f"{ErrorMessages.SESSION_CLOSED} (current: {session.status})")

    def validate_request_fields(
        self,
        topic: str,
        description: str,
        skills: List[str],
        domains: Optional[List[str]] = None,
        urgency: Optional[str] = None,
        preferred_times: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Checks and normalizes the fields of a new request."""
        topic = validate_text(topic, "Topic", BusinessRules.MAX_TOPIC_LENGTH, required=True)
        description = validate_text(description, "Description", BusinessRules.MAX_DESCRIPTION_LENGTH, required=True)

        skills = dedupe_skills(skills)
        if not skills:
            raise ValidationError("At least one skill is required")

        domains = list(dict.fromkeys(domains or []))
        unknown = [d for d in domains if d not in DOMAINS]
        if unknown:
            raise ValidationError(f"Unknown domain(s): {', '.join(unknown)}")

        try:
            urgency = Urgency(urgency or Urgency.MEDIUM.value).value
        except ValueError:
            raise ValidationError(f"Invalid urgency '{urgency}'")

        times = []
        for slot in preferred_times or []:
            day = slot.get("day") if isinstance(slot, dict) else None
            if day not in WEEKDAYS:
                raise ValidationError(f"Invalid preferred day '{day}'")
            times.append({"day": day, "timeSlot": slot.get("timeSlot")})

        return {
            "topic": topic,
            "description": description,
            "skills": skills,
            "domains": domains,
            "urgency": urgency,
            "preferred_times": times,
        }
