import logging
from typing import List, Iterable

from ..models import Mentor, MentorAvailability

logger = logging.getLogger(__name__)

def is_eligible(mentor: Mentor) -> bool:
    """A mentor can take a new request only if active, below capacity and not Unavailable."""
    mentor_id = getattr(mentor, 'id', 'N/A') # For logging

    # 1. Active Check
    if not mentor.is_active:
        logger.debug(f"Mentor {mentor_id} filtered out: Inactive.")
        return False

    # 2. Capacity Check
    if len(mentor.current_mentees or []) >= (mentor.max_mentees or 0):
        logger.debug(f"Mentor {mentor_id} filtered out: At capacity.")
        return False

    # 3. Availability Check
    if mentor.availability == MentorAvailability.UNAVAILABLE.value:
        logger.debug(f"Mentor {mentor_id} filtered out: Unavailable.")
        return False

    return True

def apply_filters(candidate_mentors: Iterable[Mentor]) -> List[Mentor]:
    """
    Keeps the mentors that may be matched to a new request, preserving input order.

    Args:
        candidate_mentors (Iterable[Mentor]): Mentors as loaded from persistence.

    Returns:
        List[Mentor]: Eligible mentors.
    """
    candidates = list(candidate_mentors)
    filtered_mentors = [mentor for mentor in candidates if is_eligible(mentor)]

    logger.info(f"Filtered {len(candidates)} candidates down to {len(filtered_mentors)}.")
    return filtered_mentors
