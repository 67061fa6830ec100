import logging
from typing import List, Dict, Any

from .scoring import score_mentor

logger = logging.getLogger(__name__)

def rank_mentors(
    request,
    candidate_mentors: List[Any],
    semantic_provider=None,
    min_score: float = 0.0,
) -> List[Dict[str, Any]]:
    """
    Scores each candidate against the request and ranks them by composite score.

    Args:
        request: The mentorship request (reads skills, domains, description).
        candidate_mentors (List[Mentor]): Mentors that already passed filtering.
        semantic_provider: Optional SemanticProvider; None skips the semantic factor.
        min_score (float): Candidates scoring below this are dropped.

    Returns:
        List[Dict[str, Any]]: One dict per kept mentor with 'mentor', 'score' and
        the sub-scores, highest score first. Equal scores keep input order.
    """
    if not candidate_mentors:
        return []

    ranked_mentors = []
    for mentor in candidate_mentors:
        scores = score_mentor(request, mentor, semantic_provider)
        if scores["score"] < min_score:
            logger.debug(f"Mentor {mentor.id} dropped: score {scores['score']} below minimum {min_score}.")
            continue
        ranked_mentors.append({"mentor": mentor, **scores})

    # list.sort is stable, so ties stay in iteration order
    ranked_mentors.sort(key=lambda x: x["score"], reverse=True)

    logger.info(f"Ranked {len(ranked_mentors)} mentors.")
    return ranked_mentors
