import logging
from typing import List, Dict, Any

logger = logging.getLogger(__name__)

def explain_match(scored: Dict[str, Any]) -> List[str]:
    """Short human-readable reasons derived from the sub-scores."""
    explanations = []

    if scored["skill"] >= 100:
        explanations.append("Covers every requested skill.")
    elif scored["skill"] > 50:
        explanations.append(f"Strong skill overlap ({scored['skill']}/100).")
    elif scored["skill"] > 0:
        explanations.append(f"Partial skill overlap ({scored['skill']}/100).")

    if scored["domain"] >= 100:
        explanations.append("Works in all requested domains.")

    mentor = scored["mentor"]
    if mentor.total_ratings:
        explanations.append(
            f"Rated {mentor.rating:.1f}/5 over {mentor.sessions_completed} completed session"
            f"{'s' if mentor.sessions_completed != 1 else ''}."
        )

    slots = mentor.max_mentees - len(mentor.current_mentees or [])
    explanations.append(f"{slots} of {mentor.max_mentees} mentee slot{'s' if mentor.max_mentees != 1 else ''} open.")

    if scored.get("semantic") is not None:
        explanations.append(f"Bio aligns with the request description (semantic similarity: {scored['semantic']}/100).")

    return explanations

def post_process_matches(
    ranked_mentors: List[Dict[str, Any]],
    limit: int = 10
) -> List[Dict[str, Any]]:
    """
    Truncates the ranked list and shapes each entry for storage on the request.
    Mentors are reduced to their public summary so internal fields never leak.

    Args:
        ranked_mentors (List[Dict[str, Any]]): Output of rank_mentors, best first.
        limit (int): The maximum number of matches to keep.

    Returns:
        List[Dict[str, Any]]: Match entries in rank order.
    """
    final_matches = []

    for rank, scored in enumerate(ranked_mentors[:limit]):
        mentor = scored["mentor"]
        final_matches.append({
            "mentor_id": mentor.id,
            "rank": rank,
            "score": scored["score"],
            "skill_match_score": scored["skill"],
            "domain_match_score": scored["domain"],
            "availability_score": scored["availability"],
            "rating_score": scored["rating"],
            "capacity_score": scored["capacity"],
            "semantic_score": scored["semantic"],
            "mentor_summary": mentor.public_summary(),
            "explanations": explain_match(scored),
        })

    logger.info(f"Post-processed to {len(final_matches)} matches.")
    return final_matches
