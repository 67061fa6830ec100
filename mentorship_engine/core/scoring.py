"""
Scoring engine for mentor matching.

Every sub-score is a pure function of the request and mentor fields it reads and
returns an integer in [0, 100]. ``composite_score`` folds them into the weighted
score used for ranking. The semantic factor is optional: when it is ``None`` its
weight is redistributed over the remaining five factors.
"""
import logging
import math
from typing import Iterable, Optional, Dict, Any

logger = logging.getLogger(__name__)

# Weight configuration; sums to 1.0
WEIGHTS = {
    "skill": 0.30,
    "domain": 0.20,
    "availability": 0.15,
    "rating": 0.15,
    "capacity": 0.10,
    "semantic": 0.10,
}

AVAILABILITY_SCORES = {
    "Available": 100,
    "Busy": 50,
    "Unavailable": 0,
}
UNKNOWN_AVAILABILITY_SCORE = 75

NEUTRAL_SCORE = 50
MAX_EXPERIENCE_BONUS = 20


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    """Round to two decimal places, half-up."""
    return math.floor(value * 100 + 0.5) / 100


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def _normalize(values: Optional[Iterable[str]]) -> list:
    """Lower-cases and trims, dropping blanks and duplicates while keeping order."""
    seen = []
    for value in values or []:
        if value is None:
            continue
        item = str(value).strip().lower()
        if item and item not in seen:
            seen.append(item)
    return seen


def calculate_skill_match(request_skills: Optional[Iterable[str]], mentor_skills: Optional[Iterable[str]]) -> int:
    requested = _normalize(request_skills)
    if not requested:
        return NEUTRAL_SCORE
    offered = _normalize(mentor_skills)
    if not offered:
        return 0

    offered_set = set(offered)
    points = 0
    for skill in requested:
        if skill in offered_set:
            points += 100
            continue
        # Partial credit for the first substring hit in either direction
        for mentor_skill in offered:
            if skill in mentor_skill or mentor_skill in skill:
                points += 50
                break

    return _clamp(round_half_up(points / len(requested)))


def calculate_domain_match(request_domains: Optional[Iterable[str]], mentor_domains: Optional[Iterable[str]]) -> int:
    requested = list(request_domains or [])
    if not requested:
        return NEUTRAL_SCORE
    offered = set(mentor_domains or [])
    if not offered:
        return 0

    overlap = sum(1 for domain in requested if domain in offered)
    return _clamp(round_half_up(overlap / len(requested) * 100))


def calculate_availability_score(availability: Optional[str]) -> int:
    return AVAILABILITY_SCORES.get(availability, UNKNOWN_AVAILABILITY_SCORE)


def calculate_rating_score(rating: Optional[float], sessions_completed: Optional[int]) -> int:
    """Rating contributes up to 80 points, completed sessions up to 20 (one point each)."""
    rating_points = ((rating or 0) / 5) * 80
    experience_bonus = min(sessions_completed or 0, MAX_EXPERIENCE_BONUS)
    return _clamp(round_half_up(rating_points + experience_bonus))


def calculate_capacity_score(current_mentees: Optional[int], max_mentees: Optional[int]) -> int:
    if not max_mentees or max_mentees <= 0:
        return 0
    current = current_mentees or 0
    if current >= max_mentees:
        return 0
    return _clamp(round_half_up((max_mentees - current) / max_mentees * 100))


def calculate_semantic_score(description: Optional[str], bio: Optional[str], provider) -> Optional[int]:
    """
    Cosine similarity between the request description and the mentor bio, scaled to 0-100.

    Returns None when no provider is configured, either text is empty, or the
    provider fails. Never raises.
    """
    if provider is None or not getattr(provider, "available", False):
        return None
    if not description or not description.strip() or not bio or not bio.strip():
        return None

    try:
        similarity = provider.similarity(description, bio)
    except Exception as e:
        logger.warning(f"Semantic score unavailable, continuing without it: {e}")
        return None

    if similarity is None:
        return None
    return _clamp(round_half_up(similarity * 100))


def composite_score(sub_scores: Dict[str, Any], weights: Dict[str, float] = WEIGHTS) -> float:
    """
    Weighted composite of the sub-scores, rounded to two decimals.

    When the semantic sub-score is None the base sum over the other factors is
    scaled by 1 / (1 - semantic_weight) so those factors fill the whole range.
    """
    base = (
        sub_scores["skill"] * weights["skill"]
        + sub_scores["domain"] * weights["domain"]
        + sub_scores["availability"] * weights["availability"]
        + sub_scores["rating"] * weights["rating"]
        + sub_scores["capacity"] * weights["capacity"]
    )

    semantic = sub_scores.get("semantic")
    if semantic is not None:
        total = base + semantic * weights["semantic"]
    else:
        total = base * (1 / (1 - weights["semantic"]))

    return min(max(round2(total), 0.0), 100.0)


def score_mentor(request, mentor, provider=None) -> Dict[str, Any]:
    """Computes all sub-scores and the composite for one request/mentor pair."""
    sub_scores = {
        "skill": calculate_skill_match(request.skills, mentor.expertise),
        "domain": calculate_domain_match(request.domains, mentor.domains),
        "availability": calculate_availability_score(mentor.availability),
        "rating": calculate_rating_score(mentor.rating, mentor.sessions_completed),
        "capacity": calculate_capacity_score(len(mentor.current_mentees or []), mentor.max_mentees),
        "semantic": calculate_semantic_score(request.description, mentor.bio, provider),
    }
    sub_scores["score"] = composite_score(sub_scores)
    return sub_scores
