# mentorship_engine/services/matching_service.py
import logging
from typing import List, Dict, Any, Iterable, Optional
from sqlalchemy.orm import Session

from ..models import Mentor, MentorshipRequest
from ..constants import BusinessRules
from ..core import filtering, re_ranking, post_processing
from ..core.semantic import SemanticProvider, NullSemanticProvider
from ..exceptions import ExternalServiceDegraded
from ..config import get_settings

logger = logging.getLogger(__name__)


def build_summary_prompt(request: MentorshipRequest, matches: List[Dict[str, Any]]) -> str:
    lines = [
        f"A startup needs mentorship on: {request.topic}",
        f"Description: {request.description}",
        f"Required skills: {', '.join(request.skills or [])}",
        "",
        "Top matched mentors:",
    ]
    for i, match in enumerate(matches[:BusinessRules.SUMMARY_TOP_MATCHES], start=1):
        summary = match.get("mentor_summary") or {}
        lines.append(
            f"{i}. {summary.get('name', 'Unknown')} - Expertise: {', '.join(summary.get('expertise') or [])} "
            f"(Score: {match['score']})"
        )
    lines.append("")
    lines.append("Provide a brief 2-3 sentence recommendation on which mentor would be best and why.")
    return "\n".join(lines)


class MatchingService:
    def __init__(self, db: Session, semantic_provider: Optional[SemanticProvider] = None):
        self.db = db
        self.settings = get_settings()
        self.semantic_provider = semantic_provider or NullSemanticProvider()

    def load_candidate_mentors(self) -> List[Mentor]:
        return self.db.query(Mentor).filter(Mentor.is_active == True).order_by(Mentor.id).all()

    def get_mentor_matches(
        self,
        request: MentorshipRequest,
        mentors: Optional[Iterable[Mentor]] = None,
        include_semantic: bool = True,
        max_results: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Executes the matching pipeline for one request.

        Returns match entry dicts (see post_processing.post_process_matches), best first,
        never more than BusinessRules.MAX_STORED_MATCHES.
        """
        logger.info(f"Starting matching process for request {request.id}.")

        if mentors is None:
            mentors = self.load_candidate_mentors()
        if max_results is None:
            max_results = self.settings.MATCH_MAX_RESULTS
        if min_score is None:
            min_score = self.settings.MATCH_MIN_SCORE
        limit = max(0, min(max_results, BusinessRules.MAX_STORED_MATCHES))

        provider = self.semantic_provider if include_semantic else None

        # 1. Filtering
        filtered_mentors = filtering.apply_filters(mentors)

        # 2. Scoring and ranking
        ranked_mentors = re_ranking.rank_mentors(
            request, filtered_mentors, semantic_provider=provider, min_score=min_score
        )

        # 3. Post-Processing
        matches = post_processing.post_process_matches(ranked_mentors, limit=limit)

        logger.info(f"Matching process completed for request {request.id}. Found {len(matches)} matches.")
        return matches

    def get_recommendation_summary(self, request: MentorshipRequest, matches: List[Dict[str, Any]]) -> Optional[str]:
        """Short rationale for the top matches, or None when unavailable."""
        if not matches or not self.semantic_provider.available:
            return None

        try:
            summary = self.semantic_provider.summarize(build_summary_prompt(request, matches))
        except ExternalServiceDegraded as e:
            logger.warning(f"Recommendation summary unavailable for request {request.id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error generating recommendation summary for request {request.id}: {e}", exc_info=True)
            return None

        if summary and len(summary) > BusinessRules.MAX_NOTES_LENGTH:
            summary = summary[:BusinessRules.MAX_NOTES_LENGTH]
        return summary
