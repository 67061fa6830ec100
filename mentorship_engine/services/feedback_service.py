# mentorship_engine/services/feedback_service.py
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import MentorshipSession
from ..constants import BusinessRules
from ..core.locks import mentor_locks, MentorLockRegistry
from ..exceptions import BusinessLogicError
from ..utils.validation_utils import ValidationUtils, validate_rating, validate_text
from .capacity_service import MentorCapacityService

logger = logging.getLogger(__name__)


class FeedbackService:
    def __init__(self, db: Session, locks: MentorLockRegistry = mentor_locks):
        self.db = db
        self.validator = ValidationUtils(db)
        self.capacity = MentorCapacityService(db, locks)

    def submit_feedback(
        self,
        request_id: int,
        session_id: int,
        is_founder: bool,
        rating: int,
        comment: Optional[str] = None,
    ) -> MentorshipSession:
        """
        Stores one side's feedback on a session.

        The second side to answer closes the session: it becomes Completed and the
        mentor's rolling rating absorbs the founder's rating in the same commit.
        """
        rating = validate_rating(rating)
        comment = validate_text(comment, "Comment", BusinessRules.MAX_COMMENT_LENGTH)

        request = self.validator.get_request_or_404(request_id)
        session = self.validator.get_session_or_404(request, session_id)

        try:
            with self.capacity.locks.hold(session.mentor_id):
                # The other side may have answered while we waited for the lock
                self.db.refresh(session)
                self.validator.validate_session_open(session)

                completed = session.record_feedback(is_founder, rating, comment)
                if completed:
                    mentor = self.capacity.load_for_update(session.mentor_id)
                    new_rating = mentor.update_rating(session.founder_feedback["rating"])
                    mentor.complete_session()
                    logger.info(
                        f"Session {session.id} completed; mentor {mentor.id} rating now {new_rating} "
                        f"over {mentor.total_ratings} ratings."
                    )
                self._commit()
        except BusinessLogicError:
            self.db.rollback()
            raise

        side = "founder" if is_founder else "mentor"
        logger.info(f"Feedback from {side} recorded for session {session_id} of request {request_id}.")
        return session

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while saving feedback: {e}")
            raise BusinessLogicError("Database error while saving feedback") from e
