# mentorship_engine/services/capacity_service.py
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import ErrorMessages
from ..core.locks import mentor_locks, MentorLockRegistry
from ..exceptions import BusinessLogicError, CapacityExceededError, NotFoundError
from ..models import Mentor

logger = logging.getLogger(__name__)


class MentorCapacityService:
    """
    Serializes every change to a mentor's mentee set and rating.

    Callers that need to change other rows in the same transaction use
    locked_mentor() and commit before leaving the block.
    """

    def __init__(self, db: Session, locks: MentorLockRegistry = mentor_locks):
        self.db = db
        self.locks = locks

    def load_for_update(self, mentor_id: int) -> Mentor:
        """Re-reads the mentor row, discarding whatever this session had cached."""
        mentor = (
            self.db.query(Mentor)
            .filter(Mentor.id == mentor_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not mentor:
            raise NotFoundError(ErrorMessages.MENTOR_NOT_FOUND)
        return mentor

    @contextmanager
    def locked_mentor(self, mentor_id: int):
        with self.locks.hold(mentor_id):
            yield self.load_for_update(mentor_id)

    def add_mentee(self, mentor_id: int, startup_id: int) -> Mentor:
        with self.locked_mentor(mentor_id) as mentor:
            if not mentor.add_mentee(startup_id):
                self.db.rollback()
                logger.warning(f"Mentor {mentor_id} is full ({mentor.mentee_count}/{mentor.max_mentees}); startup {startup_id} not added.")
                raise CapacityExceededError(ErrorMessages.CAPACITY_EXCEEDED)
            self._commit()
            logger.info(f"Startup {startup_id} added to mentor {mentor_id} ({mentor.mentee_count}/{mentor.max_mentees}).")
            return mentor

    def remove_mentee(self, mentor_id: int, startup_id: int) -> Mentor:
        with self.locked_mentor(mentor_id) as mentor:
            if mentor.remove_mentee(startup_id):
                self._commit()
                logger.info(f"Startup {startup_id} removed from mentor {mentor_id}.")
            return mentor

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while updating mentor capacity: {e}")
            raise BusinessLogicError("Database error while updating mentor capacity") from e
