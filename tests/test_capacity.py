import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from mentorship_engine.core.locks import FifoLock, MentorLockRegistry
from mentorship_engine.database import SessionLocal
from mentorship_engine.exceptions import CapacityExceededError, NotFoundError, ValidationError
from mentorship_engine.models import Mentor, MentorAvailability, MentorshipRequest
from mentorship_engine.services.capacity_service import MentorCapacityService
from mentorship_engine.services.mentorship_service import MentorshipService
from conftest import RecordingSink


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.001)


def test_add_mentee_sets_busy_at_capacity():
    mentor = Mentor(name="M", max_mentees=2)

    assert mentor.add_mentee(1)
    assert mentor.availability == MentorAvailability.AVAILABLE
    assert mentor.add_mentee(2)
    assert mentor.availability == MentorAvailability.BUSY
    assert mentor.is_at_capacity
    assert mentor.available_slots == 0


def test_add_mentee_is_idempotent_and_refuses_when_full():
    mentor = Mentor(name="M", max_mentees=1)
    assert mentor.add_mentee(1)
    assert mentor.add_mentee(1)
    assert not mentor.add_mentee(2)
    assert mentor.current_mentees == [1]


def test_remove_mentee_reverts_automatic_busy():
    mentor = Mentor(name="M", max_mentees=1)
    mentor.add_mentee(1)

    assert mentor.remove_mentee(1)
    assert mentor.availability == MentorAvailability.AVAILABLE
    assert not mentor.remove_mentee(1)


def test_manual_busy_is_never_reverted():
    mentor = Mentor(name="M", max_mentees=2, availability=MentorAvailability.BUSY.value)
    mentor.add_mentee(1)
    mentor.add_mentee(2)
    mentor.remove_mentee(2)
    assert mentor.availability == MentorAvailability.BUSY


def test_unavailable_mentor_is_not_flipped_by_capacity():
    mentor = Mentor(name="M", max_mentees=1, availability=MentorAvailability.UNAVAILABLE.value)

    assert mentor.add_mentee(1)
    assert mentor.availability == MentorAvailability.UNAVAILABLE
    assert not mentor.busy_from_capacity

    mentor.remove_mentee(1)
    assert mentor.availability == MentorAvailability.UNAVAILABLE


@pytest.mark.parametrize("max_mentees", [0, 21, None])
def test_max_mentees_bounds(max_mentees):
    with pytest.raises(ValidationError):
        Mentor(name="M", max_mentees=max_mentees)


def test_max_mentees_accepts_bounds():
    assert Mentor(name="M", max_mentees=1).max_mentees == 1
    assert Mentor(name="M", max_mentees=20).max_mentees == 20


def test_update_rating():
    mentor = Mentor(name="M")
    assert mentor.update_rating(5) == 5.0
    assert mentor.update_rating(4) == 4.5
    assert mentor.total_ratings == 2
    with pytest.raises(ValidationError):
        mentor.update_rating(6)


def test_capacity_service_add_and_remove(make_mentor, db_session):
    mentor = make_mentor(max_mentees=1)
    service = MentorCapacityService(db_session)

    updated = service.add_mentee(mentor.id, 7)
    assert updated.current_mentees == [7]
    assert updated.availability == MentorAvailability.BUSY

    with pytest.raises(CapacityExceededError):
        service.add_mentee(mentor.id, 8)

    updated = service.remove_mentee(mentor.id, 7)
    assert updated.current_mentees == []
    assert updated.availability == MentorAvailability.AVAILABLE


def test_capacity_service_unknown_mentor(db_session):
    with pytest.raises(NotFoundError):
        MentorCapacityService(db_session).add_mentee(9999, 1)


def test_concurrent_add_mentee_never_exceeds_capacity(make_mentor, db_session):
    mentor = make_mentor(max_mentees=3)
    mentor_id = mentor.id

    def add(startup_id):
        db = SessionLocal()
        try:
            MentorCapacityService(db).add_mentee(mentor_id, startup_id)
            return True
        except CapacityExceededError:
            return False
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(add, range(1, 11)))

    assert results.count(True) == 3
    assert results.count(False) == 7

    db_session.expire_all()
    stored = db_session.get(Mentor, mentor_id)
    assert len(stored.current_mentees) == 3
    assert stored.availability == MentorAvailability.BUSY


def test_concurrent_selection_fills_exactly_to_capacity(make_mentor, make_request, db_session):
    mentor = make_mentor(max_mentees=3)
    mentor_id = mentor.id
    request_ids = [make_request(startup_id=startup_id).id for startup_id in range(1, 11)]

    def select(request_id):
        db = SessionLocal()
        try:
            MentorshipService(db, notifier=RecordingSink()).select_mentor(request_id, mentor_id)
            return True
        except CapacityExceededError:
            return False
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(select, request_ids))

    assert results.count(True) == 3

    db_session.expire_all()
    stored = db_session.get(Mentor, mentor_id)
    assert len(stored.current_mentees) == 3
    assert stored.availability == MentorAvailability.BUSY
    selected = db_session.query(MentorshipRequest).filter(MentorshipRequest.selected_mentor_id == mentor_id).all()
    assert sorted(r.startup_id for r in selected) == sorted(stored.current_mentees)


def test_fifo_lock_admits_waiters_in_arrival_order():
    lock = FifoLock()
    order = []
    lock.acquire()

    threads = []
    for i in range(5):
        def worker(n=i):
            with lock:
                order.append(n)

        t = threading.Thread(target=worker)
        t.start()
        threads.append(t)
        # Wait for this worker to take its ticket before starting the next one
        _wait_until(lambda: lock._next_ticket == i + 2)

    lock.release()
    for t in threads:
        t.join(timeout=5)

    assert order == [0, 1, 2, 3, 4]


def test_fifo_lock_timeout_does_not_block_later_waiters():
    lock = FifoLock()
    lock.acquire()

    assert lock.acquire(timeout=0.01) is False

    acquired = []
    t = threading.Thread(target=lambda: acquired.append(lock.acquire(timeout=5)))
    t.start()
    _wait_until(lambda: lock._next_ticket == 3)
    lock.release()
    t.join(timeout=5)

    assert acquired == [True]
    lock.release()


def test_registry_returns_one_lock_per_mentor():
    registry = MentorLockRegistry()
    assert registry.get(1) is registry.get(1)
    assert registry.get(1) is not registry.get(2)

    with registry.hold(1):
        assert registry.get(2).acquire(timeout=0.01)
        registry.get(2).release()
