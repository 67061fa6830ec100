from datetime import timedelta

import pytest

from mentorship_engine.exceptions import (
    IllegalStateError,
    NotFoundError,
    SessionNotFoundError,
    ValidationError,
)
from mentorship_engine.models import MentorshipRequest, NotificationType, RequestStatus, SessionStatus
from mentorship_engine.utils.datetime import utc_now


def test_schedule_in_the_past_is_rejected(selected_request, session_service):
    request, _ = selected_request
    with pytest.raises(ValidationError):
        session_service.schedule_session(request.id, utc_now() - timedelta(hours=1))


@pytest.mark.parametrize("duration", [10, 241, 0])
def test_schedule_duration_bounds(selected_request, session_service, duration):
    request, _ = selected_request
    with pytest.raises(ValidationError):
        session_service.schedule_session(request.id, utc_now() + timedelta(days=1), duration=duration)


@pytest.mark.parametrize("duration", [15, 240])
def test_schedule_duration_accepts_bounds(selected_request, session_service, duration):
    request, _ = selected_request
    session = session_service.schedule_session(request.id, utc_now() + timedelta(days=1), duration=duration)
    assert session.duration == duration
    assert session.status == SessionStatus.SCHEDULED


def test_schedule_requires_a_mentor(make_mentor, make_request, session_service):
    make_mentor()
    request = make_request()
    with pytest.raises(IllegalStateError):
        session_service.schedule_session(request.id, utc_now() + timedelta(days=1))


def test_schedule_with_unknown_explicit_mentor(make_mentor, make_request, session_service):
    make_mentor()
    request = make_request()
    with pytest.raises(NotFoundError):
        session_service.schedule_session(request.id, utc_now() + timedelta(days=1), mentor_id=9999)


def test_schedule_requires_matched_or_scheduled(make_request, make_mentor, session_service):
    mentor = make_mentor(availability="Unavailable")
    request = make_request()
    assert request.status == RequestStatus.PENDING
    with pytest.raises(IllegalStateError):
        session_service.schedule_session(request.id, utc_now() + timedelta(days=1), mentor_id=mentor.id)


def test_schedule_session(selected_request, session_service, sink):
    request, mentor = selected_request
    when = utc_now() + timedelta(days=3)

    session = session_service.schedule_session(
        request.id, when, duration=45, meeting_link="https://meet.example.com/abc", notes="Bring metrics"
    )

    assert session.status == SessionStatus.SCHEDULED
    assert session.mentor_id == mentor.id
    assert session.duration == 45
    assert session.meeting_link == "https://meet.example.com/abc"
    assert session.request.status == RequestStatus.SCHEDULED
    assert session.request.session_count == 1

    scheduled = sink.of_type(NotificationType.SESSION_SCHEDULED)
    assert {n["recipient_id"] for n in scheduled} == {mentor.user_id, request.requester_id}


def test_more_sessions_keep_request_scheduled(scheduled_request, session_service):
    request, _, _ = scheduled_request
    second = session_service.schedule_session(request.id, utc_now() + timedelta(days=9))
    assert second.request.status == RequestStatus.SCHEDULED
    assert second.request.session_count == 2


def test_schedule_with_explicit_mentor(make_mentor, make_request, session_service):
    make_mentor()
    other = make_mentor()
    request = make_request()
    session = session_service.schedule_session(request.id, utc_now() + timedelta(days=1), mentor_id=other.id)
    assert session.mentor_id == other.id
    assert session.request.selected_mentor_id is None


def test_cancel_session(scheduled_request, session_service):
    request, _, session = scheduled_request

    cancelled = session_service.cancel_session(request.id, session.id)
    assert cancelled.status == SessionStatus.CANCELLED

    with pytest.raises(IllegalStateError):
        session_service.cancel_session(request.id, session.id)


def test_unknown_session(scheduled_request, session_service):
    request, _, _ = scheduled_request
    with pytest.raises(SessionNotFoundError):
        session_service.cancel_session(request.id, 9999)


def test_no_show_only_after_start(scheduled_request, session_service, db_session):
    request, _, session = scheduled_request

    with pytest.raises(IllegalStateError):
        session_service.mark_no_show(request.id, session.id)

    session.scheduled_at = utc_now() - timedelta(hours=2)
    db_session.commit()

    marked = session_service.mark_no_show(request.id, session.id)
    assert marked.status == SessionStatus.NO_SHOW


def test_reschedule_session(scheduled_request, session_service):
    request, mentor, session = scheduled_request
    new_time = utc_now() + timedelta(days=7)

    replacement = session_service.reschedule_session(request.id, session.id, new_time)

    assert replacement.id != session.id
    assert replacement.rescheduled_from_id == session.id
    assert replacement.status == SessionStatus.SCHEDULED
    assert replacement.mentor_id == mentor.id
    assert replacement.duration == session.duration
    assert replacement.request.find_session(session.id).status == SessionStatus.RESCHEDULED


def test_reschedule_into_the_past_is_rejected(scheduled_request, session_service):
    request, _, session = scheduled_request
    with pytest.raises(ValidationError):
        session_service.reschedule_session(request.id, session.id, utc_now() - timedelta(days=1))
    assert session.status == SessionStatus.SCHEDULED


def test_reschedule_on_completed_request_is_rejected(scheduled_request, mentorship_service, session_service, db_session):
    request, _, session = scheduled_request
    mentorship_service.complete_request(request.id)

    with pytest.raises(IllegalStateError):
        session_service.reschedule_session(request.id, session.id, utc_now() + timedelta(days=5))

    db_session.expire_all()
    stored = db_session.get(MentorshipRequest, request.id)
    assert stored.status == RequestStatus.COMPLETED
    assert [s.status for s in stored.sessions] == [SessionStatus.CANCELLED]


def test_session_changes_on_cancelled_request_are_rejected(scheduled_request, mentorship_service, session_service):
    request, _, session = scheduled_request
    mentorship_service.cancel_request(request.id, cancelled_by=11)

    with pytest.raises(IllegalStateError):
        session_service.cancel_session(request.id, session.id)
    with pytest.raises(IllegalStateError):
        session_service.reschedule_session(request.id, session.id, utc_now() + timedelta(days=5))
