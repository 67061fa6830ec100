# mentorship_engine/routers/mentorship_router.py
from fastapi import APIRouter, Depends, Query
from typing import Optional, List

from ..services import MentorshipService, SessionService, FeedbackService
from ..dependencies.service_dependencies import get_mentorship_service, get_session_service, get_feedback_service
from ..schemas import (
    MentorshipRequestCreate, MentorshipRequestResponse, MentorshipRequestList, StartupStats,
    RunMatchingRequest, SelectMentorRequest, DeclineMentorRequest, ScheduleSessionRequest,
    RescheduleSessionRequest, FeedbackCreate, CancelRequest, SessionResponse,
)
from ..exceptions import BusinessLogicError
from ..utils.http_errors import to_http_exception

router = APIRouter(prefix="/api/mentorship", tags=["mentorship"])

@router.post("/requests", response_model=MentorshipRequestResponse, status_code=201)
def create_request(
    payload: MentorshipRequestCreate,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Create a mentorship request and match mentors to it"""
    try:
        return mentorship_service.create_request(
            startup_id=payload.startup_id,
            requester_id=payload.requester_id,
            topic=payload.topic,
            description=payload.description,
            skills=payload.skills,
            domains=payload.domains,
            urgency=payload.urgency.value,
            preferred_times=[t.model_dump() for t in payload.preferred_times],
        )
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.get("/requests", response_model=MentorshipRequestList)
def list_requests(
    startup_id: Optional[int] = Query(None),
    mentor_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """List requests, newest first"""
    try:
        items, total = mentorship_service.list_requests(startup_id, mentor_id, status, page, limit)
        return MentorshipRequestList(
            items=[MentorshipRequestResponse.model_validate(r) for r in items],
            total=total,
            page=page,
            limit=limit,
        )
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.get("/requests/attention", response_model=List[MentorshipRequestResponse])
def get_requests_needing_attention(
    days: Optional[int] = Query(None, ge=0),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Pending requests nobody has picked up, most urgent first"""
    return mentorship_service.get_requests_needing_attention(days)

@router.get("/startups/{startup_id}/stats", response_model=StartupStats)
def get_startup_stats(
    startup_id: int,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    return mentorship_service.get_startup_stats(startup_id)

@router.get("/requests/{request_id}", response_model=MentorshipRequestResponse)
def get_request(
    request_id: int,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.get_request(request_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/match", response_model=MentorshipRequestResponse)
def run_matching(
    request_id: int,
    payload: Optional[RunMatchingRequest] = None,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Re-run matching for a request that has no selected mentor yet"""
    include_semantic = payload.include_semantic if payload else True
    try:
        return mentorship_service.run_matching(request_id, include_semantic=include_semantic)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/select-mentor", response_model=MentorshipRequestResponse)
def select_mentor(
    request_id: int,
    payload: SelectMentorRequest,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.select_mentor(request_id, payload.mentor_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/decline-mentor", response_model=MentorshipRequestResponse)
def decline_mentor(
    request_id: int,
    payload: DeclineMentorRequest,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.decline_match(request_id, payload.mentor_id, payload.reason)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/schedule", response_model=SessionResponse, status_code=201)
def schedule_session(
    request_id: int,
    payload: ScheduleSessionRequest,
    session_service: SessionService = Depends(get_session_service)
):
    try:
        return session_service.schedule_session(
            request_id,
            scheduled_at=payload.scheduled_at,
            duration=payload.duration,
            meeting_link=str(payload.meeting_link) if payload.meeting_link else None,
            notes=payload.notes,
            mentor_id=payload.mentor_id,
        )
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/sessions/{session_id}/cancel", response_model=SessionResponse)
def cancel_session(
    request_id: int,
    session_id: int,
    session_service: SessionService = Depends(get_session_service)
):
    try:
        return session_service.cancel_session(request_id, session_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/sessions/{session_id}/no-show", response_model=SessionResponse)
def mark_no_show(
    request_id: int,
    session_id: int,
    session_service: SessionService = Depends(get_session_service)
):
    try:
        return session_service.mark_no_show(request_id, session_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/sessions/{session_id}/reschedule", response_model=SessionResponse, status_code=201)
def reschedule_session(
    request_id: int,
    session_id: int,
    payload: RescheduleSessionRequest,
    session_service: SessionService = Depends(get_session_service)
):
    """Close a session as Rescheduled and return the replacement session"""
    try:
        return session_service.reschedule_session(request_id, session_id, payload.scheduled_at, payload.duration)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/feedback", response_model=SessionResponse)
def submit_feedback(
    request_id: int,
    payload: FeedbackCreate,
    feedback_service: FeedbackService = Depends(get_feedback_service)
):
    """Submit founder or mentor feedback for a session"""
    try:
        return feedback_service.submit_feedback(
            request_id, payload.session_id, payload.is_founder, payload.rating, payload.comment
        )
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/cancel", response_model=MentorshipRequestResponse)
def cancel_request(
    request_id: int,
    payload: CancelRequest,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.cancel_request(request_id, payload.cancelled_by, payload.reason)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.post("/requests/{request_id}/complete", response_model=MentorshipRequestResponse)
def complete_request(
    request_id: int,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.complete_request(request_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)
