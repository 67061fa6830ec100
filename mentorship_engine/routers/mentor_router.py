# mentorship_engine/routers/mentor_router.py
from fastapi import APIRouter, Depends, Query
from typing import Optional, List

from ..services import MentorshipService
from ..dependencies.service_dependencies import get_mentorship_service
from ..schemas import MentorList, MentorResponse, MentorshipRequestResponse
from ..exceptions import BusinessLogicError
from ..utils.http_errors import to_http_exception

router = APIRouter(prefix="/api/mentorship/mentors", tags=["mentors"])

@router.get("", response_model=MentorList)
def list_mentors(
    domain: Optional[str] = Query(None),
    skill: Optional[str] = Query(None),
    availability: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches name, bio or expertise"),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """List mentors, highest rated first"""
    try:
        items, total = mentorship_service.list_mentors(
            active_only=not include_inactive,
            domain=domain,
            skill=skill,
            availability=availability,
            search=search,
            page=page,
            limit=limit,
        )
        return MentorList(
            items=[MentorResponse.model_validate(m) for m in items],
            total=total,
            page=page,
            limit=limit,
        )
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.get("/{mentor_id}", response_model=MentorResponse)
def get_mentor(
    mentor_id: int,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    try:
        return mentorship_service.get_mentor(mentor_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)

@router.get("/{mentor_id}/requests", response_model=List[MentorshipRequestResponse])
def get_mentor_requests(
    mentor_id: int,
    mentorship_service: MentorshipService = Depends(get_mentorship_service)
):
    """Open requests on which this mentor is a match"""
    try:
        mentorship_service.get_mentor(mentor_id)
        return mentorship_service.get_requests_for_mentor(mentor_id)
    except BusinessLogicError as e:
        raise to_http_exception(e)
