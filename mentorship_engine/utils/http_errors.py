# mentorship_engine/utils/http_errors.py
from fastapi import HTTPException, status
from ..exceptions import BusinessLogicError, NotFoundError, CapacityExceededError, IllegalStateError

def to_http_exception(e: BusinessLogicError) -> HTTPException:
    """Maps a service error onto the HTTP status the client should see."""
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (CapacityExceededError, IllegalStateError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(e))
