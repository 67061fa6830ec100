# mentorship_engine/exceptions.py
class BusinessLogicError(Exception):
    """Base exception for business logic errors"""
    pass

class ValidationError(BusinessLogicError):
    """Raised when a required field is missing or invalid"""
    pass

class NotFoundError(BusinessLogicError):
    """Raised when a resource is not found"""
    pass

class SessionNotFoundError(NotFoundError):
    """Raised when a session id is not part of the request"""
    pass

class CapacityExceededError(BusinessLogicError):
    """Raised when mentor capacity is exceeded"""
    pass

class IllegalStateError(BusinessLogicError):
    """Raised when an operation is not valid for the current status"""
    pass

class InvalidStatusTransitionError(IllegalStateError):
    """Raised when invalid status transition is attempted"""
    pass

class ExternalServiceDegraded(BusinessLogicError):
    """Raised by semantic/summary providers; callers log it and continue without the result"""
    pass

class EmbeddingError(ExternalServiceDegraded):
    """Raised when embedding generation fails"""
    pass
