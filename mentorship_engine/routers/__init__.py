# mentorship_engine/routers/__init__.py
from . import mentorship_router
from . import mentor_router

__all__ = [
    "mentorship_router",
    "mentor_router",
]
