import os
import tempfile

# Point the engine at a throwaway SQLite file before the package builds it.
# A file rather than :memory: so worker threads get their own connections.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="mentorship_engine_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["SEMANTIC_PROVIDER"] = "none"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from mentorship_engine.database import Base, engine, SessionLocal, get_db
from mentorship_engine import models  # noqa: F401
from mentorship_engine.models import Mentor
from mentorship_engine.core.semantic import SemanticProvider
from mentorship_engine.exceptions import ExternalServiceDegraded
from mentorship_engine.services.mentorship_service import MentorshipService
from mentorship_engine.services.session_service import SessionService
from mentorship_engine.services.feedback_service import FeedbackService
from mentorship_engine.services.notification_service import NotificationSink
from mentorship_engine.utils.datetime import utc_now


@pytest.fixture(autouse=True)
def setup_test_db():
    # recreate schema for each test to ensure isolation
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeSemanticProvider(SemanticProvider):
    """Deterministic provider: fixed similarity, canned summary, optional failure."""

    PROVIDER_NAME = "fake"

    def __init__(self, similarity=0.8, summary="Mentor A is the strongest fit.", fail=False):
        self._similarity = similarity
        self._summary = summary
        self.fail = fail
        self.prompts = []

    def embed(self, texts):
        return [[1.0, 0.0] for _ in texts]

    def similarity(self, text_a, text_b):
        if self.fail:
            raise ExternalServiceDegraded("backend timed out")
        return self._similarity

    def summarize(self, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise ExternalServiceDegraded("backend timed out")
        return self._summary


class RecordingSink(NotificationSink):
    def __init__(self):
        self.sent = []

    def send(self, recipient_id, type, title, message, related_request_id=None):
        self.sent.append({
            "recipient_id": recipient_id,
            "type": type,
            "title": title,
            "message": message,
            "related_request_id": related_request_id,
        })

    def of_type(self, type):
        return [n for n in self.sent if n["type"] == type]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_mentor(db_session):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "user_id": 100 + counter["n"],
            "name": f"Mentor {counter['n']}",
            "expertise": ["marketing", "sales"],
            "domains": ["SaaS"],
            "bio": "Helped a dozen SaaS startups find their first customers.",
            "rating": 4.0,
            "total_ratings": 10,
            "sessions_completed": 10,
            "max_mentees": 5,
        }
        data.update(overrides)
        mentor = Mentor(**data)
        db_session.add(mentor)
        db_session.commit()
        db_session.refresh(mentor)
        return mentor

    return _make


@pytest.fixture
def mentorship_service(db_session, sink):
    return MentorshipService(db_session, notifier=sink)


@pytest.fixture
def session_service(db_session, sink):
    return SessionService(db_session, notifier=sink)


@pytest.fixture
def feedback_service(db_session):
    return FeedbackService(db_session)


@pytest.fixture
def make_request(mentorship_service):
    def _make(**overrides):
        data = {
            "startup_id": 1,
            "requester_id": 11,
            "topic": "Go-to-market plan",
            "description": "We need help planning our first marketing campaign.",
            "skills": ["marketing"],
        }
        data.update(overrides)
        return mentorship_service.create_request(**data)

    return _make


@pytest.fixture
def selected_request(make_mentor, make_request, mentorship_service):
    """A Matched request with its top mentor selected."""
    mentor = make_mentor()
    request = make_request()
    return mentorship_service.select_mentor(request.id, mentor.id), mentor


@pytest.fixture
def scheduled_request(selected_request, session_service):
    """A Scheduled request with one open session."""
    request, mentor = selected_request
    session = session_service.schedule_session(request.id, utc_now() + timedelta(days=2))
    return request, mentor, session


@pytest.fixture
def client():
    from mentorship_engine.main import app

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
