import pytest

from mentorship_engine.core.scoring import (
    calculate_skill_match,
    calculate_domain_match,
    calculate_availability_score,
    calculate_rating_score,
    calculate_capacity_score,
    calculate_semantic_score,
    composite_score,
    score_mentor,
    round_half_up,
)
from mentorship_engine.core.semantic import NullSemanticProvider, cosine_similarity
from mentorship_engine.models import Mentor, MentorshipRequest
from conftest import FakeSemanticProvider


def _request(**overrides):
    data = {
        "startup_id": 1,
        "requester_id": 1,
        "topic": "GTM",
        "description": "Launching our first paid campaign.",
        "skills": ["marketing"],
        "domains": [],
    }
    data.update(overrides)
    return MentorshipRequest(**data)


def _mentor(**overrides):
    data = {
        "id": 1,
        "name": "M1",
        "expertise": ["marketing", "sales"],
        "availability": "Available",
        "rating": 4.0,
        "sessions_completed": 10,
        "current_mentees": [1, 2],
        "max_mentees": 5,
    }
    data.update(overrides)
    return Mentor(**data)


def test_scenario_a_without_semantic():
    scores = score_mentor(_request(), _mentor(), NullSemanticProvider())

    assert scores["skill"] == 100
    assert scores["domain"] == 50
    assert scores["availability"] == 100
    assert scores["rating"] == 74
    assert scores["capacity"] == 60
    assert scores["semantic"] is None
    # (30 + 10 + 15 + 11.1 + 6) / 0.9
    assert scores["score"] == pytest.approx(80.11)


def test_skill_match_neutral_and_empty():
    assert calculate_skill_match([], ["python"]) == 50
    assert calculate_skill_match(["python"], []) == 0


def test_skill_match_is_case_and_whitespace_insensitive():
    assert calculate_skill_match([" Marketing "], ["marketing"]) == 100


def test_skill_match_partial_credit_both_directions():
    assert calculate_skill_match(["market"], ["marketing"]) == 50
    assert calculate_skill_match(["digital marketing"], ["marketing"]) == 50
    assert calculate_skill_match(["marketing", "python"], ["marketing"]) == 50


def test_skill_match_rounds_half_up():
    # 50 / 4 = 12.5
    assert calculate_skill_match(["mark", "zz1", "zz2", "zz3"], ["marketing"]) == 13


def test_domain_match():
    assert calculate_domain_match([], ["SaaS"]) == 50
    assert calculate_domain_match(["SaaS"], []) == 0
    assert calculate_domain_match(["SaaS", "FinTech", "EdTech"], ["SaaS"]) == 33
    assert calculate_domain_match(["SaaS", "FinTech"], ["FinTech", "SaaS", "IoT"]) == 100


@pytest.mark.parametrize("availability,expected", [
    ("Available", 100),
    ("Busy", 50),
    ("Unavailable", 0),
    ("On leave", 75),
    (None, 75),
])
def test_availability_score(availability, expected):
    assert calculate_availability_score(availability) == expected


def test_rating_score_is_capped():
    assert calculate_rating_score(5.0, 50) == 100
    assert calculate_rating_score(0, 0) == 0
    assert calculate_rating_score(None, None) == 0


def test_capacity_score():
    assert calculate_capacity_score(2, 5) == 60
    assert calculate_capacity_score(5, 5) == 0
    assert calculate_capacity_score(6, 5) == 0
    assert calculate_capacity_score(0, 0) == 0
    assert calculate_capacity_score(0, 3) == 100


def test_semantic_score_from_provider():
    provider = FakeSemanticProvider(similarity=0.874)
    assert calculate_semantic_score("desc", "bio", provider) == 87


def test_semantic_score_is_clamped():
    assert calculate_semantic_score("desc", "bio", FakeSemanticProvider(similarity=-0.3)) == 0
    assert calculate_semantic_score("desc", "bio", FakeSemanticProvider(similarity=1.2)) == 100


def test_semantic_score_fails_open():
    assert calculate_semantic_score("desc", "bio", FakeSemanticProvider(fail=True)) is None
    assert calculate_semantic_score("desc", "bio", NullSemanticProvider()) is None
    assert calculate_semantic_score("desc", "bio", None) is None
    assert calculate_semantic_score("desc", "  ", FakeSemanticProvider()) is None
    assert calculate_semantic_score("", "bio", FakeSemanticProvider()) is None


def test_composite_uses_semantic_weight_when_present():
    sub_scores = {"skill": 100, "domain": 100, "availability": 100, "rating": 100, "capacity": 100, "semantic": 0}
    assert composite_score(sub_scores) == pytest.approx(90.0)

    sub_scores["semantic"] = None
    assert composite_score(sub_scores) == pytest.approx(100.0)


def test_all_scores_within_bounds():
    provider = FakeSemanticProvider(similarity=0.5)
    mentor = _mentor(rating=5.0, sessions_completed=100, current_mentees=[], max_mentees=1)
    scores = score_mentor(_request(skills=["marketing", "sales"], domains=["SaaS"]), mentor, provider)
    for key in ("skill", "domain", "availability", "rating", "capacity", "semantic", "score"):
        assert 0 <= scores[key] <= 100


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0
    assert cosine_similarity([1, 0], [1, 0, 0]) == 0.0
    assert cosine_similarity(None, [1]) == 0.0
