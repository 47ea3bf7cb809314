"""Shared fixtures: one engine per shipped model plus the recommendation table."""

import pytest

from bioage_engine import BioAgeEngine
from bioage_recommendations import RecommendationEngine
from bioage_catalog import CONFIG_DIR


@pytest.fixture(scope="session")
def classic():
    return BioAgeEngine.from_model("classic")


@pytest.fixture(scope="session")
def enhanced():
    return BioAgeEngine.from_model("enhanced")


@pytest.fixture(params=["classic", "enhanced"], scope="session")
def engine(request):
    return BioAgeEngine.from_model(request.param)


@pytest.fixture(scope="session")
def recommender():
    return RecommendationEngine.from_file(CONFIG_DIR / "recommendations.yaml")


@pytest.fixture
def baseline_answers():
    return {
        "age": "30",
        "gender": "male",
        "smoker": "no",
        "exercise": "occasional",
        "diet-quality": "average",
        "sleep": "optimal",
    }


@pytest.fixture
def unhealthy_answers():
    return {
        "age": "30",
        "smoker": "yes",
        "exercise": "none",
        "diet-quality": "poor",
        "sleep": "less",
    }


@pytest.fixture
def optimal_answers():
    return {
        "age": "50",
        "smoker": "no",
        "exercise": "daily",
        "diet-quality": "excellent",
        "sleep": "optimal",
        "social": "strong",
        "stress": "low",
    }
