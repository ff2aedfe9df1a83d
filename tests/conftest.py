# tests/conftest.py
import copy
import pytest
from fastapi.testclient import TestClient

from style_agent.main import app
from style_agent.jobs import job_store

SAMPLE_RESULT = {
    "style_analysis": {
        "dominant_style": "Minimalist chic",
        "aesthetic": "Clean lines and neutral tones",
        "color_palette": ["#F5F5F0", "#2B2B2B", "#C8B8A6", "#8A7F72"],
    },
    "general_style_tips": ["Invest in tailoring", "Layer neutrals", "Keep accessories simple"],
    "recommendations": [
        {
            "type": "Everyday Minimal",
            "items": [
                {
                    "name": "Linen Blazer",
                    "price": "$89.00",
                    "description": "Relaxed single-breasted blazer",
                    "style_match": "Neutral structure that anchors the look",
                    "links": {
                        "amazon": "https://www.amazon.com/s?k=Linen+Blazer",
                        "asos": "https://www.asos.com/search/?q=Linen+Blazer",
                        "nordstrom": "https://www.nordstrom.com/sr?keyword=Linen+Blazer",
                    },
                },
                {
                    "name": "Straight Leg Trousers",
                    "price": "$59.00",
                    "description": "High-rise trousers in stone",
                    "style_match": "Matches the clean silhouettes",
                    "links": {
                        "amazon": "https://www.amazon.com/s?k=Straight+Leg+Trousers",
                        "asos": "https://www.asos.com/search/?q=Straight+Leg+Trousers",
                        "nordstrom": "https://www.nordstrom.com/sr?keyword=Straight+Leg+Trousers",
                    },
                },
            ],
        }
    ],
}


@pytest.fixture
def sample_result():
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture(autouse=True)
def clean_jobs():
    job_store.clear()
    yield
    job_store.clear()


@pytest.fixture
def client():
    # Entering the context keeps one event loop alive across requests,
    # so analyses detached by one request can finish before the next.
    with TestClient(app) as c:
        yield c
