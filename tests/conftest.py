import os

# Settings are read at import time; point them at a throwaway database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient

from formbuilder.main import create_app


@pytest.fixture
def client():
    # each test gets its own app and so its own in-memory database
    with TestClient(create_app()) as c:
        yield c


def cloze_question(text="The [fox] jumps.", question="Fill in the blank"):
    return {"type": "cloze", "clozeData": {"question": question, "text": text}}


def categorize_question():
    return {
        "type": "categorize",
        "categorizeData": {
            "question": "Sort the animals",
            "categories": ["Mammal", "Bird"],
            "items": [
                {"text": "Dog", "correctCategory": "Mammal"},
                {"text": "Eagle", "correctCategory": "Bird"},
            ],
        },
    }


def comprehension_question():
    return {
        "type": "comprehension",
        "comprehensionData": {
            "passage": "The sun rises in the east.",
            "questions": [
                {"question": "Where does the sun rise?", "options": ["West", "East"], "correctAnswer": 1},
            ],
        },
    }


@pytest.fixture
def make_form(client):
    """Create a form through the API, optionally publishing it"""

    def _make(questions=None, title="Quiz", publish=False, **fields):
        body = {"title": title, "questions": questions if questions is not None else [cloze_question()]}
        body.update(fields)
        res = client.post("/api/forms", json=body)
        assert res.status_code == 201, res.json()
        form = res.json()["data"]
        if publish:
            res = client.put(f"/api/forms/{form['id']}/publish")
            assert res.status_code == 200, res.json()
            form = res.json()["data"]
        return form

    return _make
