import uuid

import pytest

from formbuilder.models import FormResponse
from tests.conftest import categorize_question, cloze_question, comprehension_question


def submit(client, form_id, responses, **extra):
    return client.post("/api/responses", json={"formId": form_id, "responses": responses, **extra})


@pytest.fixture
def quiz(make_form):
    return make_form(
        title="Animals",
        questions=[categorize_question(), cloze_question(), comprehension_question()],
        publish=True,
    )


def test_cloze_submission_is_graded(client, make_form):
    form = make_form(publish=True)

    res = submit(client, form["id"], [["fox"]])

    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Response submitted successfully"
    data = body["data"]
    assert (data["totalScore"], data["maxTotalScore"], data["overallPercentage"]) == (1, 1, 100)
    assert data["formId"] == form["id"]
    assert data["responses"][0]["questionId"] == form["questions"][0]["id"]


def test_mixed_submission_totals(client, quiz):
    res = submit(client, quiz["id"], [
        [{"category": "Mammal"}, {"category": "Mammal"}],
        [" FOX "],
        [0],
    ])

    data = res.json()["data"]
    scores = [(r["questionType"], r["score"], r["maxScore"], r["percentage"]) for r in data["responses"]]
    assert scores == [
        ("categorize", 1, 2, 50),
        ("cloze", 1, 1, 100),
        ("comprehension", 0, 1, 0),
    ]
    assert (data["totalScore"], data["maxTotalScore"], data["overallPercentage"]) == (2, 4, 50)


def test_submission_records_user_info_and_metadata(client, make_form):
    form = make_form(publish=True)

    res = client.post(
        "/api/responses",
        json={
            "formId": form["id"],
            "responses": [{"answer": ["fox"]}],
            "metadata": {"timeSpent": 42, "deviceType": "mobile", "browserInfo": "Firefox"},
        },
        headers={"X-Session-Id": "session-1", "User-Agent": "pytest"},
    )

    data = res.json()["data"]
    assert data["totalScore"] == 1
    assert data["userInfo"]["sessionId"] == "session-1"
    assert data["userInfo"]["userAgent"] == "pytest"
    assert data["metadata"] == {"timeSpent": 42, "deviceType": "mobile", "browserInfo": "Firefox"}


def test_malformed_answers_score_zero_without_rejecting(client, quiz):
    res = submit(client, quiz["id"], ["oops", None, {"answer": "nope"}])

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["totalScore"] == 0
    assert data["maxTotalScore"] == 4


def test_submission_validation(client, make_form):
    form = make_form(publish=True)

    res = client.post("/api/responses", json={"responses": []})
    assert res.status_code == 400
    assert res.json()["errors"] == ["Form ID is required", "At least one response is required"]

    res = submit(client, form["id"], [["fox"]], metadata={"deviceType": "fridge"})
    assert res.status_code == 400
    assert res.json()["errors"][0].startswith("metadata.deviceType")


def test_submission_to_unpublished_or_missing_form(client, make_form):
    draft = make_form()

    res = submit(client, draft["id"], [["fox"]])
    assert res.status_code == 400
    assert res.json()["message"] == "Form is not published and cannot accept responses"

    res = submit(client, str(uuid.uuid4()), [["fox"]])
    assert res.status_code == 404
    assert res.json()["message"] == "Form not found"


def test_list_responses_paginates_and_sorts(client, make_form):
    form = make_form(questions=[cloze_question("[a] [b] [c] [d]")], publish=True)
    for answer in (["a"], ["a", "b", "c"], ["a", "b"]):
        submit(client, form["id"], [answer])

    res = client.get(f"/api/responses/form/{form['id']}", params={"limit": 2, "sortBy": "totalScore", "sortOrder": "asc"})

    body = res.json()
    assert [r["totalScore"] for r in body["data"]] == [1, 2]
    assert body["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalResponses": 3,
        "hasNextPage": True,
        "hasPrevPage": False,
    }

    res = client.get(f"/api/responses/form/{form['id']}", params={"limit": 2, "page": 2, "sortBy": "totalScore", "sortOrder": "asc"})
    body = res.json()
    assert [r["totalScore"] for r in body["data"]] == [3]
    assert body["pagination"]["hasNextPage"] is False
    assert body["pagination"]["hasPrevPage"] is True


def test_list_responses_defaults_to_newest_first(client, make_form):
    form = make_form(questions=[cloze_question("[a] [b]")], publish=True)
    first = submit(client, form["id"], [["a"]]).json()["data"]
    second = submit(client, form["id"], [["a", "b"]]).json()["data"]

    body = client.get(f"/api/responses/form/{form['id']}").json()

    assert [r["id"] for r in body["data"]] == [second["id"], first["id"]]
    assert body["pagination"]["totalPages"] == 1


def test_list_responses_rejects_bad_parameters(client, make_form):
    form = make_form()

    res = client.get(f"/api/responses/form/{form['id']}", params={"sortBy": "password"})
    assert res.status_code == 400
    assert res.json()["errors"][0].startswith("sortBy must be one of:")

    assert client.get(f"/api/responses/form/{form['id']}", params={"page": 0}).status_code == 400
    assert client.get(f"/api/responses/form/{form['id']}", params={"sortOrder": "up"}).status_code == 400
    assert client.get("/api/responses/form/bad-id").status_code == 400
    assert client.get(f"/api/responses/form/{uuid.uuid4()}").status_code == 404


def test_analytics_without_responses_is_zeroed(client, make_form):
    form = make_form(publish=True)

    res = client.get(f"/api/responses/analytics/{form['id']}")

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["totalResponses"] == 0
    assert data["averageScore"] == 0
    assert data["questionAnalytics"] == []
    assert data["responseDistribution"] == []
    assert data["submissionTrend"] == []
    assert data["lastSubmission"] is None


def test_analytics_after_submissions(client, quiz):
    submit(client, quiz["id"], [[{"category": "Mammal"}, {"category": "Bird"}], ["fox"], [1]])
    submit(client, quiz["id"], [[{"category": "Bird"}, {"category": "Mammal"}], ["cat"], [1]])

    data = client.get(f"/api/responses/analytics/{quiz['id']}").json()["data"]

    assert data["totalResponses"] == 2
    # (4 + 1) / 2 and 5 / 8
    assert data["averageScore"] == 2.5
    assert data["averagePercentage"] == 62.5
    assert data["completionRate"] == 100
    assert [q["accuracy"] for q in data["questionAnalytics"]] == [50, 50, 100]
    assert [q["questionId"] for q in data["questionAnalytics"]] == [q["id"] for q in quiz["questions"]]
    assert [band["count"] for band in data["responseDistribution"]] == [1, 0, 0, 1]
    assert len(data["submissionTrend"]) == 7
    assert data["submissionTrend"][-1]["count"] == 2
    assert data["lastSubmission"] is not None


def test_analytics_bad_id_and_missing_form(client):
    assert client.get("/api/responses/analytics/nope").status_code == 400
    assert client.get(f"/api/responses/analytics/{uuid.uuid4()}").status_code == 404


def test_get_response_embeds_form(client, make_form):
    form = make_form(publish=True, description="About foxes")
    created = submit(client, form["id"], [["fox"]]).json()["data"]

    res = client.get(f"/api/responses/{created['id']}")

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["id"] == created["id"]
    assert data["form"]["title"] == "Quiz"
    assert data["form"]["description"] == "About foxes"
    assert data["form"]["questions"][0]["type"] == "cloze"


def test_response_outlives_its_form(client, make_form):
    form = make_form(publish=True)
    created = submit(client, form["id"], [["fox"]]).json()["data"]

    client.delete(f"/api/forms/{form['id']}")
    res = client.get(f"/api/responses/{created['id']}")

    assert res.status_code == 200
    assert res.json()["data"]["form"] is None
    assert res.json()["data"]["totalScore"] == 1


def test_get_response_errors(client):
    res = client.get("/api/responses/not-an-id")
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid response ID format"

    res = client.get(f"/api/responses/{uuid.uuid4()}")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Response not found"}


def test_delete_response(client, make_form):
    form = make_form(publish=True)
    created = submit(client, form["id"], [["fox"]]).json()["data"]

    res = client.delete(f"/api/responses/{created['id']}")
    assert res.status_code == 200
    assert res.json()["data"] == {"id": created["id"]}

    assert client.get(f"/api/responses/{created['id']}").status_code == 404
    assert client.delete(f"/api/responses/{created['id']}").status_code == 404
    analytics = client.get(f"/api/responses/analytics/{form['id']}").json()["data"]
    assert analytics["totalResponses"] == 0


def test_legacy_answer_with_infinite_index_scores_zero(client, make_form):
    form = make_form(publish=True)

    body = (
        '{"formId": "' + form["id"] + '", '
        '"responses": [{"clozeAnswer": [{"blankIndex": Infinity, "answer": "fox"}]}]}'
    )

    res = client.post("/api/responses", content=body, headers={"Content-Type": "application/json"})

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["totalScore"] == 0
    assert data["responses"][0]["userAnswers"]["clozeAnswer"][0]["blankIndex"] is None


def test_updating_stored_results_rederives_totals(client, make_form):
    form = make_form(questions=[cloze_question("[a] [b]")], publish=True)
    created = submit(client, form["id"], [["a", "x"]]).json()["data"]
    assert (created["totalScore"], created["overallPercentage"]) == (1, 50)

    db = client.app.state.database.session()
    try:
        record = db.get(FormResponse, uuid.UUID(created["id"]))
        regraded = [{**record.responses[0], "score": 2, "percentage": 0}]
        record.responses = regraded
        db.commit()
        db.refresh(record)

        assert record.responses[0]["percentage"] == 100
        assert (record.total_score, record.max_total_score, record.overall_percentage) == (2, 2, 100)
    finally:
        db.close()

    stored = client.get(f"/api/responses/{created['id']}").json()["data"]
    assert (stored["totalScore"], stored["overallPercentage"]) == (2, 100)
