import uuid

import pytest

from formbuilder.exceptions import APIError
from formbuilder.utils.validators import (
    is_valid_identifier,
    is_valid_url,
    parse_identifier,
    validate_form_data,
    validate_response_data,
)


def test_identifiers_are_uuids():
    value = str(uuid.uuid4())
    assert is_valid_identifier(value)
    assert is_valid_identifier(value.replace("-", ""))
    assert not is_valid_identifier("507f1f77bcf86cd799439011")
    assert not is_valid_identifier("not-an-id")
    assert not is_valid_identifier(None)
    assert not is_valid_identifier(12345)


def test_parse_identifier_raises_bad_request():
    with pytest.raises(APIError) as exc:
        parse_identifier("nope", "response")
    assert exc.value.status_code == 400
    assert exc.value.message == "Invalid response ID format"


def test_url_check():
    assert is_valid_url("https://example.com/header.png")
    assert not is_valid_url("header.png")
    assert not is_valid_url("")
    assert not is_valid_url(None)


def test_valid_form_data_has_no_errors():
    data = {"title": "Quiz", "description": "About things", "headerImage": "https://x.io/a.png", "questions": []}
    assert validate_form_data(data) == []


def test_form_title_is_required():
    assert validate_form_data({}) == ["Form title is required"]
    assert validate_form_data({"title": "   "}) == ["Form title is required"]


def test_form_limits_and_shapes():
    errors = validate_form_data({
        "title": "t" * 201,
        "description": "d" * 1001,
        "headerImage": "not a url",
        "questions": {"type": "cloze"},
    })
    assert errors == [
        "Form title must not exceed 200 characters",
        "Form description must not exceed 1000 characters",
        "Header image must be a valid URL",
        "Questions must be an array",
    ]


def test_empty_header_image_is_allowed():
    assert validate_form_data({"title": "Quiz", "headerImage": ""}) == []


def test_response_data_checks():
    form_id = str(uuid.uuid4())
    assert validate_response_data({"formId": form_id, "responses": [["a"]]}) == []
    assert validate_response_data({}) == ["Form ID is required", "Responses must be an array"]
    assert validate_response_data({"formId": "abc", "responses": []}) == [
        "Form ID must be a valid UUID",
        "At least one response is required",
    ]
    assert validate_response_data({"formId": form_id, "responses": "x"}) == ["Responses must be an array"]
