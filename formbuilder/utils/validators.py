"""
Structural request validation applied before anything touches the database
"""
import uuid
from typing import Any, Dict, List, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

from formbuilder.exceptions import bad_request

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_identifier(value: Any) -> bool:
    """Identifiers are UUIDs, the native key type of the store"""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def parse_identifier(value: Any, resource: str = "form") -> uuid.UUID:
    """Parse a path identifier or raise 400"""
    if not is_valid_identifier(value):
        raise bad_request(f"Invalid {resource} ID format")
    return uuid.UUID(value)


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_form_data(data: Dict[str, Any]) -> List[str]:
    """Field checks for form create / replace; returns error messages"""
    errors = []
    title = data.get("title")

    if not isinstance(title, str) or not title.strip():
        errors.append("Form title is required")
    elif len(title) > TITLE_MAX_LENGTH:
        errors.append(f"Form title must not exceed {TITLE_MAX_LENGTH} characters")

    description = data.get("description")
    if description is not None:
        if not isinstance(description, str):
            errors.append("Form description must be a string")
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(f"Form description must not exceed {DESCRIPTION_MAX_LENGTH} characters")

    header_image = data.get("headerImage")
    if header_image and not is_valid_url(header_image):
        errors.append("Header image must be a valid URL")

    questions = data.get("questions")
    if questions is not None and not isinstance(questions, list):
        errors.append("Questions must be an array")

    return errors


def validate_response_data(data: Dict[str, Any]) -> List[str]:
    """Field checks for a submission; returns error messages"""
    errors = []
    form_id = data.get("formId")

    if not form_id:
        errors.append("Form ID is required")
    elif not is_valid_identifier(form_id):
        errors.append("Form ID must be a valid UUID")

    responses = data.get("responses")
    if not isinstance(responses, list):
        errors.append("Responses must be an array")
    elif len(responses) == 0:
        errors.append("At least one response is required")

    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        errors.append("Metadata must be an object")

    return errors


def validation_messages(exc: ValidationError, prefix: Optional[str] = None) -> List[str]:
    """Flatten a pydantic ValidationError into readable messages"""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        if prefix:
            location = f"{prefix}.{location}" if location else prefix
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{location}: {message}" if location else message)
    return messages
