"""
Form builder API endpoints
"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from pydantic import ValidationError
from typing import Any, Dict
import logging

from formbuilder.database import get_db, utcnow
from formbuilder.exceptions import APIError, bad_request, not_found
from formbuilder.models import Form
from formbuilder.schemas.form import (
    FormPayload,
    FormRead,
    FormSummary,
    PublishedFormSummary,
    RespondentForm,
)
from formbuilder.utils.cache import cache_service
from formbuilder.utils.db_errors import translate_db_errors
from formbuilder.utils.validators import (
    parse_identifier,
    validate_form_data,
    validation_messages,
)

router = APIRouter(prefix="/api/forms", tags=["forms"])
logger = logging.getLogger(__name__)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def _parse_payload(payload: Dict[str, Any]) -> FormPayload:
    """Structural checks first, then the nested question schemas"""
    errors = validate_form_data(payload)
    if errors:
        logger.warning(f"Form validation failed: {errors}")
        raise bad_request("Validation failed", errors)

    try:
        return FormPayload.model_validate(payload)
    except ValidationError as e:
        errors = validation_messages(e)
        logger.warning(f"Form schema validation failed: {errors}")
        raise bad_request("Validation failed", errors)


def _get_form_or_404(db: Session, form_id: str) -> Form:
    form = db.get(Form, parse_identifier(form_id, "form"))
    if form is None:
        raise not_found("Form")
    return form


@router.get("")
def list_forms(db: Session = Depends(get_db)):
    """List every form, most recently updated first"""
    with translate_db_errors(db, "fetching forms"):
        forms = db.query(Form).order_by(Form.updated_at.desc()).all()

    return {
        "success": True,
        "count": len(forms),
        "data": [_dump(FormSummary.model_validate(f)) for f in forms],
    }


@router.get("/published")
def list_published_forms(db: Session = Depends(get_db)):
    """List published forms with the fields a respondent needs to pick one"""
    with translate_db_errors(db, "fetching published forms"):
        forms = (
            db.query(Form)
            .filter(Form.is_published.is_(True))
            .order_by(Form.updated_at.desc())
            .all()
        )

    return {
        "success": True,
        "count": len(forms),
        "data": [_dump(PublishedFormSummary.model_validate(f)) for f in forms],
    }


@router.get("/published/{form_id}")
def get_published_form(form_id: str, db: Session = Depends(get_db)):
    """
    Fetch a published form for filling in

    Answer keys (correct categories, blank words, correct options) are
    stripped from every question.
    """
    with translate_db_errors(db, "fetching form"):
        form = _get_form_or_404(db, form_id)

    if not form.is_published:
        raise bad_request("Form is not published")

    return {"success": True, "data": _dump(RespondentForm.model_validate(form))}


@router.get("/{form_id}")
def get_form(form_id: str, db: Session = Depends(get_db)):
    """Fetch one form with its answer keys"""
    with translate_db_errors(db, "fetching form"):
        form = _get_form_or_404(db, form_id)

    return {"success": True, "data": _dump(FormRead.model_validate(form))}


@router.post("", status_code=201)
def create_form(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """
    Create a form

    - Checks title, description, header image URL and questions shape
    - Validates each question against its type's schema
    - Derives cloze blanks from [word] markers when none are given
    """
    data = _parse_payload(payload)

    with translate_db_errors(db, "creating form"):
        form = Form(
            title=data.title,
            description=data.description,
            header_image=data.header_image,
            questions=data.questions_json(),
        )
        db.add(form)
        db.commit()
        db.refresh(form)

    logger.info(f"Form created: {form.id} with {form.question_count} questions")

    return {
        "success": True,
        "message": "Form created successfully",
        "data": _dump(FormRead.model_validate(form)),
    }


@router.put("/{form_id}")
def update_form(form_id: str, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """Replace title, description, header image and questions of a form"""
    parse_identifier(form_id, "form")
    data = _parse_payload(payload)

    with translate_db_errors(db, "updating form"):
        form = _get_form_or_404(db, form_id)

        form.title = data.title
        form.description = data.description
        form.header_image = data.header_image
        form.questions = data.questions_json()
        form.updated_at = utcnow()

        db.commit()
        db.refresh(form)

    cache_service.invalidate_form(form.id)
    logger.info(f"Form updated: {form.id}")

    return {
        "success": True,
        "message": "Form updated successfully",
        "data": _dump(FormRead.model_validate(form)),
    }


@router.delete("/{form_id}")
def delete_form(form_id: str, db: Session = Depends(get_db)):
    """Delete a form; its responses are kept"""
    with translate_db_errors(db, "deleting form"):
        form = _get_form_or_404(db, form_id)
        deleted_id = form.id
        db.delete(form)
        db.commit()

    cache_service.invalidate_form(deleted_id)
    logger.info(f"Form deleted: {deleted_id}")

    return {
        "success": True,
        "message": "Form deleted successfully",
        "data": {"id": str(deleted_id)},
    }


@router.put("/{form_id}/publish")
def toggle_publish(form_id: str, db: Session = Depends(get_db)):
    """
    Toggle the publish flag

    Publishing requires a non-empty title and at least one question;
    unpublishing is always allowed.
    """
    with translate_db_errors(db, "updating form publish status"):
        form = _get_form_or_404(db, form_id)

        if not form.is_published and not form.can_publish():
            raise APIError(
                400,
                "Cannot publish form: Form must have a title and at least one question",
            )

        form.is_published = not form.is_published
        form.updated_at = utcnow()
        db.commit()
        db.refresh(form)

    state = "published" if form.is_published else "unpublished"
    logger.info(f"Form {form.id} {state}")

    return {
        "success": True,
        "message": f"Form {state} successfully",
        "data": _dump(FormRead.model_validate(form)),
    }
