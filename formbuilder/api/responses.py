"""
Response submission, retrieval and analytics API endpoints
"""
from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session
from pydantic import ValidationError
from typing import Any, Dict
import logging
import math
import uuid

from formbuilder.config import settings
from formbuilder.database import get_db
from formbuilder.exceptions import APIError, bad_request, not_found
from formbuilder.models import Form, FormResponse
from formbuilder.schemas.analytics import AnalyticsReport
from formbuilder.schemas.form import CamelModel
from formbuilder.schemas.response import (
    EmbeddedForm,
    Pagination,
    ResponseDetail,
    ResponseRead,
    SubmissionMetadata,
    UserInfo,
)
from formbuilder.services.analytics_service import analytics_service
from formbuilder.services.scoring_service import scoring_service
from formbuilder.utils.cache import cache_service
from formbuilder.utils.db_errors import translate_db_errors
from formbuilder.utils.validators import (
    parse_identifier,
    validate_response_data,
    validation_messages,
)

router = APIRouter(prefix="/api/responses", tags=["responses"])
logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "submittedAt": FormResponse.submitted_at,
    "totalScore": FormResponse.total_score,
    "maxTotalScore": FormResponse.max_total_score,
    "overallPercentage": FormResponse.overall_percentage,
    "createdAt": FormResponse.created_at,
}


def _dump(model: CamelModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def _user_info(request: Request) -> Dict[str, Any]:
    info = UserInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        session_id=request.headers.get("x-session-id"),
    )
    return info.model_dump(by_alias=True)


@router.post("", status_code=201)
def submit_response(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db)
):
    """
    Submit and grade a response

    Grading strategy:
    - Categorize: item-by-item category match
    - Cloze: blank-by-blank word match, case-insensitive and trimmed
    - Comprehension: exact option index match

    Answers are aligned to the form's questions by position. Malformed
    answers score 0 for their question instead of rejecting the submission.
    """
    errors = validate_response_data(payload)
    if errors:
        logger.warning(f"Submission validation failed: {errors}")
        raise bad_request("Validation failed", errors)

    metadata = None
    if payload.get("metadata") is not None:
        try:
            metadata = SubmissionMetadata.model_validate(payload["metadata"])
        except ValidationError as e:
            raise bad_request("Validation failed", validation_messages(e, prefix="metadata"))

    form_id = uuid.UUID(payload["formId"])

    with translate_db_errors(db, "submitting response"):
        form = db.get(Form, form_id)
        if form is None:
            raise not_found("Form")

        if not form.is_published:
            raise bad_request("Form is not published and cannot accept responses")

        graded = scoring_service.grade_submission(form.questions or [], payload["responses"])

        record = FormResponse(
            form_id=form.id,
            responses=graded["responses"],
            user_info=_user_info(request),
            client_metadata=metadata.model_dump(by_alias=True) if metadata else None,
        )
        db.add(record)
        db.commit()
        db.refresh(record)

    cache_service.invalidate_form(form_id)
    logger.info(
        f"Response saved: {record.id} for form {form_id}, "
        f"score: {record.total_score}/{record.max_total_score}"
    )

    return {
        "success": True,
        "message": "Response submitted successfully",
        "data": _dump(ResponseRead.model_validate(record)),
    }


@router.get("/form/{form_id}")
def list_form_responses(
    form_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("submittedAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db)
):
    """
    Page through the responses of a form

    - sortBy: submittedAt, totalScore, maxTotalScore, overallPercentage, createdAt
    - sortOrder: asc or desc
    """
    form_uuid = parse_identifier(form_id, "form")

    column = SORT_FIELDS.get(sort_by)
    if column is None:
        raise bad_request(
            "Validation failed",
            [f"sortBy must be one of: {', '.join(SORT_FIELDS)}"],
        )
    order = column.desc() if sort_order == "desc" else column.asc()

    with translate_db_errors(db, "fetching responses"):
        if db.get(Form, form_uuid) is None:
            raise not_found("Form")

        query = db.query(FormResponse).filter(FormResponse.form_id == form_uuid)
        total_responses = query.count()

        skip = (page - 1) * limit
        rows = query.order_by(order, FormResponse.id).offset(skip).limit(limit).all()

    pagination = Pagination(
        current_page=page,
        total_pages=math.ceil(total_responses / limit),
        total_responses=total_responses,
        has_next_page=skip + len(rows) < total_responses,
        has_prev_page=page > 1,
    )

    return {
        "success": True,
        "data": [_dump(ResponseRead.model_validate(r)) for r in rows],
        "pagination": _dump(pagination),
    }


@router.get("/analytics/{form_id}")
def get_form_analytics(form_id: str, db: Session = Depends(get_db)):
    """
    Aggregate statistics over every response of a form

    Returns:
    - Response count, average score and percentage, completion rate
    - Per-question accuracy
    - Score band distribution
    - Submissions per day over the last week
    - Time of the latest submission
    """
    form_uuid = parse_identifier(form_id, "form")

    with translate_db_errors(db, "fetching analytics"):
        form = db.get(Form, form_uuid)
        if form is None:
            raise not_found("Form")

        cache_key = cache_service.analytics_key(form.id)
        cached = cache_service.get(cache_key)
        if cached is not None:
            logger.info(f"Returning cached analytics for form {form.id}")
            return {"success": True, "data": cached}

        report: AnalyticsReport = analytics_service.get_form_analytics(db, form)

    data = _dump(report)
    cache_service.set(cache_key, data)

    return {"success": True, "data": data}


@router.get("/{response_id}")
def get_response(response_id: str, db: Session = Depends(get_db)):
    """Fetch one response with its form's title, description and questions"""
    response_uuid = parse_identifier(response_id, "response")

    with translate_db_errors(db, "fetching response"):
        record = db.get(FormResponse, response_uuid)
        if record is None:
            raise not_found("Response")

        form = db.get(Form, record.form_id)

    detail = ResponseDetail.model_validate(record)
    detail.form = EmbeddedForm.model_validate(form) if form is not None else None

    return {"success": True, "data": _dump(detail)}


@router.delete("/{response_id}")
def delete_response(response_id: str, db: Session = Depends(get_db)):
    """Delete one response"""
    response_uuid = parse_identifier(response_id, "response")

    with translate_db_errors(db, "deleting response"):
        record = db.get(FormResponse, response_uuid)
        if record is None:
            raise not_found("Response")

        form_id = record.form_id
        db.delete(record)
        db.commit()

    cache_service.invalidate_form(form_id)
    logger.info(f"Response deleted: {response_uuid}")

    return {
        "success": True,
        "message": "Response deleted successfully",
        "data": {"id": str(response_uuid)},
    }
