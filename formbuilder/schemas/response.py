"""
Pydantic schemas for response submission and retrieval
"""
from datetime import datetime
from typing import Any, List, Literal, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from formbuilder.database import as_utc
from formbuilder.schemas.form import CamelModel, Question


class SubmissionMetadata(CamelModel):
    """Optional client-reported context of a submission"""
    time_spent: Optional[int] = Field(None, ge=0, description="Time spent in seconds")
    device_type: Optional[Literal["desktop", "tablet", "mobile"]] = None
    browser_info: Optional[str] = Field(None, max_length=500)


class UserInfo(CamelModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


class QuestionResult(CamelModel):
    """Grading of one submitted answer"""
    question_index: int
    question_id: Optional[str] = None
    question_type: str
    user_answers: Any = None
    score: int
    max_score: int
    percentage: int


class ResponseRead(CamelModel):
    """Graded response document"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_id: UUID
    responses: List[QuestionResult] = Field(default_factory=list)
    total_score: int
    max_total_score: int
    overall_percentage: int
    submitted_at: datetime
    user_info: Optional[UserInfo] = None
    client_metadata: Optional[SubmissionMetadata] = Field(None, serialization_alias="metadata")

    @field_validator("submitted_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class EmbeddedForm(CamelModel):
    """Parent form fields embedded in a single-response lookup"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)


class ResponseDetail(ResponseRead):
    form: Optional[EmbeddedForm] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_responses: int
    has_next_page: bool
    has_prev_page: bool
