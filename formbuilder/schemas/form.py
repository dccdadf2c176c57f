"""
Pydantic schemas for forms and their questions
"""
import re
import uuid
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from formbuilder.database import as_utc

BLANK_PATTERN = re.compile(r"\[([^\]]+)\]")


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def extract_blanks(text: str) -> List["ClozeBlank"]:
    """Turn every [word] marker into a blank, position = occurrence index"""
    return [
        ClozeBlank(word=match.group(1), position=position)
        for position, match in enumerate(BLANK_PATTERN.finditer(text or ""))
    ]


def _question_id() -> str:
    return uuid.uuid4().hex


# Categorize

class CategorizeItem(CamelModel):
    text: str = Field(..., min_length=1)
    correct_category: str


class CategorizeData(CamelModel):
    question: str = ""
    image: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    items: List[CategorizeItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def items_use_known_categories(self):
        known = set(self.categories)
        for item in self.items:
            if item.correct_category not in known:
                raise ValueError(
                    f"Item '{item.text}' references unknown category '{item.correct_category}'"
                )
        return self


class CategorizeQuestion(CamelModel):
    id: str = Field(default_factory=_question_id)
    type: Literal["categorize"]
    categorize_data: CategorizeData


# Cloze

class ClozeBlank(CamelModel):
    word: str = Field(..., min_length=1)
    position: int = Field(..., ge=0)


class ClozeData(CamelModel):
    question: str = ""
    image: Optional[str] = None
    text: str
    blanks: List[ClozeBlank] = Field(default_factory=list)

    @model_validator(mode="after")
    def derive_blanks(self):
        if not self.blanks:
            self.blanks = extract_blanks(self.text)
        return self


class ClozeQuestion(CamelModel):
    id: str = Field(default_factory=_question_id)
    type: Literal["cloze"]
    cloze_data: ClozeData


# Comprehension

class ComprehensionMCQ(CamelModel):
    question: str = ""
    options: List[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)

    @model_validator(mode="after")
    def answer_within_options(self):
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correctAnswer {self.correct_answer} is out of range for {len(self.options)} options"
            )
        return self


class ComprehensionData(CamelModel):
    passage: str = ""
    image: Optional[str] = None
    questions: List[ComprehensionMCQ] = Field(default_factory=list)


class ComprehensionQuestion(CamelModel):
    id: str = Field(default_factory=_question_id)
    type: Literal["comprehension"]
    comprehension_data: ComprehensionData


Question = Annotated[
    Union[CategorizeQuestion, ClozeQuestion, ComprehensionQuestion],
    Field(discriminator="type"),
]


# Forms

class FormPayload(CamelModel):
    """Body of form create / full replace, after structural validation"""
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    header_image: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    def questions_json(self) -> List[dict]:
        return [q.model_dump(by_alias=True, mode="json") for q in self.questions]


class TimestampedModel(CamelModel):
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class FormRead(TimestampedModel):
    """Full form document, answer keys included"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    header_image: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    is_published: bool


class FormSummary(TimestampedModel):
    """Row of the builder's form listing"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    header_image: Optional[str] = None
    question_count: int
    is_published: bool


class PublishedFormSummary(TimestampedModel):
    """Row of the public listing of published forms"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    header_image: Optional[str] = None


def strip_answer_key(question: dict) -> dict:
    """Copy of a stored question without the data used for grading"""
    q_type = question.get("type")
    public = {"id": question.get("id"), "type": q_type}

    if q_type == "categorize":
        data = question.get("categorizeData") or {}
        public["categorizeData"] = {
            "question": data.get("question", ""),
            "image": data.get("image"),
            "categories": list(data.get("categories") or []),
            "items": [{"text": item.get("text")} for item in data.get("items") or []],
        }
    elif q_type == "cloze":
        data = question.get("clozeData") or {}
        text = data.get("text", "")
        public["clozeData"] = {
            "question": data.get("question", ""),
            "image": data.get("image"),
            "text": BLANK_PATTERN.sub("____", text),
            "blankCount": len(data.get("blanks") or []),
        }
    elif q_type == "comprehension":
        data = question.get("comprehensionData") or {}
        public["comprehensionData"] = {
            "passage": data.get("passage", ""),
            "image": data.get("image"),
            "questions": [
                {"question": mcq.get("question", ""), "options": list(mcq.get("options") or [])}
                for mcq in data.get("questions") or []
            ],
        }

    return public


class RespondentForm(TimestampedModel):
    """Published form as shown to respondents, answer keys stripped"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    header_image: Optional[str] = None
    questions: List[dict] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def hide_answer_keys(cls, v):
        return [strip_answer_key(q) for q in v or [] if isinstance(q, dict)]
