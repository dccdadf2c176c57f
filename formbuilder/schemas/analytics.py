"""
Pydantic schemas for form analytics
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from formbuilder.schemas.form import CamelModel


class QuestionAnalytics(CamelModel):
    """Answer accuracy for one question of the form"""
    question_id: Optional[str] = None
    question_text: str
    question_type: str
    total_answers: int
    correct_answers: int
    accuracy: float


class ScoreBand(CamelModel):
    """Count of responses whose percentage falls in a band"""
    range: str
    count: int


class TrendPoint(CamelModel):
    """Submissions on one calendar day"""
    date: str
    count: int


class AnalyticsReport(CamelModel):
    """Aggregated statistics over every response of a form"""
    total_responses: int = 0
    average_score: float = 0
    average_percentage: float = 0
    completion_rate: float = 0
    question_analytics: List[QuestionAnalytics] = Field(default_factory=list)
    response_distribution: List[ScoreBand] = Field(default_factory=list)
    submission_trend: List[TrendPoint] = Field(default_factory=list)
    last_submission: Optional[datetime] = None
