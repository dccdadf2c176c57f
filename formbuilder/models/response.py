"""
FormResponse model - graded submissions against a form
"""
from sqlalchemy import Column, Integer, DateTime, Index, Uuid, event
from formbuilder.database import Base, JSONType, utcnow
from formbuilder.services.scoring_service import scoring_service
import uuid


class FormResponse(Base):
    """
    Responses table - one respondent's graded submission

    ``form_id`` is a plain indexed column rather than a foreign key: forms
    can be deleted while their responses remain.
    """
    __tablename__ = "responses"
    __table_args__ = (
        Index("ix_responses_form_id_submitted_at", "form_id", "submitted_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id = Column(Uuid, nullable=False, index=True)
    responses = Column(JSONType, nullable=False, default=list)  # per-question results
    total_score = Column(Integer, nullable=False, default=0)
    max_total_score = Column(Integer, nullable=False, default=0)
    overall_percentage = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    user_info = Column(JSONType)  # {ipAddress, userAgent, sessionId}
    client_metadata = Column("metadata", JSONType)  # {timeSpent, deviceType, browserInfo}
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def calculate_scores(self) -> "FormResponse":
        """Re-derive per-question percentages and totals from per-question scores"""
        summary = scoring_service.summarize(self.responses or [])
        self.responses = summary["responses"]
        self.total_score = summary["totalScore"]
        self.max_total_score = summary["maxTotalScore"]
        self.overall_percentage = summary["overallPercentage"]
        return self

    def __repr__(self):
        return (
            f"<FormResponse(id={self.id}, form_id={self.form_id}, "
            f"score={self.total_score}/{self.max_total_score})>"
        )


@event.listens_for(FormResponse, "before_insert")
@event.listens_for(FormResponse, "before_update")
def _recalculate_scores(mapper, connection, target: FormResponse):
    target.calculate_scores()
