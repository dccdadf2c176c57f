"""
Form model - form definitions with their embedded questions
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, Uuid
from formbuilder.database import Base, JSONType, utcnow
import uuid


class Form(Base):
    """
    Forms table - title, header metadata, ordered questions and publish flag

    Questions are stored as a JSON list; their order is the index a
    response's per-question results are aligned to.
    """
    __tablename__ = "forms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    header_image = Column(Text)
    questions = Column(JSONType, nullable=False, default=list)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True)

    @property
    def question_count(self) -> int:
        return len(self.questions or [])

    def can_publish(self) -> bool:
        return bool((self.title or "").strip()) and bool(self.questions)

    def __repr__(self):
        return f"<Form(id={self.id}, title={self.title}, published={self.is_published})>"
