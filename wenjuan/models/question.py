"""Question model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from wenjuan.database import Base


QUESTION_TYPES = ('single', 'multi', 'text', 'scale')


class Question(Base):
    """Represents one item in a subject's question bank."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    text = Column(Text, nullable=False)
    type = Column(String, nullable=False)
    options = Column(Text, nullable=True)  # JSON list of strings
    created_at = Column(DateTime, server_default=func.now())
