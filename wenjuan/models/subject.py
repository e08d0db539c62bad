"""Subject model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from wenjuan.database import Base


SUBJECT_STATUSES = ('draft', 'published')


class Subject(Base):
    """Represents a teacher-owned research project and its question bank."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    background = Column(Text, nullable=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String, nullable=False, default='draft')
    created_at = Column(DateTime, server_default=func.now())
