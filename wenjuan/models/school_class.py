"""Class model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from wenjuan.database import Base


class SchoolClass(Base):
    """Represents a teaching group with an optional assigned teacher."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
