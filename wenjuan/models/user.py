"""User model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from wenjuan.database import Base


ROLES = ('admin', 'teacher', 'student')


class User(Base):
    """Represents an admin, teacher or student account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # passlib hash, never plaintext
    role = Column(String, nullable=False)  # admin/teacher/student
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    # Only meaningful for students. Not a cascade: deleting a class nulls it explicitly.
    class_id = Column(
        Integer,
        ForeignKey("classes.id", use_alter=True, name="fk_users_class_id"),
        nullable=True,
    )
    created_at = Column(DateTime, server_default=func.now())
