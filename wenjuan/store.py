"""Data access for users, classes, subjects and questions.

Handlers never touch the session directly: they receive a ``ClassroomStore``
through ``Depends(get_store)``. Tests build their own store around a session
bound to an in-memory engine.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from wenjuan.auth.passwords import hash_password
from wenjuan.database import SessionLocal
from wenjuan.models.question import Question
from wenjuan.models.school_class import SchoolClass
from wenjuan.models.subject import Subject
from wenjuan.models.user import User
from wenjuan.services.question_options import serialize_options


class DuplicateUsernameError(ValueError):
    def __init__(self, username: str):
        super().__init__(f'Username "{username}" already exists.')
        self.username = username


class ClassroomStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # --- users ---

    def get_user(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def username_exists(self, username: str) -> bool:
        return self.db.query(User.id).filter(User.username == username).first() is not None

    def list_users(self, role: str | None = None) -> list[dict]:
        if role == 'student':
            rows = (
                self.db.query(User, SchoolClass.name)
                .outerjoin(SchoolClass, User.class_id == SchoolClass.id)
                .filter(User.role == 'student')
                .order_by(User.id.asc())
                .all()
            )
            return [{**user_row(user), 'class_name': class_name} for user, class_name in rows]

        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return [user_row(user) for user in query.order_by(User.id.asc()).all()]

    def create_user(
        self,
        *,
        username: str,
        password: str,
        role: str,
        name: str,
        email: str | None = None,
        class_id: int | None = None,
    ) -> User:
        user = User(
            username=username,
            password=hash_password(password),
            role=role,
            name=name,
            email=email,
            class_id=class_id,
        )
        try:
            with self.transaction():
                self.db.add(user)
        except IntegrityError as exc:
            # Only the unique username constraint is a caller error.
            if self.username_exists(username):
                raise DuplicateUsernameError(username) from exc
            raise
        self.db.refresh(user)
        return user

    def update_user(self, user_id: int, data: dict) -> User | None:
        user = self.get_user(user_id)
        if user is None:
            return None

        with self.transaction():
            for key, value in data.items():
                if key == 'password':
                    value = hash_password(value)
                setattr(user, key, value)
        self.db.refresh(user)
        return user

    def delete_user(self, user_id: int) -> bool:
        with self.transaction():
            deleted = self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        return deleted > 0

    def ensure_default_admin(self, username: str, password: str, name: str) -> bool:
        """Create the bootstrap admin account unless the username is taken."""
        if self.username_exists(username):
            return False
        self.create_user(username=username, password=password, role='admin', name=name)
        return True

    def count_users(self, role: str) -> int:
        return self.db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    # --- classes ---

    def _class_rows_query(self):
        teacher = aliased(User)
        student_count = (
            self.db.query(func.count(User.id))
            .filter(User.role == 'student', User.class_id == SchoolClass.id)
            .correlate(SchoolClass)
            .scalar_subquery()
        )
        return (
            self.db.query(SchoolClass, teacher.name, student_count)
            .outerjoin(teacher, SchoolClass.teacher_id == teacher.id)
        )

    def list_classes(self, teacher_id: int | None = None) -> list[dict]:
        query = self._class_rows_query()
        if teacher_id is not None:
            query = query.filter(SchoolClass.teacher_id == teacher_id)
        rows = query.order_by(SchoolClass.id.asc()).all()
        return [class_row(school_class, teacher_name, count) for school_class, teacher_name, count in rows]

    def get_class(self, class_id: int) -> SchoolClass | None:
        return self.db.query(SchoolClass).filter(SchoolClass.id == class_id).first()

    def get_class_row(self, class_id: int) -> dict | None:
        row = self._class_rows_query().filter(SchoolClass.id == class_id).first()
        if row is None:
            return None
        return class_row(*row)

    def count_classes(self) -> int:
        return self.db.query(func.count(SchoolClass.id)).scalar() or 0

    def create_class(self, *, name: str, description: str | None = None, teacher_id: int | None = None) -> SchoolClass:
        school_class = SchoolClass(name=name, description=description, teacher_id=teacher_id)
        with self.transaction():
            self.db.add(school_class)
        self.db.refresh(school_class)
        return school_class

    def update_class(self, class_id: int, data: dict) -> SchoolClass | None:
        school_class = self.get_class(class_id)
        if school_class is None:
            return None

        with self.transaction():
            for key, value in data.items():
                setattr(school_class, key, value)
        self.db.refresh(school_class)
        return school_class

    def delete_class(self, class_id: int) -> bool:
        """Unlink member students and delete the class in one transaction."""
        with self.transaction():
            self.db.query(User).filter(User.class_id == class_id).update(
                {User.class_id: None},
                synchronize_session=False,
            )
            deleted = self.db.query(SchoolClass).filter(SchoolClass.id == class_id).delete(
                synchronize_session=False,
            )
        self.db.expire_all()
        return deleted > 0

    def list_class_students(self, class_id: int) -> list[User]:
        return (
            self.db.query(User)
            .filter(User.role == 'student', User.class_id == class_id)
            .order_by(User.id.asc())
            .all()
        )

    # --- subjects ---

    def list_subjects(self, teacher_id: int | None = None) -> list[Subject]:
        query = self.db.query(Subject)
        if teacher_id is not None:
            query = query.filter(Subject.teacher_id == teacher_id)
        return query.order_by(Subject.id.asc()).all()

    def get_subject(self, subject_id: int) -> Subject | None:
        return self.db.query(Subject).filter(Subject.id == subject_id).first()

    def create_subject(
        self,
        *,
        name: str,
        teacher_id: int,
        description: str | None = None,
        background: str | None = None,
        status: str = 'draft',
    ) -> Subject:
        subject = Subject(
            name=name,
            teacher_id=teacher_id,
            description=description,
            background=background,
            status=status,
        )
        with self.transaction():
            self.db.add(subject)
        self.db.refresh(subject)
        return subject

    def update_subject(self, subject_id: int, data: dict) -> Subject | None:
        subject = self.get_subject(subject_id)
        if subject is None:
            return None

        with self.transaction():
            for key, value in data.items():
                setattr(subject, key, value)
        self.db.refresh(subject)
        return subject

    def delete_subject(self, subject_id: int) -> bool:
        """Delete the subject's questions and then the subject in one transaction."""
        with self.transaction():
            self.db.query(Question).filter(Question.subject_id == subject_id).delete(
                synchronize_session=False,
            )
            deleted = self.db.query(Subject).filter(Subject.id == subject_id).delete(
                synchronize_session=False,
            )
        self.db.expire_all()
        return deleted > 0

    # --- questions ---

    def list_questions(self, subject_id: int) -> list[Question]:
        return (
            self.db.query(Question)
            .filter(Question.subject_id == subject_id)
            .order_by(Question.id.asc())
            .all()
        )

    def get_question(self, question_id: int) -> Question | None:
        return self.db.query(Question).filter(Question.id == question_id).first()

    def create_question(
        self,
        *,
        subject_id: int,
        text: str,
        type: str,
        options: list[str] | None = None,
    ) -> Question:
        question = Question(
            subject_id=subject_id,
            text=text,
            type=type,
            options=serialize_options(options),
        )
        with self.transaction():
            self.db.add(question)
        self.db.refresh(question)
        return question

    def delete_question(self, question_id: int) -> bool:
        with self.transaction():
            deleted = self.db.query(Question).filter(Question.id == question_id).delete(
                synchronize_session=False,
            )
        return deleted > 0


def user_row(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'role': user.role,
        'name': user.name,
        'email': user.email,
        'class_id': user.class_id,
    }


def class_row(school_class: SchoolClass, teacher_name: str | None, student_count: int | None) -> dict:
    return {
        'id': school_class.id,
        'name': school_class.name,
        'description': school_class.description,
        'teacher_id': school_class.teacher_id,
        'teacher_name': teacher_name,
        'student_count': student_count or 0,
    }


def get_store() -> Iterator[ClassroomStore]:
    db = SessionLocal()
    try:
        yield ClassroomStore(db)
    finally:
        db.close()
