from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.auth.dependencies import CurrentUser, get_current_user
from wenjuan.core import config
from wenjuan.models.question import QUESTION_TYPES, Question
from wenjuan.models.subject import SUBJECT_STATUSES
from wenjuan.routes.common import database_unavailable, ensure_subject_owner, not_found
from wenjuan.services.question_options import normalize_options, parse_stored_options
from wenjuan.store import ClassroomStore, get_store

router = APIRouter(tags=['teacher'])


def _normalize_status(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in SUBJECT_STATUSES:
        raise ValueError('Status must be draft or published.')
    return normalized


class CreateSubjectRequest(BaseModel):
    name: str
    description: str | None = None
    background: str | None = None
    teacher_id: int | None = None
    status: str = 'draft'

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Subject name is required.')
        return normalized

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _normalize_status(value)


class UpdateSubjectRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    background: str | None = None
    status: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Subject name cannot be blank.')
        return normalized

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        return _normalize_status(value)


class SubjectResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    background: str | None = None
    teacher_id: int
    status: str

    class Config:
        from_attributes = True


class CreateQuestionRequest(BaseModel):
    text: str
    type: str
    options: list[str] | None = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Question text is required.')
        return normalized

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in QUESTION_TYPES:
            raise ValueError('Question type must be single, multi, text or scale.')
        return normalized

    @field_validator('options', mode='before')
    @classmethod
    def validate_options(cls, value):
        return normalize_options(value)


class QuestionResponse(BaseModel):
    id: int
    subject_id: int
    text: str
    type: str
    options: list[str] | None = None


def question_response(question: Question) -> QuestionResponse:
    return QuestionResponse(
        id=question.id,
        subject_id=question.subject_id,
        text=question.text,
        type=question.type,
        options=parse_stored_options(question.options),
    )


@router.get('/teacher/classes')
def list_teacher_classes(
    teacher_id: int | None = Query(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        return store.list_classes(teacher_id=teacher_id if teacher_id is not None else current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/subjects', response_model=list[SubjectResponse])
def list_subjects(
    teacher_id: int | None = Query(default=None),
    store: ClassroomStore = Depends(get_store),
):
    try:
        return store.list_subjects(teacher_id=teacher_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/subjects', status_code=status.HTTP_201_CREATED)
def create_subject(
    data: CreateSubjectRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    teacher_id = data.teacher_id if data.teacher_id is not None else current_user.id
    if config.ENFORCE_SUBJECT_OWNERSHIP and teacher_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Teachers can only create their own subjects.',
        )

    try:
        subject = store.create_subject(
            name=data.name,
            teacher_id=teacher_id,
            description=data.description,
            background=data.background,
            status=data.status,
        )
        return {'success': True, 'id': subject.id, 'subject': SubjectResponse.model_validate(subject)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/subjects/{subject_id}', response_model=SubjectResponse)
def get_subject(
    subject_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        subject = store.get_subject(subject_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if subject is None:
        raise not_found('Subject')
    ensure_subject_owner(subject, current_user)
    return subject


@router.put('/subjects/{subject_id}')
def update_subject(
    subject_id: int,
    data: UpdateSubjectRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    update_data = data.model_dump(exclude_unset=True)
    for key in ('name', 'status'):
        if key in update_data and update_data[key] is None:
            del update_data[key]
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='No update data provided.')

    try:
        subject = store.get_subject(subject_id)
        if subject is None:
            raise not_found('Subject')
        ensure_subject_owner(subject, current_user)

        subject = store.update_subject(subject_id, update_data)
        return {'success': True, 'subject': SubjectResponse.model_validate(subject)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/subjects/{subject_id}')
def delete_subject(
    subject_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        subject = store.get_subject(subject_id)
        if subject is not None:
            ensure_subject_owner(subject, current_user)
            store.delete_subject(subject_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
    return {'success': True}


@router.get('/subjects/{subject_id}/questions', response_model=list[QuestionResponse])
def list_questions(
    subject_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        subject = store.get_subject(subject_id)
        if subject is None:
            return []
        ensure_subject_owner(subject, current_user)
        return [question_response(question) for question in store.list_questions(subject_id)]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/subjects/{subject_id}/questions', status_code=status.HTTP_201_CREATED)
def create_question(
    subject_id: int,
    data: CreateQuestionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        subject = store.get_subject(subject_id)
        if subject is None:
            raise not_found('Subject')
        ensure_subject_owner(subject, current_user)

        question = store.create_question(
            subject_id=subject_id,
            text=data.text,
            type=data.type,
            options=data.options,
        )
        return {'success': True, 'id': question.id, 'question': question_response(question)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/questions/{question_id}')
def delete_question(
    question_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    try:
        question = store.get_question(question_id)
        if question is not None:
            subject = store.get_subject(question.subject_id)
            if subject is not None:
                ensure_subject_owner(subject, current_user)
            store.delete_question(question_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
    return {'success': True}
