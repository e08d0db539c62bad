from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.core import config
from wenjuan.routes.common import database_unavailable, not_found
from wenjuan.services import roster_import
from wenjuan.store import ClassroomStore, DuplicateUsernameError, get_store, user_row

router = APIRouter(tags=['classes'])


class CreateClassRequest(BaseModel):
    name: str
    description: str | None = None
    teacher_id: int | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Class name is required.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class UpdateClassRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    teacher_id: int | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Class name cannot be blank.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class UpdateClassByBodyRequest(UpdateClassRequest):
    id: int


class AddStudentRequest(BaseModel):
    username: str
    name: str
    email: str | None = None
    password: str | None = None

    @field_validator('username', 'name')
    @classmethod
    def validate_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Username and name are required.')
        return normalized

    @field_validator('email', 'password')
    @classmethod
    def validate_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def apply_class_update(class_id: int, data: UpdateClassRequest, store: ClassroomStore) -> dict:
    update_data = data.model_dump(exclude_unset=True, exclude={'id'})
    if update_data.get('name', '') is None:
        del update_data['name']
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='No update data provided.')

    try:
        school_class = store.update_class(class_id, update_data)
        if school_class is None:
            raise not_found('Class')
        return {'success': True, 'class': store.get_class_row(class_id)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/classes')
def list_classes(store: ClassroomStore = Depends(get_store)):
    try:
        return store.list_classes()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/classes', status_code=status.HTTP_201_CREATED)
def create_class(data: CreateClassRequest, store: ClassroomStore = Depends(get_store)):
    try:
        school_class = store.create_class(
            name=data.name,
            description=data.description,
            teacher_id=data.teacher_id,
        )
        return {'success': True, 'id': school_class.id, 'class': store.get_class_row(school_class.id)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/classes')
def update_class_by_body(data: UpdateClassByBodyRequest, store: ClassroomStore = Depends(get_store)):
    return apply_class_update(data.id, data, store)


@router.get('/classes/{class_id}')
def get_class(class_id: int, store: ClassroomStore = Depends(get_store)):
    try:
        row = store.get_class_row(class_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if row is None:
        raise not_found('Class')
    return row


@router.put('/classes/{class_id}')
def update_class(class_id: int, data: UpdateClassRequest, store: ClassroomStore = Depends(get_store)):
    return apply_class_update(class_id, data, store)


@router.delete('/classes/{class_id}')
def delete_class(class_id: int, store: ClassroomStore = Depends(get_store)):
    try:
        store.delete_class(class_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
    return {'success': True}


@router.get('/classes/{class_id}/students')
def list_class_students(class_id: int, store: ClassroomStore = Depends(get_store)):
    try:
        if store.get_class(class_id) is None:
            raise not_found('Class')
        return [user_row(student) for student in store.list_class_students(class_id)]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/classes/{class_id}/students', status_code=status.HTTP_201_CREATED)
def add_class_student(class_id: int, data: AddStudentRequest, store: ClassroomStore = Depends(get_store)):
    try:
        if store.get_class(class_id) is None:
            raise not_found('Class')

        student = store.create_user(
            username=data.username,
            password=data.password or config.DEFAULT_STUDENT_PASSWORD,
            role='student',
            name=data.name,
            email=data.email,
            class_id=class_id,
        )
    except DuplicateUsernameError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'success': True, 'id': student.id, 'user': user_row(student)}


@router.post('/classes/{class_id}/students/import')
async def import_class_students(
    class_id: int,
    file: UploadFile = File(...),
    store: ClassroomStore = Depends(get_store),
):
    raw = await file.read(config.MAX_IMPORT_BYTES + 1)
    if len(raw) > config.MAX_IMPORT_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f'Roster files are limited to {config.MAX_IMPORT_BYTES} bytes.',
        )

    try:
        content = raw.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Roster file must be UTF-8 encoded text.',
        ) from exc

    try:
        if store.get_class(class_id) is None:
            raise not_found('Class')

        result = roster_import.import_students(
            store,
            class_id,
            content,
            default_password=config.DEFAULT_STUDENT_PASSWORD,
            max_rows=config.MAX_IMPORT_ROWS,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return result.as_response()
