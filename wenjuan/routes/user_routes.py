from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.core import config
from wenjuan.models.user import ROLES
from wenjuan.routes.common import database_unavailable, not_found
from wenjuan.store import ClassroomStore, DuplicateUsernameError, get_store, user_row

router = APIRouter(tags=['users'])


def _required_text(value: str, label: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f'{label} is required.')
    return normalized


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class CreateUserRequest(BaseModel):
    username: str
    name: str
    role: str
    password: str | None = None
    email: str | None = None
    class_id: int | None = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _required_text(value, 'Username')

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _required_text(value, 'Name')

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError('Role must be one of admin, teacher or student.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str | None) -> str | None:
        # Blank means "use the default password".
        if value is None or not value.strip():
            return None
        return value

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return _optional_text(value)


class UpdateUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    class_id: int | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _required_text(value, 'Name')

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return _optional_text(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError('Password cannot be blank.')
        return value


class UpdateUserByBodyRequest(UpdateUserRequest):
    id: int


def apply_user_update(user_id: int, data: UpdateUserRequest, store: ClassroomStore) -> dict:
    update_data = data.model_dump(exclude_unset=True, exclude={'id'})
    # Name and password cannot be cleared, only replaced.
    for key in ('name', 'password'):
        if key in update_data and update_data[key] is None:
            del update_data[key]
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='No update data provided.')

    try:
        if update_data.get('class_id') is not None and store.get_class(update_data['class_id']) is None:
            raise not_found('Class')

        user = store.update_user(user_id, update_data)
        if user is None:
            raise not_found('User')
        return {'success': True, 'user': user_row(user)}
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/users')
def list_users(
    role: str | None = Query(default=None),
    store: ClassroomStore = Depends(get_store),
):
    normalized_role = role.strip().lower() if role else None
    if normalized_role and normalized_role not in ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Unknown role filter.')

    try:
        return store.list_users(normalized_role)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/users', status_code=status.HTTP_201_CREATED)
def create_user(data: CreateUserRequest, store: ClassroomStore = Depends(get_store)):
    class_id = data.class_id if data.role == 'student' else None

    try:
        if class_id is not None and store.get_class(class_id) is None:
            raise not_found('Class')

        user = store.create_user(
            username=data.username,
            password=data.password or config.DEFAULT_STUDENT_PASSWORD,
            role=data.role,
            name=data.name,
            email=data.email,
            class_id=class_id,
        )
    except DuplicateUsernameError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'success': True, 'id': user.id, 'user': user_row(user)}


@router.put('/users')
def update_user_by_body(data: UpdateUserByBodyRequest, store: ClassroomStore = Depends(get_store)):
    return apply_user_update(data.id, data, store)


@router.put('/users/{user_id}')
def update_user(user_id: int, data: UpdateUserRequest, store: ClassroomStore = Depends(get_store)):
    return apply_user_update(user_id, data, store)


@router.delete('/users/{user_id}')
def delete_user(user_id: int, store: ClassroomStore = Depends(get_store)):
    try:
        store.delete_user(user_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
    return {'success': True}
