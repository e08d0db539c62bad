import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.auth import jwt_handler
from wenjuan.auth.dependencies import CurrentUser, get_current_user
from wenjuan.auth.passwords import verify_password
from wenjuan.routes.common import database_unavailable
from wenjuan.store import ClassroomStore, get_store

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post('/login')
def login(data: LoginRequest, store: ClassroomStore = Depends(get_store)):
    try:
        user = store.get_user_by_username(data.username)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if user is None or not verify_password(data.password, user.password):
        logger.warning('Failed login for username %r', data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid username or password.',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    public_user = {'id': user.id, 'username': user.username, 'role': user.role, 'name': user.name}
    token = jwt_handler.create_access_token(public_user)
    return {'success': True, 'token': token, 'user': public_user}


@router.get('/me')
def me(current_user: CurrentUser = Depends(get_current_user)):
    return {'success': True, 'user': current_user.model_dump()}
