import asyncio
import json
import os

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from wenjuan.auth import jwt_handler  # noqa: E402
from wenjuan.auth.dependencies import CurrentUser  # noqa: E402
from wenjuan.database import Base, init_database  # noqa: E402
from wenjuan.main import http_exception_handler  # noqa: E402
from wenjuan.models.user import User  # noqa: E402
from wenjuan.routes.auth_routes import LoginRequest, login, me  # noqa: E402
from wenjuan.store import ClassroomStore  # noqa: E402


@pytest.fixture
def store():
    engine = create_engine('sqlite:///:memory:')
    init_database(engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = testing_session_local()
    store = ClassroomStore(db)
    store.ensure_default_admin('admin', 'admin', 'Administrator')
    try:
        yield store
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def test_default_admin_can_log_in(store: ClassroomStore) -> None:
    response = login(LoginRequest(username='admin', password='admin'), store=store)

    assert response['success'] is True
    assert response['token']
    assert response['user']['role'] == 'admin'
    assert response['user']['username'] == 'admin'
    assert 'password' not in response['user']


@pytest.mark.parametrize(
    ('username', 'password', 'role'),
    [
        ('ms_wang', 'chalk', 'teacher'),
        ('s2024001', '123456', 'student'),
    ],
)
def test_token_role_matches_stored_role_and_me_echoes_username(
    store: ClassroomStore,
    username: str,
    password: str,
    role: str,
) -> None:
    store.create_user(username=username, password=password, role=role, name='Someone')

    response = login(LoginRequest(username=username, password=password), store=store)
    payload = jwt_handler.decode_access_token(response['token'])
    me_response = me(current_user=CurrentUser(**payload))

    assert payload['role'] == role
    assert me_response['user']['username'] == username


@pytest.mark.parametrize(
    ('username', 'password'),
    [
        ('admin', 'wrong'),
        ('admin', ''),
        ('nobody', 'admin'),
        ('ADMIN', 'admin'),
    ],
)
def test_invalid_credentials_return_401(store: ClassroomStore, username: str, password: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        login(LoginRequest(username=username, password=password), store=store)

    assert exception_info.value.status_code == 401


def test_failed_login_body_has_no_token() -> None:
    response = asyncio.run(
        http_exception_handler(None, HTTPException(status_code=401, detail='Invalid username or password.'))
    )

    body = json.loads(response.body)
    assert response.status_code == 401
    assert body == {'success': False, 'message': 'Invalid username or password.'}
    assert 'token' not in body


def test_passwords_are_not_stored_in_plaintext(store: ClassroomStore) -> None:
    admin = store.db.query(User).filter(User.username == 'admin').first()

    assert admin.password != 'admin'
    assert admin.password.startswith('$pbkdf2-sha256$')


def test_default_admin_is_seeded_only_once(store: ClassroomStore) -> None:
    assert store.ensure_default_admin('admin', 'other', 'Administrator') is False
    assert store.db.query(User).filter(User.username == 'admin').count() == 1
