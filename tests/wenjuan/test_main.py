import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from wenjuan.database import Base, init_database  # noqa: E402
from wenjuan.main import app  # noqa: E402
from wenjuan.store import ClassroomStore, get_store  # noqa: E402


@pytest.fixture
def client():
    # One shared connection so every request sees the same in-memory database.
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_database(engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    seed = testing_session_local()
    try:
        store = ClassroomStore(seed)
        store.ensure_default_admin('admin', 'admin-pass', 'Administrator')
        store.create_user(username='ms_wang', password='teach-pass', role='teacher', name='Wang Fang')
        store.create_user(username='s1', password='123456', role='student', name='Student One')
    finally:
        seed.close()

    def override_get_store():
        db = testing_session_local()
        try:
            yield ClassroomStore(db)
        finally:
            db.close()

    app.dependency_overrides[get_store] = override_get_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_store, None)
        Base.metadata.drop_all(bind=engine)


def _auth_headers(client: TestClient, username: str, password: str) -> dict:
    response = client.post('/api/login', json={'username': username, 'password': password})
    assert response.status_code == 200
    return {'Authorization': f'Bearer {response.json()["token"]}'}


def test_health_route_is_public(client: TestClient) -> None:
    response = client.get('/')

    assert response.status_code == 200


def test_login_then_me_returns_the_caller(client: TestClient) -> None:
    login = client.post('/api/login', json={'username': 'admin', 'password': 'admin-pass'})
    body = login.json()

    assert login.status_code == 200
    assert body['success'] is True
    assert body['user'] == {'id': body['user']['id'], 'username': 'admin', 'role': 'admin', 'name': 'Administrator'}

    me = client.get('/api/me', headers={'Authorization': f'Bearer {body["token"]}'})

    assert me.status_code == 200
    assert me.json()['user']['username'] == 'admin'
    assert me.json()['user']['role'] == 'admin'


def test_failed_login_returns_structured_error_without_token(client: TestClient) -> None:
    response = client.post('/api/login', json={'username': 'admin', 'password': 'wrong'})

    assert response.status_code == 401
    assert response.json() == {'success': False, 'message': 'Invalid username or password.'}


def test_missing_token_is_unauthorized(client: TestClient) -> None:
    response = client.get('/api/me')

    assert response.status_code == 401
    assert response.json() == {'success': False, 'message': 'Unauthorized'}
    assert response.headers['www-authenticate'] == 'Bearer'


@pytest.mark.parametrize(
    'authorization',
    ['Bearer not-a-jwt', 'Bearer', 'Token abc.def.ghi', 'not-even-a-scheme'],
)
def test_malformed_authorization_is_unauthorized(client: TestClient, authorization: str) -> None:
    response = client.get('/api/users', headers={'Authorization': authorization})

    assert response.status_code == 401
    assert response.json()['success'] is False


def test_teacher_token_on_admin_route_is_forbidden(client: TestClient) -> None:
    headers = _auth_headers(client, 'ms_wang', 'teach-pass')

    response = client.get('/api/users', headers=headers)

    assert response.status_code == 403
    assert response.json() == {'success': False, 'message': 'Forbidden'}


def test_admin_token_on_teacher_route_is_forbidden(client: TestClient) -> None:
    headers = _auth_headers(client, 'admin', 'admin-pass')

    response = client.get('/api/teacher/classes', headers=headers)

    assert response.status_code == 403


def test_admin_lists_users_without_passwords(client: TestClient) -> None:
    headers = _auth_headers(client, 'admin', 'admin-pass')

    response = client.get('/api/users', headers=headers)

    assert response.status_code == 200
    assert {user['username'] for user in response.json()} == {'admin', 'ms_wang', 's1'}
    assert all('password' not in user for user in response.json())


def test_routes_with_path_parameters_are_guarded(client: TestClient) -> None:
    admin = _auth_headers(client, 'admin', 'admin-pass')
    teacher = _auth_headers(client, 'ms_wang', 'teach-pass')
    created = client.post('/api/users', json={'username': 'temp', 'name': 'Temp', 'role': 'student'}, headers=admin)
    user_id = created.json()['id']

    assert client.delete(f'/api/users/{user_id}', headers=teacher).status_code == 403
    assert client.delete(f'/api/users/{user_id}', headers=admin).json() == {'success': True}


def test_teacher_manages_subjects_and_questions(client: TestClient) -> None:
    headers = _auth_headers(client, 'ms_wang', 'teach-pass')

    subject = client.post('/api/subjects', json={'name': 'Reading habits'}, headers=headers)
    subject_id = subject.json()['id']
    question = client.post(
        f'/api/subjects/{subject_id}/questions',
        json={'text': 'Pick one', 'type': 'single', 'options': '["A", "B"]'},
        headers=headers,
    )
    questions = client.get(f'/api/subjects/{subject_id}/questions', headers=headers)

    assert subject.status_code == 201
    assert question.status_code == 201
    assert [item['options'] for item in questions.json()] == [['A', 'B']]


def test_student_reaches_profile_only(client: TestClient) -> None:
    headers = _auth_headers(client, 's1', '123456')

    assert client.get('/api/student/profile', headers=headers).json()['username'] == 's1'
    assert client.get('/api/subjects', headers=headers).status_code == 403


def test_roster_upload_through_the_app(client: TestClient) -> None:
    headers = _auth_headers(client, 'admin', 'admin-pass')
    class_id = client.post('/api/classes', json={'name': 'Stats101'}, headers=headers).json()['id']
    roster = b'username,name,email\nnew_1,New One,\ns1,Duplicate,\n,Nameless,\n'

    response = client.post(
        f'/api/classes/{class_id}/students/import',
        files={'file': ('roster.csv', roster, 'text/csv')},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()['importedCount'] == 1
    assert len(response.json()['errors']) == 2


def test_validation_errors_use_the_structured_body(client: TestClient) -> None:
    response = client.post('/api/login', json={})
    body = response.json()

    assert response.status_code == 422
    assert body['success'] is False
    assert isinstance(body['message'], str)
    assert body['errors']


def test_unknown_api_route_uses_the_structured_body(client: TestClient) -> None:
    response = client.get('/api/does-not-exist')

    assert response.status_code == 404
    assert response.json() == {'success': False, 'message': 'Not Found'}
