from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from starlette.routing import compile_path

from wenjuan.auth import jwt_handler

# Missing or non-Bearer headers are reported as 401 by the guard itself.
security = HTTPBearer(auto_error=False)

PUBLIC = 'public'
AUTHENTICATED = 'authenticated'
ADMIN = 'admin'
TEACHER = 'teacher'
STUDENT = 'student'

# Every mounted /api route must appear here; anything missing is refused.
# Role levels are exact matches: an admin token is not accepted on teacher routes.
ROUTE_ACCESS: dict[tuple[str, str], str] = {
    ('POST', '/api/login'): PUBLIC,
    ('GET', '/api/me'): AUTHENTICATED,

    ('GET', '/api/stats'): ADMIN,
    ('GET', '/api/admin/stats'): ADMIN,

    ('GET', '/api/users'): ADMIN,
    ('POST', '/api/users'): ADMIN,
    ('PUT', '/api/users'): ADMIN,
    ('PUT', '/api/users/{user_id}'): ADMIN,
    ('DELETE', '/api/users/{user_id}'): ADMIN,

    ('GET', '/api/classes'): ADMIN,
    ('POST', '/api/classes'): ADMIN,
    ('PUT', '/api/classes'): ADMIN,
    ('GET', '/api/classes/{class_id}'): ADMIN,
    ('PUT', '/api/classes/{class_id}'): ADMIN,
    ('DELETE', '/api/classes/{class_id}'): ADMIN,
    ('GET', '/api/classes/{class_id}/students'): ADMIN,
    ('POST', '/api/classes/{class_id}/students'): ADMIN,
    ('POST', '/api/classes/{class_id}/students/import'): ADMIN,

    ('GET', '/api/teacher/classes'): TEACHER,
    ('GET', '/api/subjects'): TEACHER,
    ('POST', '/api/subjects'): TEACHER,
    ('GET', '/api/subjects/{subject_id}'): TEACHER,
    ('PUT', '/api/subjects/{subject_id}'): TEACHER,
    ('DELETE', '/api/subjects/{subject_id}'): TEACHER,
    ('GET', '/api/subjects/{subject_id}/questions'): TEACHER,
    ('POST', '/api/subjects/{subject_id}/questions'): TEACHER,
    ('DELETE', '/api/questions/{question_id}'): TEACHER,

    ('GET', '/api/student/profile'): STUDENT,
}


class CurrentUser(BaseModel):
    id: int
    username: str
    role: str
    name: str


# Matched against the concrete request path, never the mounted route object.
_ACCESS_PATTERNS = [
    (method, compile_path(template)[0], access)
    for (method, template), access in ROUTE_ACCESS.items()
]


def required_access(method: str, path: str) -> str | None:
    method = method.upper()
    for route_method, pattern, access in _ACCESS_PATTERNS:
        if route_method == method and pattern.match(path):
            return access
    return None


def request_path(request: Request) -> str:
    path = request.url.path
    root_path = request.scope.get('root_path') or ''
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path


def check_access(
    access: str | None,
    credentials: HTTPAuthorizationCredentials | None,
) -> CurrentUser | None:
    """Apply one access level to the presented credentials.

    Returns the decoded user for guarded levels and None for public routes.
    """
    if access == PUBLIC:
        return None
    if access is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Forbidden')

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Unauthorized',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    payload = jwt_handler.decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Unauthorized',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    user = CurrentUser(**payload)
    if access != AUTHENTICATED and user.role != access:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Forbidden')
    return user


def authorize(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser | None:
    return check_access(required_access(request.method, request_path(request)), credentials)


def get_current_user(user: CurrentUser | None = Depends(authorize)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')
    return user
