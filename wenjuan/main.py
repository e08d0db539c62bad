import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from wenjuan.auth.dependencies import authorize
from wenjuan.core import config
from wenjuan.database import SessionLocal, init_database
from wenjuan.routes import (
    admin_routes,
    auth_routes,
    class_routes,
    student_routes,
    teacher_routes,
    user_routes,
)
from wenjuan.store import ClassroomStore

app = FastAPI(title='Wenjuan Classroom API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'message': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get('msg', 'Invalid request.') if errors else 'Invalid request.'
    return JSONResponse(
        status_code=422,
        content={
            'success': False,
            'message': message,
            'errors': [{'loc': list(error.get('loc', ())), 'msg': error.get('msg')} for error in errors],
        },
    )


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_database()
        db = SessionLocal()
        try:
            created = ClassroomStore(db).ensure_default_admin(
                config.DEFAULT_ADMIN_USERNAME,
                config.DEFAULT_ADMIN_PASSWORD,
                config.DEFAULT_ADMIN_NAME,
            )
        finally:
            db.close()
        if created:
            logger.info('Created default admin user %r', config.DEFAULT_ADMIN_USERNAME)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'Wenjuan Classroom API Running'}


API_PREFIX = '/api'
API_ROUTERS = (
    auth_routes.router,
    admin_routes.router,
    user_routes.router,
    class_routes.router,
    teacher_routes.router,
    student_routes.router,
)

# One guard for every /api route; the access level comes from ROUTE_ACCESS.
for api_router in API_ROUTERS:
    app.include_router(api_router, prefix=API_PREFIX, dependencies=[Depends(authorize)])
