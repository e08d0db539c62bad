from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.routes.common import database_unavailable
from wenjuan.store import ClassroomStore, get_store

router = APIRouter(tags=['admin'])


@router.get('/stats')
@router.get('/admin/stats')
def get_stats(store: ClassroomStore = Depends(get_store)):
    try:
        return {
            'classes': store.count_classes(),
            'teachers': store.count_users('teacher'),
            'students': store.count_users('student'),
        }
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
