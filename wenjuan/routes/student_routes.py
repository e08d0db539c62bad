from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from wenjuan.auth.dependencies import CurrentUser, get_current_user
from wenjuan.routes.common import database_unavailable, not_found
from wenjuan.store import ClassroomStore, get_store, user_row

router = APIRouter(tags=['student'])


@router.get('/student/profile')
def get_student_profile(
    current_user: CurrentUser = Depends(get_current_user),
    store: ClassroomStore = Depends(get_store),
):
    """Landing data for the student portal; surveys are not served to students yet."""
    try:
        student = store.get_user(current_user.id)
        if student is None:
            raise not_found('User')

        school_class = store.get_class(student.class_id) if student.class_id is not None else None
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        **user_row(student),
        'class_name': school_class.name if school_class else None,
    }
