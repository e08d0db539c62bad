from fastapi import HTTPException, status

from wenjuan.auth.dependencies import CurrentUser
from wenjuan.core import config
from wenjuan.models.subject import Subject


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL.',
    )


def not_found(label: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f'{label} not found.')


def ensure_subject_owner(subject: Subject, current_user: CurrentUser) -> None:
    # Off by default: any teacher may work with any subject id.
    if not config.ENFORCE_SUBJECT_OWNERSHIP:
        return
    if subject.teacher_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the owning teacher can access this subject.',
        )
