import logging
from threading import Lock
from weakref import WeakSet

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from wenjuan.core import config


logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={'check_same_thread': False} if DATABASE_URL.startswith('sqlite') else {},
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_engines: WeakSet = WeakSet()

# Columns added after the first schema revision. Older database files are
# patched in place on startup.
USER_MIGRATION_STEPS = [
    ('email', 'ALTER TABLE users ADD COLUMN email VARCHAR'),
    ('class_id', 'ALTER TABLE users ADD COLUMN class_id INTEGER'),
    ('created_at', 'ALTER TABLE users ADD COLUMN created_at DATETIME'),
]
SUBJECT_MIGRATION_STEPS = [
    ('background', 'ALTER TABLE subjects ADD COLUMN background TEXT'),
    ('status', "ALTER TABLE subjects ADD COLUMN status VARCHAR DEFAULT 'draft'"),
    ('created_at', 'ALTER TABLE subjects ADD COLUMN created_at DATETIME'),
]
QUESTION_MIGRATION_STEPS = [
    ('options', 'ALTER TABLE questions ADD COLUMN options TEXT'),
    ('created_at', 'ALTER TABLE questions ADD COLUMN created_at DATETIME'),
]
INDEX_STATEMENTS = [
    'CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)',
    'CREATE INDEX IF NOT EXISTS idx_users_class_id ON users(class_id)',
    'CREATE INDEX IF NOT EXISTS idx_classes_teacher_id ON classes(teacher_id)',
    'CREATE INDEX IF NOT EXISTS idx_subjects_teacher_id ON subjects(teacher_id)',
    'CREATE INDEX IF NOT EXISTS idx_questions_subject_id ON questions(subject_id)',
]


def _apply_column_steps(connection, inspector, table_name: str, steps: list[tuple[str, str]]) -> list[str]:
    if table_name not in inspector.get_table_names():
        return []

    existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
    added: list[str] = []
    for column_name, statement in steps:
        if column_name not in existing_columns:
            connection.execute(text(statement))
            added.append(f'{table_name}.{column_name}')
    return added


def ensure_classroom_schema(bind: Engine | None = None) -> list[str]:
    """Bring an existing database file up to the current column set.

    Runs once per engine. Returns the list of ``table.column`` names that
    were added, which is empty for a freshly created database.
    """
    bind = bind or engine

    if bind in _checked_engines:
        return []

    with _schema_lock:
        if bind in _checked_engines:
            return []

        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        with bind.begin() as connection:
            added = _apply_column_steps(connection, inspector, 'users', USER_MIGRATION_STEPS)
            added += _apply_column_steps(connection, inspector, 'subjects', SUBJECT_MIGRATION_STEPS)
            added += _apply_column_steps(connection, inspector, 'questions', QUESTION_MIGRATION_STEPS)
            if {'users', 'classes', 'subjects', 'questions'} <= table_names:
                for statement in INDEX_STATEMENTS:
                    connection.execute(text(statement))

        if added:
            logger.info('Added missing columns: %s', ', '.join(added))

        _checked_engines.add(bind)
        return added


def init_database(bind: Engine | None = None) -> None:
    # Model modules register their tables on Base when imported.
    from wenjuan.models import question, school_class, subject, user  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    ensure_classroom_schema(bind)
