import os

from sqlalchemy import create_engine, inspect, text

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from wenjuan.database import ensure_classroom_schema, init_database  # noqa: E402


def _columns(engine, table_name: str) -> set[str]:
    return {column['name'] for column in inspect(engine).get_columns(table_name)}


def test_fresh_database_needs_no_migration() -> None:
    engine = create_engine('sqlite:///:memory:')

    init_database(engine)

    assert {'users', 'classes', 'subjects', 'questions'} <= set(inspect(engine).get_table_names())
    assert ensure_classroom_schema(engine) == []


def test_legacy_database_gets_missing_columns(tmp_path) -> None:
    database_url = f'sqlite:///{tmp_path / "legacy.db"}'
    legacy_engine = create_engine(database_url)
    with legacy_engine.begin() as connection:
        connection.execute(
            text(
                'CREATE TABLE users ('
                'id INTEGER PRIMARY KEY, username VARCHAR UNIQUE NOT NULL, '
                'password VARCHAR NOT NULL, role VARCHAR NOT NULL, name VARCHAR NOT NULL)'
            )
        )
        connection.execute(
            text("INSERT INTO users (username, password, role, name) VALUES ('old', 'x', 'teacher', 'Old')")
        )
        connection.execute(text('CREATE TABLE subjects (id INTEGER PRIMARY KEY, name VARCHAR, teacher_id INTEGER)'))
    legacy_engine.dispose()

    engine = create_engine(database_url)
    added = ensure_classroom_schema(engine)

    assert added == [
        'users.email',
        'users.class_id',
        'users.created_at',
        'subjects.background',
        'subjects.status',
        'subjects.created_at',
    ]
    assert {'email', 'class_id', 'created_at'} <= _columns(engine, 'users')
    with engine.connect() as connection:
        assert connection.execute(text("SELECT status FROM subjects")).fetchall() == []
        assert connection.execute(text("SELECT username, class_id FROM users")).fetchall() == [('old', None)]

    # Checked once per engine; a fresh engine on the upgraded file finds nothing to add.
    assert ensure_classroom_schema(engine) == []
    engine.dispose()
    assert ensure_classroom_schema(create_engine(database_url)) == []
