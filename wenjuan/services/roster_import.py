"""Bulk creation of student accounts from an uploaded roster file.

The roster is comma separated text with one ``username,name,email`` row per
line and an optional header row. Rows are processed one at a time and each
good row is committed on its own, so a bad row never undoes earlier ones and
never stops later ones.
"""

import logging
from dataclasses import dataclass, field

from wenjuan.store import ClassroomStore, DuplicateUsernameError

logger = logging.getLogger(__name__)


@dataclass
class RosterRow:
    line_number: int
    username: str
    name: str
    email: str | None


@dataclass
class ImportResult:
    imported_count: int = 0
    errors: list[str] = field(default_factory=list)

    def as_response(self) -> dict:
        return {
            'success': True,
            'importedCount': self.imported_count,
            'errors': self.errors,
        }


def split_roster_lines(content: str) -> list[tuple[int, str]]:
    """Return (line_number, line) pairs for the data rows of a roster.

    Line numbers are 1-based positions in the file. The first line is
    dropped when it looks like a header, and blank lines are skipped.
    """
    lines = content.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    start = 1 if lines and 'username' in lines[0].lower() else 0

    return [
        (index + 1, line)
        for index, line in enumerate(lines)
        if index >= start and line.strip()
    ]


def parse_roster_line(line_number: int, line: str) -> RosterRow:
    fields = [part.strip() for part in line.split(',')]
    username = fields[0] if len(fields) > 0 else ''
    name = fields[1] if len(fields) > 1 else ''
    email = fields[2] if len(fields) > 2 and fields[2] else None
    return RosterRow(line_number=line_number, username=username, name=name, email=email)


def import_students(
    store: ClassroomStore,
    class_id: int,
    content: str,
    default_password: str,
    max_rows: int | None = None,
) -> ImportResult:
    rows = split_roster_lines(content)
    if max_rows is not None and len(rows) > max_rows:
        raise ValueError(f'Roster has {len(rows)} rows; at most {max_rows} can be imported at once.')

    result = ImportResult()

    for line_number, line in rows:
        row = parse_roster_line(line_number, line)

        missing = [label for label, value in (('username', row.username), ('name', row.name)) if not value]
        if missing:
            result.errors.append(
                f'Line {line_number}: missing required field ({", ".join(missing)}); row skipped'
            )
            continue

        if store.username_exists(row.username):
            result.errors.append(f'Line {line_number}: username "{row.username}" already exists')
            continue

        try:
            store.create_user(
                username=row.username,
                password=default_password,
                role='student',
                name=row.name,
                email=row.email,
                class_id=class_id,
            )
        except DuplicateUsernameError:
            result.errors.append(f'Line {line_number}: username "{row.username}" already exists')
            continue

        result.imported_count += 1

    logger.info(
        'Roster import into class %s: %s imported, %s rejected',
        class_id,
        result.imported_count,
        len(result.errors),
    )
    return result
