import json


def normalize_options(value) -> list[str] | None:
    """Accept options as a list or as a pre-serialized string and return a list.

    Strings holding a JSON array are decoded; any other string is read as a
    comma separated list, which is what the question editor types in.
    """
    if value is None:
        return None

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.startswith('['):
            return [part.strip() for part in stripped.split(',') if part.strip()]
        try:
            value = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise ValueError('Options must be a JSON list of strings.') from exc

    if not isinstance(value, (list, tuple)):
        raise ValueError('Options must be a list of strings.')

    return [str(option) for option in value]


def serialize_options(options: list[str] | None) -> str | None:
    if options is None:
        return None
    return json.dumps(options, ensure_ascii=False)


def parse_stored_options(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(decoded, list):
        return None
    return [str(option) for option in decoded]
