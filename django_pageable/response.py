"""
Django-Pageable Response Utilities

Renders page records into JSON-ready dicts, selecting fields with the same
dotted paths used by filters and sorts.

Features:
- Nested dicts built from dotted field lists
- Collections (lists, related managers) rendered element by element
- Common scalar types turned into JSON values
"""

import enum

from django.db.models import Manager


def _step(value, name):
    # Related managers (reverse FK, many-to-many) expose their rows via all()
    if isinstance(value, Manager):
        value = list(value.all())
    if isinstance(value, (list, tuple)):
        return [_step(item, name) for item in value]
    if value is None:
        return None
    return getattr(value, name, None)


def get_field_value(obj, field_path):
    """
    Read the value at a dotted path; None once any step is missing.

    A step through a collection yields a list with one entry per element.

    Examples:
        >>> get_field_value(article, "author.name")
        'Aisha Khan'
        >>> get_field_value(article, "tags.name")
        ['release', 'docs']
    """
    value = obj
    for part in field_path.split("."):
        value = _step(value, part)
    return value


def serialize_value(value):
    """
    Turn a field value into something ``json.dumps`` accepts.

    date/datetime/time become ISO strings, enums their value, UUID and
    Decimal strings. A related object that was not expanded into fields
    is rendered as its primary key.
    """
    if value is None:
        return None

    if isinstance(value, Manager):
        value = list(value.all())

    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]

    if hasattr(value, "isoformat"):
        return value.isoformat()

    if isinstance(value, enum.Enum):
        return value.value

    # UUID (int and float also have hex)
    if hasattr(value, "hex") and not isinstance(value, (int, float)):
        return str(value)

    # Decimal
    if hasattr(value, "as_tuple"):
        return str(value)

    if hasattr(value, "pk"):
        return str(value.pk)

    return value


def build_nested_response(obj, field_paths):
    """
    Render one record as a nested dict of the requested fields.

    Args:
        obj: Model instance or record
        field_paths: Dotted paths, e.g. ["id", "author.name", "author.email"]

    Returns:
        Dict keyed by path segment, or None for a None record

    Example:
        >>> build_nested_response(article, ["id", "author.name", "author.email"])
        {'id': 1, 'author': {'name': 'Aisha Khan', 'email': 'aisha@example.com'}}
    """
    if obj is None:
        return None

    result = {}
    for field_path in field_paths:
        *parents, leaf = field_path.split(".")
        target = result
        for part in parents:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                # "author" was requested as a plain value before "author.name"
                break
        else:
            target[leaf] = serialize_value(get_field_value(obj, field_path))
    return result
