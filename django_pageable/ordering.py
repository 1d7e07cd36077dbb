"""
Django-Pageable Ordering

Parses sort strings such as ``"status asc, created_at desc"`` into an
ordered list of SortKey. The first key is the primary order; each later key
only breaks ties left by the keys before it.
"""

import dataclasses
import logging

from django_pageable.conf import pageable_settings
from django_pageable.exceptions import SortFormatError, UnsupportedSortPath
from django_pageable.fields import field_registry
from django_pageable.paths import resolve_path

logger = logging.getLogger("django_pageable")


@dataclasses.dataclass(frozen=True)
class SortKey:
    """One ``(property, direction)`` pair of a multi-key ordering."""

    property: str
    descending: bool = False

    @property
    def field(self):
        return tuple(self.property.split("."))


def parse_sort(sort):
    """
    Split a sort string into ``(path, descending)`` tuples.

    Tokens are comma-separated; each is a path optionally followed by a
    direction. Only ``desc`` (any case) means descending.

    Examples:
        >>> parse_sort("status asc,createdAt desc")
        [('status', False), ('createdAt', True)]
        >>> parse_sort("title")
        [('title', False)]
        >>> parse_sort("views DESC, , title")
        [('views', True), ('title', False)]

    Raises:
        SortFormatError: No token in the string
    """
    parsed = []
    for token in (sort or "").split(","):
        parts = token.split()
        if not parts:
            continue
        descending = len(parts) > 1 and parts[1].lower() == "desc"
        parsed.append((parts[0], descending))

    if not parsed:
        raise SortFormatError(f"Sort '{sort}' must contain at least one valid property.", sort=sort)
    return parsed


def build_ordering(model, sort, registry=None):
    """
    Build SortKeys for a sort string against a record type.

    Paths are resolved case-insensitively and returned with their
    canonical field names. Ordering by a field reached through a
    collection has no defined meaning and is rejected, as is ordering by
    a relation itself.

    Args:
        model: Root record type
        sort: Sort string
        registry: FieldRegistry (defaults to the shared registry)

    Returns:
        List of SortKey

    Raises:
        SortFormatError: Empty sort string
        PropertyNotFound: Unknown path segment
        PathTooDeep: Path longer than the depth policy allows
        UnsupportedSortPath: Path crosses a collection or ends on a relation
    """
    registry = registry or field_registry
    keys = []
    for path, descending in parse_sort(sort):
        resolved = resolve_path(model, path, registry)
        if resolved.is_collection:
            raise UnsupportedSortPath(
                f"Cannot sort by '{path}': ordering through collection '{resolved.leaf.name}' is not supported.",
                property=path,
            )
        if resolved.leaf.is_relation:
            raise UnsupportedSortPath(f"Cannot sort by '{path}': '{resolved.leaf.name}' is a relation.", property=path)
        keys.append(SortKey(resolved.dotted, descending))

    if pageable_settings.LOG_QUERIES:
        logger.info(f"Built ordering for {getattr(model, '__name__', model)}: {keys!r}")
    return keys
