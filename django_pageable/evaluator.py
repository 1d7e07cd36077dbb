"""
Django-Pageable In-Memory Evaluator

Evaluates predicate trees and sort keys against plain Python records, for
sources that are already materialized (lists of dataclasses, cached rows,
test fixtures).
"""

import datetime
import enum

from django.conf import settings
from django.utils import timezone

from django_pageable.predicates import And, Any, Contains, Equals, Or, Range


def get_value(obj, field):
    """
    Follow a tuple of attribute names; None if any step is missing.

    Examples:
        >>> get_value(post, ("author", "name"))
        'Aisha Khan'
        >>> get_value(post, ())  # the object itself
        <Post ...>
    """
    value = obj
    for name in field:
        if value is None:
            return None
        value = getattr(value, name, None)
    return value


def _local_timezone():
    if settings.configured:
        return timezone.get_current_timezone()
    return datetime.timezone.utc


def align_datetime(bound, value):
    """
    Give a datetime bound the same awareness as the record value.

    A naive bound takes the time zone of an aware value; an aware bound
    compared with a naive value is converted to local time first.
    """
    if not isinstance(bound, datetime.datetime) or not isinstance(value, datetime.datetime):
        return bound
    if timezone.is_aware(value) and timezone.is_naive(bound):
        return timezone.make_aware(bound, value.tzinfo)
    if timezone.is_naive(value) and timezone.is_aware(bound):
        return timezone.make_naive(bound, _local_timezone())
    return bound


def _in_range(value, lower, upper):
    if value is None:
        return False
    lower = align_datetime(lower, value)
    upper = align_datetime(upper, value)
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def matches(predicate, obj):
    """
    Check whether a record satisfies a predicate.

    A None predicate matches everything.
    """
    if predicate is None:
        return True

    if isinstance(predicate, And):
        return all(matches(item, obj) for item in predicate.items)

    if isinstance(predicate, Or):
        return any(matches(item, obj) for item in predicate.items)

    if isinstance(predicate, Any):
        elements = get_value(obj, predicate.collection) or ()
        return any(matches(predicate.inner, element) for element in elements)

    if isinstance(predicate, Contains):
        value = get_value(obj, predicate.field)
        return isinstance(value, str) and predicate.value.casefold() in value.casefold()

    if isinstance(predicate, Equals):
        return get_value(obj, predicate.field) == predicate.value

    if isinstance(predicate, Range):
        return _in_range(get_value(obj, predicate.field), predicate.lower, predicate.upper)

    raise TypeError(f"Unknown predicate node: {type(predicate).__name__}")


def _sort_key(field):
    def key(obj):
        value = get_value(obj, field)
        if isinstance(value, enum.Enum):
            value = value.value
        # None sorts before any value
        return (value is not None, value)

    return key


def sort_records(records, keys):
    """
    Sort records by several keys, the first key being the primary order.

    Relies on the stability of ``sorted``: sorting by the last key first
    and the primary key last leaves ties ordered by the later keys.
    """
    records = list(records)
    for key in reversed(keys):
        records = sorted(records, key=_sort_key(key.field), reverse=key.descending)
    return records
