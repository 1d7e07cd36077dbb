"""
Django-Pageable Filter Lowering

Turns predicate trees into Django Q objects and sort keys into
``order_by`` arguments.

Supports:
- Equality (exact lookup)
- Case-insensitive substring (icontains)
- Closed or half-open ranges (gte / lte)
- Collection tests via a primary-key subquery, so a row with several
  matching elements is returned once
"""

import datetime
import functools
import operator

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from django_pageable.predicates import And, Any, Contains, Equals, Or, Range


def field_lookup(field, prefix=()):
    """
    Convert a field tuple to Django's double underscore format.

    Examples:
        >>> field_lookup(("author", "name"))
        'author__name'
        >>> field_lookup(("name",), prefix=("tags",))
        'tags__name'
    """
    return "__".join(prefix + tuple(field))


def db_value(value):
    """Make naive datetimes aware when time zone support is active."""
    if isinstance(value, datetime.datetime) and settings.USE_TZ and timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def _lower(model, predicate, prefix):
    if isinstance(predicate, And):
        return functools.reduce(operator.and_, (_lower(model, item, prefix) for item in predicate.items))

    if isinstance(predicate, Or):
        return functools.reduce(operator.or_, (_lower(model, item, prefix) for item in predicate.items))

    if isinstance(predicate, Any):
        inner = _lower(model, predicate.inner, prefix + tuple(predicate.collection))
        return Q(pk__in=model._base_manager.filter(inner).values("pk"))

    if not isinstance(predicate, (Contains, Equals, Range)):
        raise TypeError(f"Unknown predicate node: {type(predicate).__name__}")

    lookup = field_lookup(predicate.field, prefix)

    if isinstance(predicate, Contains):
        return Q(**{f"{lookup}__icontains": predicate.value})

    if isinstance(predicate, Equals):
        return Q(**{lookup: db_value(predicate.value)})

    # Range
    q = Q()
    if predicate.lower is not None:
        q &= Q(**{f"{lookup}__gte": db_value(predicate.lower)})
    if predicate.upper is not None:
        q &= Q(**{f"{lookup}__lte": db_value(predicate.upper)})
    return q


def build_q_object(model, predicate):
    """
    Build a Django Q object from a predicate tree.

    Args:
        model: Django model the predicate is rooted at
        predicate: Predicate or None

    Returns:
        Django Q object (empty Q for None)

    Examples:
        >>> build_q_object(Article, Contains(("title",), "test"))
        <Q: (AND: ('title__icontains', 'test'))>

        >>> build_q_object(Article, Range(("created_at",), lower=datetime(2022, 9, 21)))
        <Q: (AND: ('created_at__gte', datetime(2022, 9, 21, 0, 0, tzinfo=...)))>
    """
    if predicate is None:
        return Q()
    return _lower(model, predicate, ())


def build_order_by(keys):
    """
    Convert sort keys into ``order_by`` arguments.

    Examples:
        >>> build_order_by([SortKey("status"), SortKey("created_at", descending=True)])
        ['status', '-created_at']
    """
    return [f"-{field_lookup(key.field)}" if key.descending else field_lookup(key.field) for key in keys]
