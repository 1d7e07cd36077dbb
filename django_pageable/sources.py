"""
Django-Pageable Queryable Sources

The contract the page assembler needs from a data source, and two
implementations of it:

- QuerySetSource wraps a Django QuerySet; predicates become Q objects and
  counting / slicing run in the database.
- InMemorySource wraps a sequence of records; predicates are evaluated in
  Python.

Sources are immutable: every ``apply_*`` call returns a new source, the way
QuerySet methods return new querysets.
"""

import abc
import asyncio

from django.db.models import Manager, QuerySet

from django_pageable.evaluator import matches, sort_records
from django_pageable.exceptions import InvalidArgument
from django_pageable.fields import is_django_model
from django_pageable.filters import build_order_by, build_q_object


class QueryableSource(abc.ABC):
    """
    A data source the page assembler can filter, order, count and slice.

    Subclasses expose the record type as ``model``.
    """

    model = None

    @abc.abstractmethod
    def apply_eager_load(self, directives):
        """Return a source with eager-loading directives applied."""

    @abc.abstractmethod
    def apply_predicate(self, predicate):
        """Return a source restricted to records matching ``predicate``."""

    @abc.abstractmethod
    def apply_ordering(self, keys):
        """Return a source ordered by ``keys`` (list of SortKey)."""

    @abc.abstractmethod
    def count(self):
        """Number of records in the source."""

    @abc.abstractmethod
    async def acount(self):
        """Async variant of ``count``."""

    @abc.abstractmethod
    def materialize_slice(self, offset, limit):
        """Tuple of at most ``limit`` records starting at ``offset``."""

    @abc.abstractmethod
    async def amaterialize_slice(self, offset, limit):
        """Async variant of ``materialize_slice``."""


class QuerySetSource(QueryableSource):
    """
    Source backed by a Django QuerySet.

    Example:
        source = QuerySetSource(Article.objects.filter(published=True))
        source.apply_predicate(predicate).count()
    """

    def __init__(self, queryset):
        self.queryset = queryset
        self.model = queryset.model

    def _clone(self, queryset):
        return type(self)(queryset)

    def apply_eager_load(self, directives):
        """
        Apply eager loading.

        ``directives`` is either a callable ``(queryset) -> queryset`` or an
        iterable of relation lookups. Lookups whose first relation is
        single-valued (ForeignKey, OneToOne) use ``select_related``; all
        others use ``prefetch_related``.
        """
        if not directives:
            return self
        if callable(directives):
            return self._clone(directives(self.queryset))

        if isinstance(directives, str):
            directives = [directives]

        select, prefetch = [], []
        for lookup in directives:
            model_field = self.model._meta.get_field(lookup.split("__")[0])
            if model_field.many_to_one or model_field.one_to_one:
                select.append(lookup)
            else:
                prefetch.append(lookup)

        queryset = self.queryset
        if select:
            queryset = queryset.select_related(*select)
        if prefetch:
            queryset = queryset.prefetch_related(*prefetch)
        return self._clone(queryset)

    def apply_predicate(self, predicate):
        if predicate is None:
            return self
        return self._clone(self.queryset.filter(build_q_object(self.model, predicate)))

    def apply_ordering(self, keys):
        if not keys:
            return self
        return self._clone(self.queryset.order_by(*build_order_by(keys)))

    def count(self):
        return self.queryset.count()

    async def acount(self):
        return await self.queryset.acount()

    def materialize_slice(self, offset, limit):
        return tuple(self.queryset[offset : offset + limit])

    async def amaterialize_slice(self, offset, limit):
        return tuple([obj async for obj in self.queryset[offset : offset + limit]])


class InMemorySource(QueryableSource):
    """
    Source backed by a sequence of records.

    Example:
        source = InMemorySource(posts, model=Post)
        source.apply_predicate(predicate).materialize_slice(0, 5)
    """

    def __init__(self, records, model=None):
        self.records = tuple(records)
        if model is None and self.records:
            model = type(self.records[0])
        self.model = model

    def _clone(self, records):
        return type(self)(records, model=self.model)

    def apply_eager_load(self, directives):
        # Records are already loaded
        return self

    def apply_predicate(self, predicate):
        if predicate is None:
            return self
        return self._clone(record for record in self.records if matches(predicate, record))

    def apply_ordering(self, keys):
        if not keys:
            return self
        return self._clone(sort_records(self.records, keys))

    def count(self):
        return len(self.records)

    async def acount(self):
        await asyncio.sleep(0)
        return self.count()

    def materialize_slice(self, offset, limit):
        return self.records[offset : offset + limit]

    async def amaterialize_slice(self, offset, limit):
        await asyncio.sleep(0)
        return self.materialize_slice(offset, limit)


def as_source(source, model=None):
    """
    Wrap a supported object as a QueryableSource.

    Accepts a QueryableSource (returned unchanged), a QuerySet, a Manager,
    a Django model class, or a list/tuple of records.

    Raises:
        InvalidArgument: source is None or of an unsupported type
    """
    if source is None:
        raise InvalidArgument("Source cannot be None.", argument="source")
    if isinstance(source, QueryableSource):
        return source
    if isinstance(source, QuerySet):
        return QuerySetSource(source)
    if isinstance(source, Manager):
        return QuerySetSource(source.all())
    if is_django_model(source):
        return QuerySetSource(source._default_manager.all())
    if isinstance(source, (list, tuple)):
        return InMemorySource(source, model=model)
    raise InvalidArgument(f"Unsupported source type: {type(source).__name__}", argument="source")
