"""
Django-Pageable Page Assembler

Applies request parameters to a queryable source and packages the result
as a Page.

Steps:
1. Eager-load directives are passed to the source unchanged
2. The filter string is parsed and applied as one predicate
3. The sort string is applied as a multi-key ordering (not for counts)
4. Matching records are counted
5. One page of records is sliced out and materialized
6. Counters are computed and the Page is returned

Every parsing and validation error is raised during steps 2-3, before
the source is counted or read.

Provides:
- PageAssembler class for OOP-style usage
- to_paged / ato_paged / count_by_filter / acount_by_filter functions
"""

import logging

from django_pageable.exceptions import InvalidArgument
from django_pageable.fields import field_registry
from django_pageable.ordering import build_ordering
from django_pageable.page import Page
from django_pageable.predicates import build_predicate
from django_pageable.sources import as_source

logger = logging.getLogger("django_pageable")


class PageAssembler:
    """
    Builds pages from sources and request parameters.

    Example:
        # Django queryset
        params = RequestParameters.from_query(request.GET)
        page = PageAssembler().to_paged(Article.objects.all(), params, eager_load=["author", "tags"])

        # In-memory records
        page = PageAssembler().to_paged(posts, params, model=Post)

        # Async views
        page = await PageAssembler().ato_paged(Article.objects.all(), params)
    """

    def __init__(self, registry=None):
        self.registry = registry or field_registry

    def _check_arguments(self, source, params):
        if source is None:
            raise InvalidArgument("Source cannot be None.", argument="source")
        if params is None:
            raise InvalidArgument("Request parameters cannot be None.", argument="params")

    def _record_type(self, source):
        if source.model is None:
            raise InvalidArgument(
                "Cannot filter or sort a source without a record type; pass model=...",
                argument="model",
            )
        return source.model

    def prepare(self, source, params, eager_load=None, model=None, ordered=True):
        """
        Apply eager loading, filter and (optionally) sort to a source.

        Args:
            source: QueryableSource, QuerySet, Manager, model class or list
            params: RequestParameters
            eager_load: Eager-loading directives, passed through to the source
            model: Record type for list sources (inferred from the first item)
            ordered: Whether to apply the sort string

        Returns:
            QueryableSource ready to count and slice
        """
        self._check_arguments(source, params)
        source = as_source(source, model=model)
        source = source.apply_eager_load(eager_load)

        if params.has_filter:
            predicate = build_predicate(self._record_type(source), params.parse_filters(), self.registry)
            source = source.apply_predicate(predicate)

        if ordered and params.has_sort:
            keys = build_ordering(self._record_type(source), params.sort, self.registry)
            source = source.apply_ordering(keys)

        return source

    def _build_page(self, source, params, data, elements):
        page = Page.of(data, current=params.page, size=params.size, elements=elements)
        logger.debug(
            f"Paged {getattr(source.model, '__name__', source.model)}: "
            f"page={page.current} size={page.size} elements={page.elements} pages={page.pages}"
        )
        return page

    def to_paged(self, source, params, eager_load=None, model=None):
        """
        Return one Page of ``source`` for ``params``.

        Raises:
            InvalidArgument: source or params is None
            ValidationError, FilterFormatError, SortFormatError,
            PropertyNotFound, PathTooDeep, UnsupportedSortPath,
            ValueConversionError, EmptyFilterValues, ValueRequired:
                invalid filter or sort, raised before the source is queried
        """
        source = self.prepare(source, params, eager_load=eager_load, model=model)
        elements = source.count()
        data = source.materialize_slice(params.offset, params.size)
        return self._build_page(source, params, data, elements)

    async def ato_paged(self, source, params, eager_load=None, model=None):
        """
        Async variant of ``to_paged``.

        Suspends only while counting and while reading the slice. If the
        task is cancelled at either point, ``asyncio.CancelledError``
        propagates and no page is returned.
        """
        source = self.prepare(source, params, eager_load=eager_load, model=model)
        elements = await source.acount()
        data = await source.amaterialize_slice(params.offset, params.size)
        return self._build_page(source, params, data, elements)

    def count_by_filter(self, source, params, model=None):
        """Count records of ``source`` matching the filter of ``params``; sort is ignored."""
        source = self.prepare(source, params, model=model, ordered=False)
        elements = source.count()
        logger.debug(f"Counted {elements} {getattr(source.model, '__name__', source.model)} records")
        return elements

    async def acount_by_filter(self, source, params, model=None):
        """Async variant of ``count_by_filter``."""
        source = self.prepare(source, params, model=model, ordered=False)
        elements = await source.acount()
        logger.debug(f"Counted {elements} {getattr(source.model, '__name__', source.model)} records")
        return elements


def to_paged(source, params, eager_load=None, model=None, registry=None):
    """
    Return one Page of ``source`` for ``params``.

    Convenience function that wraps PageAssembler.

    Example:
        page = to_paged(Article.objects.all(), RequestParameters(page=2, size=5, filter="title[django]"))
        page.data, page.elements, page.pages
    """
    return PageAssembler(registry).to_paged(source, params, eager_load=eager_load, model=model)


async def ato_paged(source, params, eager_load=None, model=None, registry=None):
    """Async variant of ``to_paged``."""
    return await PageAssembler(registry).ato_paged(source, params, eager_load=eager_load, model=model)


def count_by_filter(source, params, model=None, registry=None):
    """Count records of ``source`` matching the filter of ``params``."""
    return PageAssembler(registry).count_by_filter(source, params, model=model)


async def acount_by_filter(source, params, model=None, registry=None):
    """Async variant of ``count_by_filter``."""
    return await PageAssembler(registry).acount_by_filter(source, params, model=model)
