"""
Django-Pageable: Filtered, Sorted, Paged Queries from Strings

Turns compact request strings into a filtered, sorted page of records.
Works on Django querysets and on in-memory sequences of records.

Example:
    from django_pageable import RequestParameters, to_paged

    params = RequestParameters(
        page=2,
        size=10,
        filter="title[django,python],created_at[2022-09-21,_],tags.name[release]",
        sort="status asc, created_at desc",
    )
    page = to_paged(Article.objects.all(), params)
    page.to_dict(fields=["id", "title", "author.name"])
"""

__version__ = "1.0.0"

# Request parameters
from django_pageable.request import FilterItem, RequestParameters, parse_filter

# Field registry and paths
from django_pageable.fields import FieldKind, FieldMeta, FieldRegistry, field_registry
from django_pageable.paths import ResolvedPath, resolve_element, resolve_path

# Predicates and ordering
from django_pageable.predicates import (
    And,
    Any,
    AnyOf,
    Contains,
    Equals,
    Or,
    Predicate,
    Range,
    build_predicate,
)
from django_pageable.ordering import SortKey, build_ordering, parse_sort

# Backends
from django_pageable.filters import build_order_by, build_q_object
from django_pageable.sources import InMemorySource, QueryableSource, QuerySetSource, as_source

# Pages
from django_pageable.page import Page
from django_pageable.paginator import (
    PageAssembler,
    acount_by_filter,
    ato_paged,
    count_by_filter,
    to_paged,
)

# Errors
from django_pageable.exceptions import (
    EmptyFilterValues,
    FilterFormatError,
    InvalidArgument,
    PageableError,
    PathTooDeep,
    PropertyNotFound,
    SortFormatError,
    UnsupportedSortPath,
    ValidationError,
    ValueConversionError,
    ValueRequired,
)

# Configuration
from django_pageable.conf import pageable_settings

__all__ = [
    # Version
    "__version__",
    # Request
    "FilterItem",
    "RequestParameters",
    "parse_filter",
    # Fields
    "FieldKind",
    "FieldMeta",
    "FieldRegistry",
    "field_registry",
    "ResolvedPath",
    "resolve_element",
    "resolve_path",
    # Predicates
    "And",
    "Any",
    "AnyOf",
    "Contains",
    "Equals",
    "Or",
    "Predicate",
    "Range",
    "build_predicate",
    # Ordering
    "SortKey",
    "build_ordering",
    "parse_sort",
    # Backends
    "build_order_by",
    "build_q_object",
    "InMemorySource",
    "QueryableSource",
    "QuerySetSource",
    "as_source",
    # Pages
    "Page",
    "PageAssembler",
    "acount_by_filter",
    "ato_paged",
    "count_by_filter",
    "to_paged",
    # Errors
    "EmptyFilterValues",
    "FilterFormatError",
    "InvalidArgument",
    "PageableError",
    "PathTooDeep",
    "PropertyNotFound",
    "SortFormatError",
    "UnsupportedSortPath",
    "ValidationError",
    "ValueConversionError",
    "ValueRequired",
    # Settings
    "pageable_settings",
]
