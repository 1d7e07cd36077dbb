"""
Django-Pageable Predicates

A small predicate tree built from parsed filter items, independent of any
storage backend. Backends lower the tree on their own: ``filters.py``
turns it into Django ``Q`` objects, ``evaluator.py`` evaluates it against
in-memory records.

Nodes:
- Equals(field, value)         field == value
- Contains(field, value)       case-insensitive substring
- Range(field, lower, upper)   lower <= field <= upper, either bound optional
- Any(collection, inner)       some element of the collection satisfies inner
- And(items) / Or(items)

``field`` is a tuple of canonical field names. Inside ``Any`` it is relative
to the element; the empty tuple is the element itself.

``Any`` shares its name with ``typing.Any``; code that also needs the typing
name can import the node as ``AnyOf``.
"""

import dataclasses
import logging

from django_pageable.conf import pageable_settings
from django_pageable.converters import convert
from django_pageable.exceptions import (
    EmptyFilterValues,
    FilterFormatError,
    ValueConversionError,
    ValueRequired,
)
from django_pageable.fields import FieldKind, field_registry
from django_pageable.paths import resolve_element, resolve_path

logger = logging.getLogger("django_pageable")


class Predicate:
    """Base class for predicate nodes; supports ``&`` and ``|``."""

    def __and__(self, other):
        return And(_operands(And, self) + _operands(And, other))

    def __or__(self, other):
        return Or(_operands(Or, self) + _operands(Or, other))


def _operands(node_type, predicate):
    if isinstance(predicate, node_type):
        return predicate.items
    return (predicate,)


@dataclasses.dataclass(frozen=True)
class Equals(Predicate):
    field: tuple
    value: object


@dataclasses.dataclass(frozen=True)
class Contains(Predicate):
    field: tuple
    value: str


@dataclasses.dataclass(frozen=True)
class Range(Predicate):
    field: tuple
    lower: object = None
    upper: object = None


@dataclasses.dataclass(frozen=True)
class Any(Predicate):
    collection: tuple
    inner: Predicate


AnyOf = Any


@dataclasses.dataclass(frozen=True)
class And(Predicate):
    items: tuple


@dataclasses.dataclass(frozen=True)
class Or(Predicate):
    items: tuple


def combine(node_type, predicates):
    """
    Combine predicates left to right; a single predicate is returned as-is.

    Examples:
        >>> combine(Or, [Contains(("title",), "a")])
        Contains(field=('title',), value='a')
        >>> combine(Or, [Contains(("title",), "a"), Contains(("title",), "b")])
        Or(items=(Contains(field=('title',), value='a'), Contains(field=('title',), value='b')))
    """
    predicates = list(predicates)
    if not predicates:
        return None
    if len(predicates) == 1:
        return predicates[0]
    return node_type(tuple(predicates))


def is_blank(value):
    return value is None or not value.strip()


def _is_open_bound(value):
    return is_blank(value) or value.strip() == pageable_settings.DATE_PLACEHOLDER


def build_date_predicate(meta, field, item):
    """
    Build a Range from two value slots: ``[lower, upper]``.

    Either slot may be blank or the placeholder (``_``) for an open bound.

    Examples:
        ``created_at[2022-09-21,_]``   created_at >= 2022-09-21
        ``created_at[_,2022-09-21]``   created_at <= 2022-09-21
    """
    if len(item.values) < 2:
        raise ValueRequired(
            f"Date filter requires 2 values (use '{pageable_settings.DATE_PLACEHOLDER}' as placeholder). "
            f"Property: '{item.property}'.",
            property=item.property,
        )
    if len(item.values) > 2:
        raise FilterFormatError(
            f"Date filter accepts exactly 2 values (lower, upper). Property: '{item.property}'.",
            property=item.property,
        )

    lower_raw, upper_raw = item.values
    lower = None if _is_open_bound(lower_raw) else convert(meta, lower_raw.strip(), item.property)
    upper = None if _is_open_bound(upper_raw) else convert(meta, upper_raw.strip(), item.property)

    if lower is None and upper is None:
        raise ValueRequired(
            f"Date filter must have at least one valid date value for property '{item.property}'.",
            property=item.property,
        )
    return Range(field, lower, upper)


def build_leaf_predicate(meta, field, item):
    """
    Build the predicate of one filter item against a resolved leaf field.

    Strings match by substring; other scalars and enums by equality.
    Several values are ORed together; blank values are skipped.
    """
    if meta.kind is FieldKind.DATETIME:
        return build_date_predicate(meta, field, item)

    if meta.kind in (FieldKind.RELATION, FieldKind.COLLECTION):
        raise ValueConversionError(
            f"Cannot filter property '{item.property}' by value: '{meta.name}' is not a scalar field.",
            property=item.property,
        )

    values = [value.strip() for value in item.values if not is_blank(value)]
    if meta.kind is FieldKind.STRING:
        comparisons = [Contains(field, value) for value in values]
    else:
        comparisons = [Equals(field, convert(meta, value, item.property)) for value in values]

    predicate = combine(Or, comparisons)
    if predicate is None:
        raise EmptyFilterValues(
            f"Filter must have at least one valid value for property '{item.property}'.",
            property=item.property,
        )
    return predicate


def build_item_predicate(model, item, registry=None):
    """
    Build the predicate of one FilterItem against a root record type.

    A path that stops at a collection yields ``Any`` over the collection,
    with the leaf rules applied to the clean-path field of each element.
    """
    if not item.values:
        raise EmptyFilterValues(f"Filter values cannot be empty for property '{item.property}'.", property=item.property)

    resolved = resolve_path(model, item.property, registry)
    if resolved.is_collection:
        element, element_field = resolve_element(resolved, registry)
        return Any(resolved.field, build_leaf_predicate(element, element_field, item))
    return build_leaf_predicate(resolved.leaf, resolved.field, item)


def build_predicate(model, filters, registry=None):
    """
    Build one predicate from a sequence of FilterItems.

    Items are combined with AND in the order given.

    Args:
        model: Root record type
        filters: Iterable of FilterItem
        registry: FieldRegistry (defaults to the shared registry)

    Returns:
        Predicate, or None when there are no items

    Examples:
        >>> build_predicate(Article, parse_filter("title[test],status[ACTIVE]"))
        And(items=(Contains(field=('title',), value='test'), Equals(field=('status',), value='active')))
    """
    registry = registry or field_registry
    predicate = combine(And, [build_item_predicate(model, item, registry) for item in filters])
    if pageable_settings.LOG_QUERIES:
        logger.info(f"Built predicate for {getattr(model, '__name__', model)}: {predicate!r}")
    return predicate
