"""
Django-Pageable Field Registry

Per-type field metadata: for every record type, a table of public field
names (matched case-insensitively) to a typed descriptor. Tables are built
once per type, either from a Django model's ``_meta`` or from the type
annotations of a plain class / dataclass, and then looked up directly.

Features:
- Django model introspection (concrete fields, forward and reverse relations)
- Annotation introspection for in-memory records
- Explicit registration for types that need overrides
"""

import collections.abc
import dataclasses
import datetime
import decimal
import enum
import logging
import threading
import types
import typing
import uuid

from django_pageable.converters import get_parser, model_field_parser, parse_choice
from django_pageable.exceptions import PropertyNotFound

logger = logging.getLogger("django_pageable")


class FieldKind(enum.Enum):
    """Classification of a field for filtering and traversal."""

    SCALAR = "scalar"
    STRING = "string"
    DATETIME = "datetime"
    ENUM = "enum"
    RELATION = "relation"
    COLLECTION = "collection"


@dataclasses.dataclass(frozen=True)
class FieldMeta:
    """
    Descriptor for one public field of a record type.

    For RELATION fields ``target`` is the related record type. For
    COLLECTION fields ``target`` is the element record type, or None when
    the elements are primitives of ``python_type``.
    """

    name: str
    kind: FieldKind
    python_type: object = None
    target: object = None
    parser: object = dataclasses.field(default=None, compare=False, repr=False)

    @property
    def type_name(self):
        source = self.target if self.target is not None else self.python_type
        return getattr(source, "__name__", str(source))

    @property
    def is_collection(self):
        return self.kind is FieldKind.COLLECTION

    @property
    def is_relation(self):
        return self.kind is FieldKind.RELATION

    def element_field(self):
        """
        Describe the element of a collection of primitives as a field.

        Example:
            >>> FieldMeta("labels", FieldKind.COLLECTION, str).element_field()
            FieldMeta(name='labels', kind=<FieldKind.STRING: 'string'>, python_type=<class 'str'>, target=None)
        """
        return FieldMeta(
            name=self.name,
            kind=classify_type(self.python_type),
            python_type=self.python_type,
            parser=get_parser(self.python_type),
        )


# Django internal field type -> python type
MODEL_FIELD_TYPES = {
    "CharField": str,
    "TextField": str,
    "SlugField": str,
    "EmailField": str,
    "URLField": str,
    "FilePathField": str,
    "GenericIPAddressField": str,
    "UUIDField": uuid.UUID,
    "AutoField": int,
    "BigAutoField": int,
    "SmallAutoField": int,
    "IntegerField": int,
    "BigIntegerField": int,
    "SmallIntegerField": int,
    "PositiveIntegerField": int,
    "PositiveBigIntegerField": int,
    "PositiveSmallIntegerField": int,
    "FloatField": float,
    "DecimalField": decimal.Decimal,
    "BooleanField": bool,
    "NullBooleanField": bool,
    "DateField": datetime.date,
    "DateTimeField": datetime.datetime,
    "TimeField": datetime.time,
}

KNOWN_SCALARS = {str, int, float, bool, bytes, decimal.Decimal, uuid.UUID, datetime.time}

COLLECTION_ORIGINS = {
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
}


def classify_type(python_type):
    """
    Classify a python (element) type.

    Examples:
        >>> classify_type(str)
        <FieldKind.STRING: 'string'>
        >>> classify_type(datetime.date)
        <FieldKind.DATETIME: 'datetime'>
        >>> classify_type(int)
        <FieldKind.SCALAR: 'scalar'>
    """
    if python_type is str:
        return FieldKind.STRING
    if isinstance(python_type, type):
        if issubclass(python_type, (datetime.date, datetime.datetime)):
            return FieldKind.DATETIME
        if issubclass(python_type, enum.Enum):
            return FieldKind.ENUM
        if is_record_type(python_type):
            return FieldKind.RELATION
    return FieldKind.SCALAR


def is_django_model(model):
    return isinstance(model, type) and hasattr(model, "_meta") and hasattr(model._meta, "get_fields")


def is_record_type(python_type):
    """True for types whose instances have fields of their own."""
    if not isinstance(python_type, type) or python_type in KNOWN_SCALARS:
        return False
    if issubclass(python_type, (enum.Enum, datetime.date)):
        return False
    if dataclasses.is_dataclass(python_type) or is_django_model(python_type):
        return True
    return bool(getattr(python_type, "__annotations__", None))


def unwrap_optional(hint):
    """Strip ``Optional[X]`` / ``X | None`` down to ``X``."""
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def field_from_hint(name, hint):
    """
    Build field metadata from a type annotation.

    Examples:
        >>> field_from_hint("title", str).kind
        <FieldKind.STRING: 'string'>
        >>> field_from_hint("tags", list[Tag]).target
        <class 'Tag'>
    """
    hint = unwrap_optional(hint)
    origin = typing.get_origin(hint)

    if origin in COLLECTION_ORIGINS:
        args = [arg for arg in typing.get_args(hint) if arg is not Ellipsis]
        element = unwrap_optional(args[0]) if args else object
        if is_record_type(element):
            return FieldMeta(name, FieldKind.COLLECTION, element, target=element)
        return FieldMeta(name, FieldKind.COLLECTION, element)

    kind = classify_type(hint)
    if kind is FieldKind.RELATION:
        return FieldMeta(name, kind, hint, target=hint)
    return FieldMeta(name, kind, hint, parser=get_parser(hint))


def get_annotated_fields(record_type):
    """
    Get public field metadata from a class's type annotations.

    Falls back to raw ``__annotations__`` when hints cannot be resolved
    (forward references to names that are not importable).
    """
    try:
        hints = typing.get_type_hints(record_type)
    except (NameError, TypeError) as e:
        logger.warning(f"get_type_hints failed for {record_type.__name__}: {e}. Falling back to __annotations__.")
        hints = {}
        for klass in reversed(record_type.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))

    fields = []
    for name, hint in hints.items():
        if name.startswith("_") or typing.get_origin(hint) is typing.ClassVar:
            continue
        fields.append(field_from_hint(name, hint))
    return fields


def field_from_model_field(model_field):
    """Build field metadata from a Django model field or relation."""
    if model_field.is_relation:
        related = model_field.related_model
        if model_field.one_to_many or model_field.many_to_many:
            return FieldMeta(model_field.name, FieldKind.COLLECTION, related, target=related)
        return FieldMeta(model_field.name, FieldKind.RELATION, related, target=related)

    python_type = MODEL_FIELD_TYPES.get(model_field.get_internal_type())

    if getattr(model_field, "choices", None):
        choices = tuple(model_field.flatchoices)
        return FieldMeta(
            model_field.name,
            FieldKind.ENUM,
            python_type,
            parser=lambda raw: parse_choice(choices, raw),
        )

    if python_type is None:
        return FieldMeta(model_field.name, FieldKind.SCALAR, None, parser=model_field_parser(model_field))

    return FieldMeta(model_field.name, classify_type(python_type), python_type, parser=get_parser(python_type))


def get_model_fields(model):
    """
    Get public field metadata for a Django model.

    Includes concrete fields, forward relations (ForeignKey, OneToOneField),
    many-to-many fields and reverse relations. Hidden reverse relations
    (``related_name='+'``) are not returned by ``_meta.get_fields()``.

    Args:
        model: Django model class

    Returns:
        List of FieldMeta
    """
    fields = []
    for model_field in model._meta.get_fields():
        if model_field.name.startswith("_"):
            continue
        # Generic foreign keys have no single related model to traverse
        if model_field.is_relation and model_field.related_model is None:
            continue
        fields.append(field_from_model_field(model_field))
    return fields


class FieldRegistry:
    """
    Field-metadata tables keyed by record type.

    Types are introspected on first lookup unless registered explicitly.

    Example:
        registry = FieldRegistry()
        registry.register(Booking)
        registry.lookup(Booking, "CreatedAt")   # FieldMeta(name='created_at', ...)
    """

    def __init__(self):
        self._tables = {}
        self._lock = threading.Lock()

    def register(self, record_type, fields=None):
        """
        Register a record type.

        Args:
            record_type: Django model or annotated class
            fields: Optional iterable of FieldMeta overriding introspection

        Returns:
            The table of lower-cased name -> FieldMeta
        """
        if fields is None:
            fields = get_model_fields(record_type) if is_django_model(record_type) else get_annotated_fields(record_type)

        table = {field.name.lower(): field for field in fields}
        with self._lock:
            self._tables[record_type] = table
        logger.debug(f"Registered {len(table)} fields for {record_type.__name__}")
        return table

    def get_fields(self, record_type):
        table = self._tables.get(record_type)
        if table is None:
            table = self.register(record_type)
        return table

    def lookup(self, record_type, name, path=None):
        """
        Find a field by name, ignoring case.

        Raises:
            PropertyNotFound: When the type has no public field of that name
        """
        field = self.get_fields(record_type).get(name.lower())
        if field is None:
            type_name = getattr(record_type, "__name__", str(record_type))
            raise PropertyNotFound(
                f"Cannot find property '{name}' on type '{type_name}' for path '{path or name}'",
                property=path or name,
            )
        return field

    def is_registered(self, record_type):
        return record_type in self._tables

    def clear(self):
        with self._lock:
            self._tables.clear()


field_registry = FieldRegistry()
