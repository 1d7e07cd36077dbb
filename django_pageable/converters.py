"""
Django-Pageable Value Converters

Turns raw filter values (always strings) into typed values.

Every scalar type has one parse function in ``PARSERS``. Parse functions
raise ``ValueError`` (or ``TypeError``) on bad input; ``convert`` turns
that into a ``ValueConversionError`` naming the property.
"""

import datetime
import decimal
import enum
import functools
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.dateparse import parse_date, parse_datetime, parse_time

from django_pageable.exceptions import ValueConversionError

TRUE_VALUES = {"true", "t", "yes", "y", "on", "1"}
FALSE_VALUES = {"false", "f", "no", "n", "off", "0"}


def parse_bool(raw):
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"'{raw}' is not a boolean")


def parse_decimal(raw):
    try:
        return decimal.Decimal(raw)
    except decimal.InvalidOperation:
        raise ValueError(f"'{raw}' is not a decimal number") from None


def parse_datetime_value(raw):
    """
    Parse an ISO date or datetime into a ``datetime``.

    A bare date means midnight of that day.

    Examples:
        >>> parse_datetime_value("2022-09-21")
        datetime.datetime(2022, 9, 21, 0, 0)
        >>> parse_datetime_value("2022-09-21T10:30:00")
        datetime.datetime(2022, 9, 21, 10, 30)
    """
    value = parse_datetime(raw)
    if value is not None:
        return value
    day = parse_date(raw)
    if day is not None:
        return datetime.datetime.combine(day, datetime.time.min)
    raise ValueError(f"'{raw}' is not a valid date or datetime")


def parse_date_value(raw):
    day = parse_date(raw)
    if day is not None:
        return day
    value = parse_datetime(raw)
    if value is not None:
        return value.date()
    raise ValueError(f"'{raw}' is not a valid date")


def parse_time_value(raw):
    value = parse_time(raw)
    if value is None:
        raise ValueError(f"'{raw}' is not a valid time")
    return value


def parse_enum(enum_cls, raw):
    """
    Parse an enum member by name or by value, ignoring case.

    Examples:
        >>> parse_enum(Status, "active")
        <Status.ACTIVE: 'active'>
    """
    wanted = raw.strip().lower()
    for member in enum_cls:
        if member.name.lower() == wanted:
            return member
    for member in enum_cls:
        if str(member.value).lower() == wanted:
            return member
    raise ValueError(f"'{raw}' is not a member of {enum_cls.__name__}")


def parse_choice(choices, raw):
    """
    Parse a Django ``choices`` entry by value or by label, ignoring case.

    Returns the stored value of the matching choice.
    """
    wanted = raw.strip().lower()
    for value, label in choices:
        if str(value).lower() == wanted or str(label).lower() == wanted:
            return value
    raise ValueError(f"'{raw}' is not a valid choice")


# Parse table: python type -> parse function
PARSERS = {
    str: str,
    int: int,
    float: float,
    bool: parse_bool,
    decimal.Decimal: parse_decimal,
    uuid.UUID: uuid.UUID,
    datetime.datetime: parse_datetime_value,
    datetime.date: parse_date_value,
    datetime.time: parse_time_value,
}


def get_parser(python_type):
    """
    Return the parse function for a python type, or None if unknown.

    Enum subclasses get a case-insensitive member parser.
    """
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return functools.partial(parse_enum, python_type)
    return PARSERS.get(python_type)


def model_field_parser(model_field):
    """
    Wrap ``Field.to_python`` for Django field classes missing from the table.

    Django reports conversion failures with its own ``ValidationError``;
    they are re-raised as ``ValueError`` so ``convert`` handles them.
    """

    def parse(raw):
        try:
            return model_field.to_python(raw)
        except DjangoValidationError as e:
            raise ValueError("; ".join(e.messages)) from None

    return parse


def convert(field, raw, property_path=None):
    """
    Convert a raw filter value for the given field metadata.

    Args:
        field: FieldMeta describing the target field
        raw: Raw (already trimmed) string value
        property_path: Path as written by the caller, for error messages

    Returns:
        Typed value

    Raises:
        ValueConversionError: When the value cannot be parsed
    """
    property_path = property_path or field.name
    parser = field.parser
    if parser is None:
        raise ValueConversionError(
            f"Cannot convert value '{raw}' for property '{property_path}': "
            f"field of type '{field.type_name}' cannot be compared",
            property=property_path,
            value=raw,
        )
    try:
        return parser(raw)
    except (ValueError, TypeError, ArithmeticError) as e:
        raise ValueConversionError(
            f"Cannot convert value '{raw}' to type '{field.type_name}' for property '{property_path}'.",
            property=property_path,
            value=raw,
        ) from e
