"""
Django-Pageable Request Parameters

Validated page/size plus the raw filter and sort strings of a request,
and the parser for the filter grammar:

    filter := item (',' item)*
    item   := path '[' value (',' value)* ']'
    path   := segment ('.' segment)*        segment := [A-Za-z0-9_]+

Commas and brackets inside values cannot be escaped.
"""

import dataclasses
import re

from django_pageable.conf import pageable_settings
from django_pageable.exceptions import FilterFormatError, ValidationError

# Accepts N levels: insurance.order.client.cnpj (depth policy applies later)
FILTER_PATTERN = re.compile(r"(?P<property>\w+(?:\.\w+)*)\[(?P<values>[^\]]+)\]", re.ASCII)


@dataclasses.dataclass(frozen=True)
class FilterItem:
    """One ``property[values]`` clause of a filter string."""

    property: str
    values: tuple


def parse_filter(filter_str):
    """
    Parse a filter string into FilterItems.

    Args:
        filter_str: Filter string (e.g., "title[test],status[ACTIVE]")

    Returns:
        List of FilterItem; empty for a blank string

    Raises:
        FilterFormatError: Non-blank string without any ``property[values]``

    Examples:
        >>> parse_filter("title[test1, test2]")
        [FilterItem(property='title', values=('test1', 'test2'))]
        >>> parse_filter("created_at[2022-09-21,_]")
        [FilterItem(property='created_at', values=('2022-09-21', '_'))]
        >>> parse_filter("")
        []
    """
    if not filter_str or not filter_str.strip():
        return []

    matches = list(FILTER_PATTERN.finditer(filter_str))
    if not matches:
        raise FilterFormatError(
            f"Invalid filter format: '{filter_str}'. Expected format: 'property[value]' or 'property[value1,value2]'.",
            filter=filter_str,
        )

    filters = []
    for match in matches:
        property_path = match.group("property")
        if not property_path or not property_path.strip():
            raise FilterFormatError(f"Property name cannot be empty in filter: '{filter_str}'.", filter=filter_str)

        values = tuple(value.strip() for value in match.group("values").split(","))
        filters.append(FilterItem(property_path, values))

    return filters


def _as_int(name, value):
    # bool is an int subclass but never a page number
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}.", field=name.lower())
    return value


class RequestParameters:
    """
    Page, size, sort and filter of a paged request.

    Page and size are validated on assignment, so an instance never holds
    an out-of-range value.

    Example:
        params = RequestParameters(page=2, size=10, sort="created_at desc", filter="status[active]")
        params.offset           # 10
        params.parse_filters()  # [FilterItem(property='status', values=('active',))]
    """

    def __init__(self, page=None, size=None, sort=None, filter=None):
        self.page = pageable_settings.DEFAULT_PAGE if page is None else page
        self.size = pageable_settings.DEFAULT_SIZE if size is None else size
        self.sort = sort
        self.filter = filter

    @property
    def page(self):
        return self._page

    @page.setter
    def page(self, value):
        value = _as_int("Page", value)
        if value < 1:
            raise ValidationError("Page must be greater than or equal to 1.", field="page")
        self._page = value

    @property
    def size(self):
        return self._size

    @size.setter
    def size(self, value):
        value = _as_int("Size", value)
        max_size = pageable_settings.MAX_SIZE
        if value < 1:
            raise ValidationError("Size must be greater than or equal to 1.", field="size")
        if value > max_size:
            raise ValidationError(f"Size must be less than or equal to {max_size}.", field="size")
        self._size = value

    @property
    def offset(self):
        return (self.page - 1) * self.size

    @property
    def has_filter(self):
        return bool(self.filter and self.filter.strip())

    @property
    def has_sort(self):
        return bool(self.sort and self.sort.strip())

    def parse_filters(self):
        """Parse the filter string; see ``parse_filter``."""
        return parse_filter(self.filter)

    @classmethod
    def from_query(cls, params):
        """
        Build parameters from a query-string mapping such as ``request.GET``.

        Missing keys fall back to the defaults.

        Raises:
            ValidationError: page or size is not a number or out of range

        Example:
            >>> RequestParameters.from_query({"page": "2", "size": "10", "sort": "title"}).offset
            10
        """
        kwargs = {"sort": params.get("sort") or None, "filter": params.get("filter") or None}
        for name in ("page", "size"):
            raw = params.get(name)
            if raw is None or str(raw).strip() == "":
                continue
            try:
                kwargs[name] = int(str(raw).strip())
            except ValueError:
                raise ValidationError(f"{name.capitalize()} must be an integer, got {raw!r}.", field=name) from None
        return cls(**kwargs)

    def __repr__(self):
        return (
            f"RequestParameters(page={self.page!r}, size={self.size!r}, "
            f"sort={self.sort!r}, filter={self.filter!r})"
        )
