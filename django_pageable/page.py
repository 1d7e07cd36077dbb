"""
Django-Pageable Page

The result of a paged request: one slice of records plus the counters a
client needs to navigate the rest.
"""

import dataclasses
import math
import typing

from django_pageable.response import build_nested_response

T = typing.TypeVar("T")


def total_pages(elements, size):
    """
    Number of pages needed for ``elements`` records.

    Examples:
        >>> total_pages(12, 5)
        3
        >>> total_pages(0, 5)
        0
    """
    if elements <= 0:
        return 0
    return math.ceil(elements / size)


@dataclasses.dataclass(frozen=True)
class Page(typing.Generic[T]):
    """
    One page of results.

    Attributes:
        data: Records of this page (at most ``size``), as a tuple
        current: 1-based page number
        size: Requested page size
        elements: Total matching records before slicing
        pages: Number of pages, 0 when there are no elements
    """

    data: tuple
    current: int
    size: int
    elements: int
    pages: int

    @classmethod
    def of(cls, data, current, size, elements):
        """Build a page, computing ``pages`` from ``elements`` and ``size``."""
        return cls(
            data=tuple(data),
            current=current,
            size=size,
            elements=elements,
            pages=total_pages(elements, size),
        )

    def project(self, fn):
        """
        Map every record through ``fn``; counters are copied unchanged.

        Example:
            >>> page.project(lambda article: article.title).data
            ('First', 'Second')
        """
        return Page(
            data=tuple(fn(item) for item in self.data),
            current=self.current,
            size=self.size,
            elements=self.elements,
            pages=self.pages,
        )

    @property
    def has_next(self):
        return self.current < self.pages

    @property
    def has_previous(self):
        return self.current > 1

    def to_dict(self, fields=None):
        """
        Render the page for a JSON response.

        Args:
            fields: Optional list of dotted field paths; when given, each
                    record is rendered with ``build_nested_response``

        Returns:
            Dict with data, current, size, elements and pages
        """
        if fields:
            data = [build_nested_response(item, fields) for item in self.data]
        else:
            data = list(self.data)
        return {
            "data": data,
            "current": self.current,
            "size": self.size,
            "elements": self.elements,
            "pages": self.pages,
        }
