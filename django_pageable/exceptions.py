"""
Django-Pageable Exceptions

Every error raised while validating request parameters or building
predicates and orderings. All of them are raised before the queryable
source is touched, so a failure never leaves a partial page behind.

Each exception also derives from the closest builtin so callers can
catch ``ValueError`` / ``LookupError`` without importing this module.
"""


class PageableError(Exception):
    """Base class for all django-pageable errors."""

    code = "PAGEABLE_ERROR"

    def __init__(self, message="", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        """
        Render the error for an API payload.

        Example:
            >>> PropertyNotFound("Cannot find property 'foo'").to_dict()
            {'code': 'PROPERTY_NOT_FOUND', 'message': "Cannot find property 'foo'"}
        """
        result = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class InvalidArgument(PageableError, ValueError):
    """A required argument (source, request parameters) is missing."""

    code = "INVALID_ARGUMENT"


class ValidationError(PageableError, ValueError):
    """Page or size is out of range."""

    code = "VALIDATION_ERROR"


class FilterFormatError(PageableError, ValueError):
    """The filter string does not follow ``property[value,...]``."""

    code = "FILTER_FORMAT_ERROR"


class SortFormatError(PageableError, ValueError):
    """The sort string holds no usable token."""

    code = "SORT_FORMAT_ERROR"


class PropertyNotFound(PageableError, LookupError):
    """A path segment does not name a public field of the record type."""

    code = "PROPERTY_NOT_FOUND"


class PathTooDeep(PageableError, ValueError):
    """A path goes deeper than the navigation policy allows."""

    code = "PATH_TOO_DEEP"


class UnsupportedSortPath(PageableError, ValueError):
    """A sort path crosses a collection or ends on a relation."""

    code = "UNSUPPORTED_SORT_PATH"


class ValueConversionError(PageableError, ValueError):
    """A filter value cannot be converted to the type of its field."""

    code = "VALUE_CONVERSION_ERROR"


class EmptyFilterValues(PageableError, ValueError):
    """A filter item holds no usable (non-blank) value."""

    code = "EMPTY_FILTER_VALUES"


class ValueRequired(PageableError, ValueError):
    """A date filter has neither a lower nor an upper bound."""

    code = "VALUE_REQUIRED"
