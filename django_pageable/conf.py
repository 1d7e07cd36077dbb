"""
Django-Pageable Settings

Read from the DJANGO_PAGEABLE dict in Django settings. Keys that are not
set fall back to DEFAULTS; without configured Django settings (plain
in-memory usage) DEFAULTS are used as they are.

Example:
    # settings.py
    DJANGO_PAGEABLE = {
        'DEFAULT_SIZE': 20,
        'MAX_SIZE': 500,
        'LOG_QUERIES': True,
    }
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS = {
    # Pagination
    "DEFAULT_PAGE": 1,
    "DEFAULT_SIZE": 5,
    "MAX_SIZE": 1000,
    # Property paths
    "MAX_PATH_DEPTH": 2,
    # Open bound of a date filter: created_at[2022-09-21,_]
    "DATE_PLACEHOLDER": "_",
    # Log built predicates and orderings at INFO
    "LOG_QUERIES": False,
}

# Settings that must hold an int >= 1
POSITIVE_INT_SETTINGS = {"DEFAULT_PAGE", "DEFAULT_SIZE", "MAX_SIZE", "MAX_PATH_DEPTH"}


class PageableSettings:
    """
    Attribute access to django-pageable settings, e.g.
    ``pageable_settings.MAX_SIZE``.

    Values are looked up once and cached on the instance; ``reload()``
    drops the cache after Django settings change (tests use it together
    with ``override_settings``).
    """

    def __init__(self, defaults=None):
        self.defaults = defaults or DEFAULTS
        self._cached_attrs = set()

    @property
    def user_settings(self):
        if not hasattr(self, "_user_settings"):
            self._user_settings = getattr(settings, "DJANGO_PAGEABLE", {}) if settings.configured else {}
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid django-pageable setting: '{attr}'")

        val = self.user_settings.get(attr, self.defaults[attr])
        if attr in POSITIVE_INT_SETTINGS and (isinstance(val, bool) or not isinstance(val, int) or val < 1):
            raise ImproperlyConfigured(f"DJANGO_PAGEABLE['{attr}'] must be a positive integer, got {val!r}.")

        self._cached_attrs.add(attr)
        setattr(self, attr, val)
        return val

    def reload(self):
        """Forget cached values and re-read Django settings on next access."""
        for attr in self._cached_attrs:
            self.__dict__.pop(attr, None)
        self._cached_attrs.clear()
        self.__dict__.pop("_user_settings", None)


pageable_settings = PageableSettings(DEFAULTS)
