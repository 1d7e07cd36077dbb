"""
Pytest configuration for django-pageable tests.
"""

import os
import sys

import pytest

# Add the package root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    if not settings.configured:
        settings.configure(
            SECRET_KEY="test-secret-key",
            DEBUG=True,
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django_pageable",
                "django_pageable.tests.testapp",
            ],
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                }
            },
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
            TIME_ZONE="UTC",
            DJANGO_PAGEABLE={
                "DEFAULT_SIZE": 5,
                "MAX_SIZE": 1000,
            },
        )

    import django

    django.setup()


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so override_settings takes effect."""
    from django_pageable.conf import pageable_settings

    pageable_settings.reload()
    yield
    pageable_settings.reload()


@pytest.fixture
def registry():
    from django_pageable.fields import FieldRegistry

    return FieldRegistry()
