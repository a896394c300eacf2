"""Test settings against a real PostgreSQL server.

Same as ``settings_test`` but keeps the PostgreSQL database from ``DB_*``
so row-lock tests run: ``pytest --ds=config.settings_test_postgres``.
"""

import os

from .settings_test import *  # noqa: F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("DB_HOST", "localhost"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "NAME": os.getenv("DB_NAME", "checkout"),
        "USER": os.getenv("DB_USER", "checkout_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", "checkout-pass"),
    }
}
