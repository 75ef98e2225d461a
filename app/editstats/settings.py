"""
Django settings for the editstats project.

The app database (``default``) holds the project registry. Replica data is read
through the alias named by ``EDITSTATS_REPLICA_DATABASE``; when the
``REPLICA_DB_HOST`` environment variable is set a MySQL ``replica`` alias is
configured for it.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

os.environ.setdefault("PYWIKIBOT_NO_USER_CONFIG", "1")

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "editstats-development-only-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "editcounter",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

if os.environ.get("REPLICA_DB_HOST"):
    import pymysql

    pymysql.install_as_MySQLdb()

    DATABASES["replica"] = {
        "ENGINE": "django.db.backends.mysql",
        "HOST": os.environ["REPLICA_DB_HOST"],
        "PORT": os.environ.get("REPLICA_DB_PORT", "3306"),
        "NAME": os.environ.get("REPLICA_DB_NAME", ""),
        "USER": os.environ.get("REPLICA_DB_USER", ""),
        "PASSWORD": os.environ.get("REPLICA_DB_PASSWORD", ""),
        "OPTIONS": {"charset": "utf8mb4"},
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "editstats",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "editcounter": {
            "handlers": ["console"],
            "level": os.environ.get("EDITSTATS_LOG_LEVEL", "INFO"),
        },
    },
}

# Edit statistics
EDITSTATS_REPLICA_DATABASE = "replica" if "replica" in DATABASES else "default"
EDITSTATS_CACHE_ALIAS = "default"
EDITSTATS_CACHE_TTL = 60 * 10
EDITSTATS_QUERY_TIMEOUT = 60
EDITSTATS_QUERY_RETRY_BACKOFF = 1.0
EDITSTATS_MAX_WORKERS = 4
EDITSTATS_COMMONS_PROJECT = os.environ.get("EDITSTATS_COMMONS_PROJECT") or None
