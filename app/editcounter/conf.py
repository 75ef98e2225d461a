"""Settings lookup with the defaults used when a deployment leaves them out."""

from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "EDITSTATS_REPLICA_DATABASE": "default",
    "EDITSTATS_CACHE_ALIAS": "default",
    "EDITSTATS_CACHE_TTL": 60 * 10,
    "EDITSTATS_QUERY_TIMEOUT": 60,
    "EDITSTATS_QUERY_RETRY_BACKOFF": 1.0,
    "EDITSTATS_MAX_WORKERS": 4,
    "EDITSTATS_COMMONS_PROJECT": None,
    "EDITSTATS_CHECK_INVARIANTS": None,
}


def get_setting(name: str) -> Any:
    return getattr(settings, name, DEFAULTS[name])
