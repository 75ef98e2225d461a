"""
Cache layer for aggregator results.

Entries are whole aggregates stored under a scope key derived from the
aggregator name, the project, the identity and the exact filters. An entry is
only ever replaced as a whole; a miss simply means the aggregate is recomputed.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from django.core.cache import caches

from editcounter.conf import get_setting

logger = logging.getLogger(__name__)

KEY_PREFIX = "editstats"


def scope_key(
    aggregator: str, project_domain: str, identity_scope: dict, filters_scope: dict
) -> str:
    payload = json.dumps(
        {"project": project_domain, "user": identity_scope, "filters": filters_scope},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}.{aggregator}.{digest}"


class StatsCache:
    """Stores aggregates in a Django cache backend."""

    def __init__(self, alias: str | None = None):
        self.alias = alias or get_setting("EDITSTATS_CACHE_ALIAS")

    @property
    def backend(self):
        return caches[self.alias]

    def get(self, key: str) -> Any | None:
        try:
            return self.backend.get(key)
        except Exception:
            logger.exception("Cache read failed for %s", key)
            return None

    def put(self, key: str, payload: Any, ttl: int) -> None:
        try:
            self.backend.set(key, payload, timeout=ttl)
        except Exception:
            logger.exception("Cache write failed for %s", key)


class NullCache:
    """A cache that never holds anything."""

    def get(self, key: str) -> Any | None:
        return None

    def put(self, key: str, payload: Any, ttl: int) -> None:
        return None
