from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from editcounter.conf import get_setting

from .cache import NullCache, StatsCache, scope_key

if TYPE_CHECKING:
    from editcounter.models import Project

    from .gateway import QueryGateway
    from .types import StatsFilters, UserIdentity

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CachedAggregator:
    """Base class for aggregators whose results go through the cache layer."""

    name = "aggregator"

    def __init__(
        self,
        gateway: QueryGateway,
        cache: StatsCache | NullCache | None = None,
        ttl: int | None = None,
    ):
        self.gateway = gateway
        self.cache = cache if cache is not None else NullCache()
        self.ttl = ttl if ttl is not None else get_setting("EDITSTATS_CACHE_TTL")

    def _cached(
        self,
        operation: str,
        project: Project,
        identity: UserIdentity,
        filters: StatsFilters,
        compute: Callable[[], T],
    ) -> T:
        key = scope_key(
            f"{self.name}.{operation}", project.domain, identity.scope(), filters.scope()
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s.%s (%s)", self.name, operation, key)
            return cached
        result = compute()
        self.cache.put(key, result, self.ttl)
        return result
