from __future__ import annotations

from .cache import NullCache, StatsCache
from .edit_counter import EditCounter
from .engine import StatisticsEngine
from .gateway import QueryGateway
from .identity import IdentityResolver, normalize_username
from .logs import LogAggregator
from .pages import PageAggregator
from .revisions import RevisionAggregator
from .simple_counter import SimpleEditCounter
from .types import StatsFilters, UserIdentity

__all__ = [
    "StatisticsEngine",
    "EditCounter",
    "SimpleEditCounter",
    "QueryGateway",
    "IdentityResolver",
    "normalize_username",
    "RevisionAggregator",
    "PageAggregator",
    "LogAggregator",
    "StatsCache",
    "NullCache",
    "StatsFilters",
    "UserIdentity",
]
