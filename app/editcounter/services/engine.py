"""
Statistics engine.

Resolves the identity first, then runs the revision, page and log aggregators
independently of each other and assembles their results into an
``EditCounter``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from django.conf import settings
from django.db import connections

from editcounter.conf import get_setting
from editcounter.exceptions import InvariantViolation

from .cache import NullCache, StatsCache
from .edit_counter import EditCounter
from .gateway import QueryGateway
from .identity import IdentityResolver
from .logs import LogAggregator
from .pages import PageAggregator
from .revisions import RevisionAggregator
from .simple_counter import SimpleEditCounter
from .types import PagesReport, StatsFilters

if TYPE_CHECKING:
    from editcounter.models import Project

logger = logging.getLogger(__name__)


def _run_in_worker(task: Callable[[], Any]) -> Any:
    try:
        return task()
    finally:
        # Worker threads open their own connections; do not leave them behind.
        connections.close_all()


class StatisticsEngine:
    """Computes the full set of edit statistics for one user on one project."""

    def __init__(
        self,
        gateway: QueryGateway | None = None,
        cache: StatsCache | NullCache | None = None,
        max_workers: int | None = None,
        *,
        check_invariants: bool | None = None,
        ttl: int | None = None,
    ):
        self.gateway = gateway or QueryGateway()
        self.cache = cache if cache is not None else StatsCache()
        self.max_workers = max_workers or get_setting("EDITSTATS_MAX_WORKERS")
        if check_invariants is None:
            check_invariants = get_setting("EDITSTATS_CHECK_INVARIANTS")
        if check_invariants is None:
            check_invariants = settings.DEBUG
        self.check_invariants = bool(check_invariants)

        self.resolver = IdentityResolver(self.gateway)
        self.revisions = RevisionAggregator(self.gateway, self.cache, ttl)
        self.pages = PageAggregator(self.gateway, self.cache, ttl)
        self.logs = LogAggregator(self.gateway, self.cache, ttl)

    def compute(
        self,
        project: Project,
        username: str,
        filters: StatsFilters | None = None,
        *,
        include_global_groups: bool = False,
        now: datetime | None = None,
    ) -> EditCounter:
        filters = filters or StatsFilters()
        identity = self.resolver.resolve(
            project, username, include_global_groups=include_global_groups
        )
        logger.info(
            "Computing edit statistics for %s on %s (%s)",
            identity.username,
            project.domain,
            "anonymous" if identity.is_anonymous else f"user {identity.user_id}",
        )

        tasks = {
            "revisions": lambda: self.revisions.compute_revision_counters(
                project, identity, filters, now=now
            ),
            "dates": lambda: self.revisions.compute_revision_dates(project, identity, filters),
            "months": lambda: self.revisions.compute_month_counts(project, identity, filters),
            "pages": lambda: self.pages.compute_page_counters(project, identity, filters),
            "logs": lambda: self.logs.compute_log_counters(project, identity, filters),
        }
        results = self._run(tasks)

        counter = EditCounter(domain=project.domain, identity=identity, filters=filters, **results)
        if self.check_invariants:
            counter.check_invariants()
        return counter

    def pages_report(
        self, project: Project, username: str, filters: StatsFilters | None = None
    ) -> PagesReport:
        filters = filters or StatsFilters()
        identity = self.resolver.resolve(project, username)
        report = self.pages.compute_pages_grouped_by_namespace_and_time(project, identity, filters)
        if self.check_invariants:
            grouped = sum(
                len(pages) for buckets in report.pages.values() for pages in buckets.values()
            )
            if grouped != report.total:
                raise InvariantViolation(f"Grouped pages {grouped} != total {report.total}")
        return report

    def summary(
        self, project: Project, username: str, filters: StatsFilters | None = None
    ) -> SimpleEditCounter:
        filters = filters or StatsFilters()
        counter = SimpleEditCounter(
            project,
            username,
            namespace=filters.namespace,
            start=filters.start,
            end=filters.end,
            gateway=self.gateway,
        )
        counter.prepare_data()
        return counter

    def _run(self, tasks: dict[str, Callable[[], Any]]) -> dict[str, Any]:
        if self.max_workers <= 1:
            return {name: task() for name, task in tasks.items()}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks))) as executor:
            futures = {name: executor.submit(_run_in_worker, task) for name, task in tasks.items()}
            return {name: future.result() for name, future in futures.items()}
