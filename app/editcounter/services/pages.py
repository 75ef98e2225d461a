from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import CachedAggregator
from .bucketing import (
    count_pages_by_namespace,
    group_pages_by_namespace_and_time,
    summary_columns,
)
from .types import PageCounters, PagesReport

if TYPE_CHECKING:
    from editcounter.models import Project

    from .types import StatsFilters, UserIdentity

logger = logging.getLogger(__name__)


class PageAggregator(CachedAggregator):
    """Counts pages a user edited, created and moved."""

    name = "pages"

    def compute_page_counters(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> PageCounters:
        def compute() -> PageCounters:
            return PageCounters.from_rows(self.gateway.page_counts(project, identity, filters))

        return self._cached("counters", project, identity, filters, compute)

    def compute_pages_grouped_by_namespace_and_time(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> PagesReport:
        """Pages created by the user, grouped by namespace and minute of creation.

        A page counts as created when its first revision (no parent) was made
        by the user, whether that revision is live or archived.
        """

        def compute() -> PagesReport:
            with_assessments = project.supports_page_assessments()
            rows = self.gateway.created_pages(
                project, identity, filters, with_assessments=with_assessments
            )
            counts = count_pages_by_namespace(rows)
            report = PagesReport(
                pages=group_pages_by_namespace_and_time(rows),
                counts=counts,
                total=sum(group.total for group in counts.values()),
                redirect_total=sum(group.redirects for group in counts.values()),
                deleted_total=sum(group.deleted for group in counts.values()),
                summary_columns=summary_columns(filters.redirects),
                has_page_assessments=with_assessments,
            )
            logger.debug(
                "%s created %d pages on %s (%d deleted)",
                identity.username,
                report.total,
                project.domain,
                report.deleted_total,
            )
            return report

        return self._cached("created", project, identity, filters, compute)
