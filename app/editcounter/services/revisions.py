from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .base import CachedAggregator
from .bucketing import group_revisions_by_namespace_and_month
from .parsers import format_mw_timestamp
from .types import NamespaceMonthCounts, RevisionCounters, RevisionDates

if TYPE_CHECKING:
    from editcounter.models import Project

    from .types import StatsFilters, UserIdentity

logger = logging.getLogger(__name__)

# Recent-activity windows, in days.
TIME_WINDOWS = {"day": 1, "week": 7, "month": 30, "year": 365}


def window_bounds(now: datetime) -> dict[str, str]:
    """Lower timestamp bound of every recent-activity window ending at ``now``."""
    return {
        name: format_mw_timestamp(now - timedelta(days=days)) for name, days in TIME_WINDOWS.items()
    }


class RevisionAggregator(CachedAggregator):
    """Counts a user's revisions across live and archived history."""

    name = "revisions"

    def compute_revision_counters(
        self,
        project: Project,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        now: datetime | None = None,
    ) -> RevisionCounters:
        """Return every revision bucket for the user, zero when there is no activity."""

        def compute() -> RevisionCounters:
            windows = window_bounds(now or datetime.now(timezone.utc))
            rows = self.gateway.revision_counts(project, identity, filters, windows)
            counters = RevisionCounters.from_rows(rows)
            logger.debug(
                "Revision counters for %s on %s: %d live, %d deleted",
                identity.username,
                project.domain,
                counters.live,
                counters.deleted,
            )
            return counters

        # Windows ending at an explicit instant are cached apart from the rolling ones.
        operation = "counters" if now is None else f"counters.{format_mw_timestamp(now)}"
        return self._cached(operation, project, identity, filters, compute)

    def compute_revision_dates(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> RevisionDates:
        def compute() -> RevisionDates:
            rows = self.gateway.revision_dates(project, identity, filters)
            firsts = [row.first for row in rows if row.first is not None]
            lasts = [row.last for row in rows if row.last is not None]
            return RevisionDates(
                first=min(firsts) if firsts else None,
                last=max(lasts) if lasts else None,
            )

        return self._cached("dates", project, identity, filters, compute)

    def compute_month_counts(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> NamespaceMonthCounts:
        def compute() -> NamespaceMonthCounts:
            rows = self.gateway.revision_months(project, identity, filters)
            return group_revisions_by_namespace_and_month(rows)

        return self._cached("months", project, identity, filters, compute)

    def compute_namespace_totals(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> dict[int, int]:
        return self.compute_month_counts(project, identity, filters).namespace_totals
