from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from editcounter.exceptions import InvariantViolation

from . import metrics
from .types import (
    LogCounters,
    NamespaceMonthCounts,
    PageCounters,
    RevisionCounters,
    RevisionDates,
    StatsFilters,
    UserIdentity,
)


@dataclass
class EditCounter:
    """Assembled statistics for one user on one project.

    Holds the aggregators' results and exposes the derived metrics over them;
    nothing here queries the database.
    """

    domain: str
    identity: UserIdentity
    filters: StatsFilters
    revisions: RevisionCounters = field(default_factory=RevisionCounters)
    dates: RevisionDates = field(default_factory=RevisionDates)
    pages: PageCounters = field(default_factory=PageCounters)
    logs: LogCounters = field(default_factory=LogCounters)
    months: NamespaceMonthCounts = field(default_factory=NamespaceMonthCounts)

    def count_live_revisions(self) -> int:
        return metrics.count_live_revisions(self.revisions)

    def count_deleted_revisions(self) -> int:
        return metrics.count_deleted_revisions(self.revisions)

    def count_all_revisions(self) -> int:
        return metrics.count_all_revisions(self.revisions)

    def count_revisions_with_comments(self) -> int:
        return metrics.count_revisions_with_comments(self.revisions)

    def count_revisions_without_comments(self) -> int:
        return metrics.count_revisions_without_comments(self.revisions)

    def count_minor_revisions(self) -> int:
        return metrics.count_minor_revisions(self.revisions)

    def count_small_revisions(self) -> int:
        return metrics.count_small_revisions(self.revisions)

    def count_large_revisions(self) -> int:
        return metrics.count_large_revisions(self.revisions)

    def count_revisions_in_last(self, window: str) -> int:
        return metrics.count_revisions_in_last(self.revisions, window)

    def count_automated_revisions(self) -> int:
        return metrics.count_automated_revisions(self.revisions)

    def count_live_pages_edited(self) -> int:
        return metrics.count_live_pages_edited(self.pages)

    def count_deleted_pages_edited(self) -> int:
        return metrics.count_deleted_pages_edited(self.pages)

    def count_all_pages_edited(self) -> int:
        return metrics.count_all_pages_edited(self.pages)

    def count_pages_created(self) -> int:
        return metrics.count_pages_created(self.pages)

    def count_created_pages_live(self) -> int:
        return metrics.count_created_pages_live(self.pages)

    def count_pages_created_deleted(self) -> int:
        return metrics.count_pages_created_deleted(self.pages)

    def count_pages_moved(self) -> int:
        return metrics.count_pages_moved(self.pages)

    def average_revisions_per_page(self) -> float:
        return metrics.average_revisions_per_page(self.revisions, self.pages)

    def average_revisions_per_day(self) -> float:
        return metrics.average_revisions_per_day(self.revisions, self.dates)

    def datetime_first_revision(self) -> datetime | None:
        return self.dates.first

    def datetime_last_revision(self) -> datetime | None:
        return self.dates.last

    def get_days_active(self) -> int:
        return metrics.get_days_active(self.dates)

    def count_files_uploaded(self) -> int:
        return metrics.count_files_uploaded(self.logs)

    def count_files_uploaded_commons(self) -> int:
        return metrics.count_files_uploaded_commons(self.logs)

    def thanks(self) -> int:
        return metrics.thanks(self.logs)

    def approvals(self) -> int:
        return metrics.approvals(self.logs)

    def patrols(self) -> int:
        return metrics.patrols(self.logs)

    def namespace_totals(self) -> dict[int, int]:
        return self.months.namespace_totals

    def check_invariants(self) -> None:
        """Raise ``InvariantViolation`` when separately computed totals disagree."""
        total = self.count_all_revisions()
        by_namespace = self.months.total
        if by_namespace != total:
            raise InvariantViolation(
                f"Namespace totals {by_namespace} != live + deleted revisions {total}"
            )
        deleted_by_namespace = sum(self.months.deleted.values())
        if deleted_by_namespace != self.revisions.deleted:
            raise InvariantViolation(
                f"Deleted namespace totals {deleted_by_namespace} != "
                f"deleted revisions {self.revisions.deleted}"
            )
        if self.count_revisions_without_comments() < 0:
            raise InvariantViolation("Negative count of revisions without comments")

    def as_dict(self) -> dict:
        """Plain nested data for presentation; every bucket is always present."""
        pages_edited = self.count_all_pages_edited()
        return {
            "project": self.domain,
            "user": {
                "username": self.identity.username,
                "user_id": self.identity.user_id,
                "anonymous": self.identity.is_anonymous,
                "local_groups": list(self.identity.local_groups),
                "global_groups": list(self.identity.global_groups),
            },
            "filters": self.filters.scope(),
            "revisions": {
                **self.revisions.as_dict(),
                "all": self.count_all_revisions(),
                "without_comments": self.count_revisions_without_comments(),
                "automated": self.count_automated_revisions(),
            },
            "pages": {
                **self.pages.as_dict(),
                "edited-all": pages_edited,
                "created-all": self.count_pages_created(),
            },
            "logs": self.logs.as_dict(),
            "dates": {
                "first": self.dates.first.isoformat() if self.dates.first else None,
                "last": self.dates.last.isoformat() if self.dates.last else None,
                "days_active": self.get_days_active(),
            },
            "averages": {
                "revisions_per_page": self.average_revisions_per_page() if pages_edited else None,
                "revisions_per_day": self.average_revisions_per_day(),
            },
            "actions": {
                "files_uploaded": self.count_files_uploaded(),
                "files_uploaded_commons": self.count_files_uploaded_commons(),
                "thanks": self.thanks(),
                "approvals": self.approvals(),
                "patrols": self.patrols(),
            },
            "namespaces": self.months.as_dict(),
        }
