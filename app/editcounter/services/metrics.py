"""
Derived metrics over already computed counters.

Every function is pure: it reads ``RevisionCounters``, ``PageCounters``,
``LogCounters`` or ``RevisionDates`` and never touches the database.
"""

from __future__ import annotations

from editcounter.exceptions import PreconditionError

from .types import LogCounters, PageCounters, RevisionBucket, RevisionCounters, RevisionDates

APPROVAL_KEYS = ("review-approve", "review-approve-a", "review-approve-i", "review-approve-ia")
WINDOWS = (RevisionBucket.DAY, RevisionBucket.WEEK, RevisionBucket.MONTH, RevisionBucket.YEAR)


def count_live_revisions(revisions: RevisionCounters) -> int:
    return revisions.live


def count_deleted_revisions(revisions: RevisionCounters) -> int:
    return revisions.deleted


def count_all_revisions(revisions: RevisionCounters) -> int:
    return revisions.live + revisions.deleted


def count_revisions_with_comments(revisions: RevisionCounters) -> int:
    return revisions.with_comments


def count_revisions_without_comments(revisions: RevisionCounters) -> int:
    return max(0, count_all_revisions(revisions) - revisions.with_comments)


def count_minor_revisions(revisions: RevisionCounters) -> int:
    return revisions.minor


def count_small_revisions(revisions: RevisionCounters) -> int:
    return revisions.small


def count_large_revisions(revisions: RevisionCounters) -> int:
    return revisions.large


def count_revisions_in_last(revisions: RevisionCounters, window: str) -> int:
    """Live revisions made in the last ``day``, ``week``, ``month`` or ``year``."""
    bucket = RevisionBucket(window)
    if bucket not in WINDOWS:
        raise ValueError(f"Unknown time window: {window!r}")
    return getattr(revisions, bucket.name.lower())


def count_automated_revisions(revisions: RevisionCounters) -> int:
    # No registry of semi-automated tools is available.
    return 0


def count_live_pages_edited(pages: PageCounters) -> int:
    return pages.edited_live


def count_deleted_pages_edited(pages: PageCounters) -> int:
    return pages.edited_deleted


def count_all_pages_edited(pages: PageCounters) -> int:
    return pages.edited_live + pages.edited_deleted


def count_pages_created(pages: PageCounters) -> int:
    return pages.created_live + pages.created_deleted


def count_created_pages_live(pages: PageCounters) -> int:
    return pages.created_live


def count_pages_created_deleted(pages: PageCounters) -> int:
    return pages.created_deleted


def count_pages_moved(pages: PageCounters) -> int:
    return pages.moved


def get_days_active(dates: RevisionDates) -> int:
    """Whole days between the first and last revision, never less than one."""
    if dates.first is None or dates.last is None:
        return 1
    return max(1, (dates.last - dates.first).days)


def average_revisions_per_page(revisions: RevisionCounters, pages: PageCounters) -> float:
    """Average revisions per edited page.

    Undefined when no page was edited; callers check
    ``count_all_pages_edited(pages) > 0`` first.
    """
    edited = count_all_pages_edited(pages)
    if edited <= 0:
        raise PreconditionError("No pages edited; average revisions per page is undefined")
    return round(count_all_revisions(revisions) / edited, 2)


def average_revisions_per_day(revisions: RevisionCounters, dates: RevisionDates) -> float:
    return round(count_all_revisions(revisions) / get_days_active(dates), 2)


def count_files_uploaded(logs: LogCounters) -> int:
    return logs["upload-upload"]


def count_files_uploaded_commons(logs: LogCounters) -> int:
    return logs["files_uploaded_commons"]


def thanks(logs: LogCounters) -> int:
    return logs["thanks-thank"]


def approvals(logs: LogCounters) -> int:
    """Reviews of every approval flavour, missing flavours counting as zero."""
    return logs.total(*APPROVAL_KEYS)


def patrols(logs: LogCounters) -> int:
    return logs["patrol-patrol"]
