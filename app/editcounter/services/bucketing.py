"""
Reshaping of gateway rows into nested groupings.

Nothing here touches the database: the functions take rows from any aggregator
(or from the summary counter) and return namespace and time buckets.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .types import (
    REDIRECTS_NONE,
    REDIRECTS_ONLY,
    NamespaceMonthCounts,
    PageGroup,
    PageRow,
    PageSummary,
    RevisionRow,
    SourceRow,
)

MINUTE_BUCKET_FORMAT = "%Y%m%d%H%M"
HUMAN_TIME_FORMAT = "%Y-%m-%d %H:%M"


def sum_by_source(rows: Iterable[SourceRow]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for row in rows:
        totals[row.source] = totals.get(row.source, 0) + int(row.value or 0)
    return totals


def values_by_source(rows: Iterable[SourceRow]) -> dict[str, list]:
    values: dict[str, list] = {}
    for row in rows:
        if row.value is None:
            continue
        values.setdefault(row.source, []).append(row.value)
    return values


def minute_bucket(timestamp: datetime) -> str:
    return timestamp.strftime(MINUTE_BUCKET_FORMAT)


def summarize_page(row: PageRow) -> PageSummary:
    return PageSummary(
        namespace=row.namespace,
        title=row.title.replace("_", " "),
        deleted=row.deleted,
        is_redirect=row.is_redirect,
        timestamp=row.timestamp,
        human_time=row.timestamp.strftime(HUMAN_TIME_FORMAT),
        page_len=row.page_len,
        rev_len=row.rev_len,
        rev_id=row.rev_id,
        assessment=row.assessment,
        importance=row.importance,
    )


def group_pages_by_namespace_and_time(
    rows: Iterable[PageRow],
) -> dict[int, dict[str, list[PageSummary]]]:
    """Group pages as namespace (ascending) -> minute bucket (descending) -> pages.

    Pages inside a bucket keep a stable order: newest first, then by title.
    """
    ordered = sorted(rows, key=lambda row: row.title)
    ordered.sort(key=lambda row: row.timestamp, reverse=True)
    grouped: dict[int, dict[str, list[PageSummary]]] = {}
    for row in ordered:
        buckets = grouped.setdefault(row.namespace, {})
        buckets.setdefault(minute_bucket(row.timestamp), []).append(summarize_page(row))

    return {
        namespace: dict(sorted(grouped[namespace].items(), reverse=True))
        for namespace in sorted(grouped)
    }


def count_pages_by_namespace(rows: Iterable[PageRow]) -> dict[int, PageGroup]:
    counts: dict[int, PageGroup] = {}
    for row in rows:
        group = counts.setdefault(row.namespace, PageGroup())
        group.total += 1
        if row.is_redirect:
            group.redirects += 1
        if row.deleted:
            group.deleted += 1
    return {namespace: counts[namespace] for namespace in sorted(counts)}


def group_revisions_by_namespace_and_month(rows: Iterable[RevisionRow]) -> NamespaceMonthCounts:
    months: dict[int, dict[str, int]] = {}
    deleted: dict[int, int] = {}
    for row in rows:
        if len(row.month) < 6 or not row.edits:
            continue
        key = f"{row.month[:4]}-{row.month[4:6]}"
        per_month = months.setdefault(row.namespace, {})
        per_month[key] = per_month.get(key, 0) + row.edits
        if row.deleted:
            deleted[row.namespace] = deleted.get(row.namespace, 0) + row.edits

    return NamespaceMonthCounts(
        months={ns: dict(sorted(months[ns].items())) for ns in sorted(months)},
        deleted={ns: deleted[ns] for ns in sorted(deleted)},
    )


def summary_columns(redirects: str) -> list[str]:
    """Columns shown per namespace in the pages-created summary."""
    columns = ["namespace"]
    if redirects == REDIRECTS_ONLY:
        columns.append("redirects")
    elif redirects == REDIRECTS_NONE:
        columns.append("pages")
    else:
        columns.extend(["pages", "redirects"])
    columns.append("deleted")
    return columns
