"""
SQL fragments for the replica database.

Table names appear as ``{revision}``, ``{archive}``... placeholders and are filled
in from ``Project.get_table`` once a statement is complete. Values never enter the
text of a statement: they are collected as ``%s`` parameters by ``Conditions``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

SMALL_EDIT_BYTES = 20
LARGE_EDIT_BYTES = 1000

REPLICA_TABLES = (
    "revision",
    "archive",
    "page",
    "actor",
    "comment",
    "logging",
    "user",
    "user_groups",
    "page_assessments",
)


class QueryShape(str, Enum):
    USER_LOOKUP = "user-lookup"
    GROUPED_COUNT = "grouped-count"
    REVISION_UNION = "revision-union"
    PAGE_UNION = "page-union"
    TIMESTAMP_RANGE = "timestamp-range"


@dataclass
class Conditions:
    """``AND``-joined predicates with their positional parameters."""

    clauses: list[str] = field(default_factory=list)
    params: list = field(default_factory=list)

    def add(self, clause: str, *params) -> Conditions:
        self.clauses.append(clause)
        self.params.extend(params)
        return self

    def extend(self, other: Conditions) -> Conditions:
        self.clauses.extend(other.clauses)
        self.params.extend(other.params)
        return self

    @property
    def sql(self) -> str:
        return " AND ".join(self.clauses) if self.clauses else "1 = 1"


def union_all(parts: list[tuple[str, list]]) -> tuple[str, list]:
    sql = "\nUNION ALL\n".join(part for part, _ in parts)
    params = [param for _, part_params in parts for param in part_params]
    return sql, params


LIVE_REVISIONS = """FROM {revision} AS r
JOIN {page} AS p ON p.page_id = r.rev_page
JOIN {actor} AS a ON a.actor_id = r.rev_actor"""

LIVE_REVISIONS_WITH_COMMENTS = (
    LIVE_REVISIONS + "\nJOIN {comment} AS c ON c.comment_id = r.rev_comment_id"
)

ARCHIVED_REVISIONS = """FROM {archive} AS ar
JOIN {actor} AS a ON a.actor_id = ar.ar_actor"""

ARCHIVED_REVISIONS_WITH_COMMENTS = (
    ARCHIVED_REVISIONS + "\nJOIN {comment} AS c ON c.comment_id = ar.ar_comment_id"
)

LOG_EVENTS = """FROM {logging} AS l
JOIN {actor} AS a ON a.actor_id = l.log_actor"""

LIVE_CREATION = "(r.rev_parent_id = 0 OR r.rev_parent_id IS NULL)"
ARCHIVED_CREATION = "(b.ar_parent_id = 0 OR b.ar_parent_id IS NULL)"

# One row per archived namespace/title whose first revision was made by the user.
# Titles that the user moved away from are left out, so a page renamed and then
# deleted is not counted under both names; a title deleted, restored and deleted
# again collapses into a single row.
ARCHIVED_CREATIONS = """SELECT b.ar_namespace AS namespace, b.ar_title AS page_title,
    MIN(b.ar_timestamp) AS rev_timestamp, MIN(b.ar_rev_id) AS rev_id, MAX(b.ar_len) AS rev_len
FROM {{archive}} AS b
JOIN {{actor}} AS a ON a.actor_id = b.ar_actor
LEFT JOIN {{logging}} AS l ON l.log_namespace = b.ar_namespace
    AND l.log_title = b.ar_title
    AND l.log_actor = b.ar_actor
    AND l.log_type = 'move'
    AND l.log_action IN ('move', 'move_redir')
WHERE {where} AND {creation} AND l.log_id IS NULL
GROUP BY b.ar_namespace, b.ar_title"""

PAGE_ASSESSMENT = (
    "(SELECT MIN(pa.pa_class) FROM {page_assessments} AS pa WHERE pa.pa_page_id = p.page_id)"
)

PAGE_IMPORTANCE = (
    "(SELECT MIN(pa.pa_importance) FROM {page_assessments} AS pa"
    " WHERE pa.pa_page_id = p.page_id)"
)

CREATED_LIVE_PAGES = """SELECT p.page_namespace AS namespace, p.page_title AS page_title,
    0 AS deleted, p.page_is_redirect AS is_redirect, r.rev_timestamp AS rev_timestamp,
    p.page_len AS page_len, r.rev_len AS rev_len, r.rev_id AS rev_id, {assessment} AS assessment,
    {importance} AS importance
{from_clause}
WHERE {where} AND {creation}"""

CREATED_ARCHIVED_PAGES = """SELECT ac.namespace, ac.page_title, 1, 0, ac.rev_timestamp,
    0, ac.rev_len, ac.rev_id, NULL, NULL
FROM ({creations}) AS ac"""

REVISION_MONTHS_LIVE = """SELECT p.page_namespace AS namespace,
    SUBSTR(r.rev_timestamp, 1, 6) AS month, 0 AS deleted, COUNT(*) AS edits
{from_clause}
WHERE {where}
GROUP BY p.page_namespace, SUBSTR(r.rev_timestamp, 1, 6)"""

REVISION_MONTHS_ARCHIVED = """SELECT ar.ar_namespace, SUBSTR(ar.ar_timestamp, 1, 6), 1, COUNT(*)
{from_clause}
WHERE {where}
GROUP BY ar.ar_namespace, SUBSTR(ar.ar_timestamp, 1, 6)"""

REVISION_DATES_LIVE = """SELECT MIN(r.rev_timestamp) AS first_timestamp,
    MAX(r.rev_timestamp) AS last_timestamp
{from_clause}
WHERE {where}"""

REVISION_DATES_ARCHIVED = """SELECT MIN(ar.ar_timestamp), MAX(ar.ar_timestamp)
{from_clause}
WHERE {where}"""

LOG_COUNTS = """SELECT l.log_type AS log_type, l.log_action AS log_action, COUNT(*) AS value
{from_clause}
WHERE {where}
GROUP BY l.log_type, l.log_action"""

USER_LOOKUP = """SELECT u.user_id AS user_id, ug.ug_group AS ug_group
FROM {user} AS u
LEFT JOIN {user_groups} AS ug ON ug.ug_user = u.user_id
WHERE u.user_name = %s"""

SUMMARY_USER_ID = """SELECT 'id' AS source, u.user_id AS value
FROM {user} AS u
WHERE u.user_name = %s"""

SUMMARY_GROUPS = """SELECT 'groups', ug.ug_group
FROM {user_groups} AS ug
JOIN {user} AS u ON u.user_id = ug.ug_user
WHERE u.user_name = %s"""
