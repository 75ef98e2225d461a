"""
Query gateway for the MediaWiki replica database.

The gateway accepts a fixed set of query shapes, binds every value as a
parameter and returns typed rows. It does not interpret what the rows mean;
that is left to the aggregators.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING

from django.db import DatabaseError, InterfaceError, OperationalError, connections

from editcounter.conf import get_setting
from editcounter.exceptions import PermanentStoreError, TemporaryStoreError

from . import queries
from .parsers import decode_text, parse_bool, parse_int, parse_mw_timestamp, parse_optional_int
from .queries import Conditions, QueryShape, union_all
from .types import (
    REDIRECTS_NONE,
    REDIRECTS_ONLY,
    CountRow,
    LogRow,
    PageRow,
    RevisionRow,
    SourceRow,
    StatsFilters,
    TimestampRow,
    UserIdentity,
    UserRow,
)

if TYPE_CHECKING:
    from editcounter.models import Project

logger = logging.getLogger(__name__)


def actor_conditions(identity: UserIdentity, *, by_name: bool = False) -> Conditions:
    """Select the actor rows of one editor (joined as ``a``)."""
    if by_name:
        return Conditions().add("a.actor_name = %s", identity.username)
    if identity.is_anonymous:
        return Conditions().add("a.actor_user IS NULL AND a.actor_name = %s", identity.username)
    return Conditions().add("a.actor_user = %s", identity.user_id)


class QueryGateway:
    """Runs parameterized replica queries through a Django database alias."""

    def __init__(
        self,
        using: str | None = None,
        timeout: float | None = None,
        retry_backoff: float | None = None,
    ):
        self.using = using or get_setting("EDITSTATS_REPLICA_DATABASE")
        self.timeout = timeout if timeout is not None else get_setting("EDITSTATS_QUERY_TIMEOUT")
        self.retry_backoff = (
            retry_backoff
            if retry_backoff is not None
            else get_setting("EDITSTATS_QUERY_RETRY_BACKOFF")
        )

    # Execution

    def execute(self, shape: QueryShape, project: Project, sql: str, params: list) -> list[dict]:
        """Run one statement and return its rows as dictionaries.

        Connection failures and timeouts are retried once on a new connection
        after a pause and then raised as ``TemporaryStoreError``; any other
        database error is a ``PermanentStoreError``.
        """
        statement = sql.format(**self._tables(project))
        attempt = 0
        while True:
            attempt += 1
            start = time.perf_counter()
            try:
                rows = self._run(statement, params)
            except (OperationalError, InterfaceError) as exc:
                if attempt > 1:
                    logger.error(
                        "Query %s failed again on %s for %s: %s",
                        shape.value,
                        self.using,
                        project.domain,
                        exc,
                    )
                    raise TemporaryStoreError(
                        f"Replica database unavailable for {project.domain}: {exc}",
                        shape=shape.value,
                    ) from exc
                logger.warning(
                    "Query %s failed on %s for %s, retrying in %.1fs: %s",
                    shape.value,
                    self.using,
                    project.domain,
                    self.retry_backoff,
                    exc,
                )
                # Drop the broken connection so the retry opens a fresh one.
                connections[self.using].close()
                time.sleep(self.retry_backoff)
                continue
            except DatabaseError as exc:
                logger.exception("Query %s rejected for %s", shape.value, project.domain)
                raise PermanentStoreError(
                    f"Query {shape.value} failed for {project.domain}: {exc}", shape=shape.value
                ) from exc

            logger.debug(
                "Query %s for %s returned %d rows in %.1f ms",
                shape.value,
                project.domain,
                len(rows),
                (time.perf_counter() - start) * 1000,
            )
            return rows

    def _run(self, statement: str, params: list) -> list[dict]:
        connection = connections[self.using]
        if self.timeout and connection.vendor == "mysql":
            statement = f"SET STATEMENT max_statement_time={float(self.timeout)} FOR {statement}"
        with connection.cursor() as cursor:
            cursor.execute(statement, params)
            columns = [column[0] for column in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def _tables(self, project: Project) -> Mapping[str, str]:
        return {name: project.get_table(name) for name in queries.REPLICA_TABLES}

    # Predicates

    def _live_conditions(
        self,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        redirects: bool = False,
        since: str | None = None,
        by_name: bool = False,
    ) -> Conditions:
        where = actor_conditions(identity, by_name=by_name)
        if not filters.all_namespaces:
            where.add("p.page_namespace = %s", filters.namespace)
        if redirects and filters.redirects == REDIRECTS_ONLY:
            where.add("p.page_is_redirect = 1")
        elif redirects and filters.redirects == REDIRECTS_NONE:
            where.add("p.page_is_redirect = 0")
        if filters.start_timestamp:
            where.add("r.rev_timestamp >= %s", filters.start_timestamp)
        if filters.end_timestamp:
            where.add("r.rev_timestamp <= %s", filters.end_timestamp)
        if since:
            where.add("r.rev_timestamp >= %s", since)
        return where

    def _archive_conditions(
        self,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        alias: str = "ar",
        by_name: bool = False,
    ) -> Conditions:
        where = actor_conditions(identity, by_name=by_name)
        if not filters.all_namespaces:
            where.add(f"{alias}.ar_namespace = %s", filters.namespace)
        if filters.start_timestamp:
            where.add(f"{alias}.ar_timestamp >= %s", filters.start_timestamp)
        if filters.end_timestamp:
            where.add(f"{alias}.ar_timestamp <= %s", filters.end_timestamp)
        return where

    def _log_conditions(
        self,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        namespace: bool = False,
        by_name: bool = False,
    ) -> Conditions:
        where = actor_conditions(identity, by_name=by_name)
        if namespace and not filters.all_namespaces:
            where.add("l.log_namespace = %s", filters.namespace)
        if filters.start_timestamp:
            where.add("l.log_timestamp >= %s", filters.start_timestamp)
        if filters.end_timestamp:
            where.add("l.log_timestamp <= %s", filters.end_timestamp)
        return where

    def _count_part(
        self, source: str, from_clause: str, where: Conditions, value: str = "COUNT(*)"
    ) -> tuple[str, list]:
        return (
            f"SELECT '{source}' AS source, {value} AS value\n{from_clause}\nWHERE {where.sql}",
            where.params,
        )

    def _archived_creations(
        self, identity: UserIdentity, filters: StatsFilters
    ) -> tuple[str, list]:
        where = self._archive_conditions(identity, filters, alias="b")
        sql = queries.ARCHIVED_CREATIONS.format(
            where=where.sql, creation=queries.ARCHIVED_CREATION
        )
        return sql, where.params

    # Query shapes

    def lookup_user(self, project: Project, username: str) -> UserRow | None:
        rows = self.execute(QueryShape.USER_LOOKUP, project, queries.USER_LOOKUP, [username])
        if not rows:
            return None
        user_id = parse_optional_int(rows[0]["user_id"])
        if not user_id:
            return None
        groups = sorted({decode_text(row["ug_group"]) for row in rows if row["ug_group"]})
        return UserRow(user_id=user_id, groups=tuple(groups))

    def revision_counts(
        self,
        project: Project,
        identity: UserIdentity,
        filters: StatsFilters,
        windows: Mapping[str, str] | None = None,
    ) -> list[CountRow]:
        """Grouped counts over live and archived revisions.

        ``windows`` maps a discriminator (``day``, ``week``...) to the lower
        timestamp bound of that window; those counts cover live revisions.
        """
        live = self._live_conditions(identity, filters)
        archived = self._archive_conditions(identity, filters)
        small = f"< {queries.SMALL_EDIT_BYTES}"
        large = f"> {queries.LARGE_EDIT_BYTES}"
        parts = [
            self._count_part("live", queries.LIVE_REVISIONS, live),
            self._count_part("deleted", queries.ARCHIVED_REVISIONS, archived),
            self._count_part(
                "minor",
                queries.LIVE_REVISIONS,
                Conditions().extend(live).add("r.rev_minor_edit = 1"),
            ),
            self._count_part(
                "minor",
                queries.ARCHIVED_REVISIONS,
                Conditions().extend(archived).add("ar.ar_minor_edit = 1"),
            ),
            self._count_part(
                "small", queries.LIVE_REVISIONS, Conditions().extend(live).add(f"r.rev_len {small}")
            ),
            self._count_part(
                "small",
                queries.ARCHIVED_REVISIONS,
                Conditions().extend(archived).add(f"ar.ar_len {small}"),
            ),
            self._count_part(
                "large", queries.LIVE_REVISIONS, Conditions().extend(live).add(f"r.rev_len {large}")
            ),
            self._count_part(
                "large",
                queries.ARCHIVED_REVISIONS,
                Conditions().extend(archived).add(f"ar.ar_len {large}"),
            ),
            self._count_part(
                "with_comments",
                queries.LIVE_REVISIONS_WITH_COMMENTS,
                Conditions().extend(live).add("c.comment_text <> ''"),
            ),
            self._count_part(
                "with_comments",
                queries.ARCHIVED_REVISIONS_WITH_COMMENTS,
                Conditions().extend(archived).add("c.comment_text <> ''"),
            ),
        ]
        for window, since in (windows or {}).items():
            parts.append(
                self._count_part(
                    window,
                    queries.LIVE_REVISIONS,
                    self._live_conditions(identity, filters, since=since),
                )
            )
        sql, params = union_all(parts)
        rows = self.execute(QueryShape.GROUPED_COUNT, project, sql, params)
        return [CountRow(decode_text(row["source"]), parse_int(row["value"])) for row in rows]

    def revision_months(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> list[RevisionRow]:
        live = self._live_conditions(identity, filters)
        archived = self._archive_conditions(identity, filters)
        sql, params = union_all(
            [
                (
                    queries.REVISION_MONTHS_LIVE.format(
                        from_clause=queries.LIVE_REVISIONS, where=live.sql
                    ),
                    live.params,
                ),
                (
                    queries.REVISION_MONTHS_ARCHIVED.format(
                        from_clause=queries.ARCHIVED_REVISIONS, where=archived.sql
                    ),
                    archived.params,
                ),
            ]
        )
        rows = self.execute(QueryShape.REVISION_UNION, project, sql, params)
        return [
            RevisionRow(
                namespace=parse_int(row["namespace"]),
                month=decode_text(row["month"]),
                deleted=parse_bool(row["deleted"]),
                edits=parse_int(row["edits"]),
            )
            for row in rows
        ]

    def revision_dates(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> list[TimestampRow]:
        live = self._live_conditions(identity, filters)
        archived = self._archive_conditions(identity, filters)
        sql, params = union_all(
            [
                (
                    queries.REVISION_DATES_LIVE.format(
                        from_clause=queries.LIVE_REVISIONS, where=live.sql
                    ),
                    live.params,
                ),
                (
                    queries.REVISION_DATES_ARCHIVED.format(
                        from_clause=queries.ARCHIVED_REVISIONS, where=archived.sql
                    ),
                    archived.params,
                ),
            ]
        )
        rows = self.execute(QueryShape.TIMESTAMP_RANGE, project, sql, params)
        return [
            TimestampRow(
                first=parse_mw_timestamp(row["first_timestamp"]),
                last=parse_mw_timestamp(row["last_timestamp"]),
            )
            for row in rows
        ]

    def page_counts(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> list[CountRow]:
        live = self._live_conditions(identity, filters, redirects=True)
        archived = self._archive_conditions(identity, filters)
        creations_sql, creations_params = self._archived_creations(identity, filters)
        moves = self._log_conditions(identity, filters, namespace=True).add("l.log_type = 'move'")
        parts = [
            self._count_part(
                "edited-live", queries.LIVE_REVISIONS, live, "COUNT(DISTINCT r.rev_page)"
            ),
            (
                "SELECT 'edited-deleted' AS source, COUNT(*) AS value FROM ("
                f"SELECT DISTINCT ar.ar_namespace, ar.ar_title\n{queries.ARCHIVED_REVISIONS}\n"
                f"WHERE {archived.sql}) AS edited_deleted",
                archived.params,
            ),
            self._count_part(
                "created-live",
                queries.LIVE_REVISIONS,
                Conditions().extend(live).add(queries.LIVE_CREATION),
                "COUNT(DISTINCT r.rev_page)",
            ),
            (
                "SELECT 'created-deleted' AS source, COUNT(*) AS value "
                f"FROM ({creations_sql}) AS created_deleted",
                creations_params,
            ),
            self._count_part("moved", queries.LOG_EVENTS, moves),
        ]
        sql, params = union_all(parts)
        rows = self.execute(QueryShape.GROUPED_COUNT, project, sql, params)
        return [CountRow(decode_text(row["source"]), parse_int(row["value"])) for row in rows]

    def created_pages(
        self,
        project: Project,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        with_assessments: bool = False,
    ) -> list[PageRow]:
        """Pages whose first revision was made by the user, live and archived."""
        live = self._live_conditions(identity, filters, redirects=True)
        creations_sql, creations_params = self._archived_creations(identity, filters)
        sql, params = union_all(
            [
                (
                    queries.CREATED_LIVE_PAGES.format(
                        assessment=queries.PAGE_ASSESSMENT if with_assessments else "NULL",
                        importance=queries.PAGE_IMPORTANCE if with_assessments else "NULL",
                        from_clause=queries.LIVE_REVISIONS,
                        where=live.sql,
                        creation=queries.LIVE_CREATION,
                    ),
                    live.params,
                ),
                (queries.CREATED_ARCHIVED_PAGES.format(creations=creations_sql), creations_params),
            ]
        )
        rows = self.execute(QueryShape.PAGE_UNION, project, sql, params)
        pages = []
        for row in rows:
            timestamp = parse_mw_timestamp(row["rev_timestamp"])
            if timestamp is None:
                continue
            pages.append(
                PageRow(
                    namespace=parse_int(row["namespace"]),
                    title=decode_text(row["page_title"]),
                    deleted=parse_bool(row["deleted"]),
                    is_redirect=parse_bool(row["is_redirect"]),
                    timestamp=timestamp,
                    page_len=parse_int(row["page_len"]),
                    rev_len=parse_int(row["rev_len"]),
                    rev_id=parse_int(row["rev_id"]),
                    assessment=decode_text(row["assessment"]) or None,
                    importance=decode_text(row["importance"]) or None,
                )
            )
        return pages

    def log_counts(
        self,
        project: Project,
        identity: UserIdentity,
        filters: StatsFilters,
        *,
        by_name: bool = False,
    ) -> list[LogRow]:
        where = self._log_conditions(identity, filters, by_name=by_name)
        sql = queries.LOG_COUNTS.format(from_clause=queries.LOG_EVENTS, where=where.sql)
        rows = self.execute(QueryShape.GROUPED_COUNT, project, sql, where.params)
        return [
            LogRow(
                log_type=decode_text(row["log_type"]),
                log_action=decode_text(row["log_action"]),
                count=parse_int(row["value"]),
            )
            for row in rows
        ]

    def summary_counts(
        self, project: Project, username: str, filters: StatsFilters
    ) -> list[SourceRow]:
        """User id, archived and live edit counts and local groups in one query."""
        identity = UserIdentity(username=username)
        archived = self._archive_conditions(identity, filters, by_name=True)
        live = self._live_conditions(identity, filters, by_name=True)
        sql, params = union_all(
            [
                (queries.SUMMARY_USER_ID, [username]),
                (
                    f"SELECT 'arch', COUNT(*)\n{queries.ARCHIVED_REVISIONS}\nWHERE {archived.sql}",
                    archived.params,
                ),
                (
                    f"SELECT 'rev', COUNT(*)\n{queries.LIVE_REVISIONS}\nWHERE {live.sql}",
                    live.params,
                ),
                (queries.SUMMARY_GROUPS, [username]),
            ]
        )
        rows = self.execute(QueryShape.GROUPED_COUNT, project, sql, params)
        return [SourceRow(decode_text(row["source"]), row["value"]) for row in rows]
