from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING

from .bucketing import sum_by_source, values_by_source
from .gateway import QueryGateway
from .identity import normalize_username
from .parsers import decode_text, parse_optional_int
from .site import fetch_global_groups
from .types import NAMESPACE_ALL, StatsFilters

if TYPE_CHECKING:
    from editcounter.models import Project

logger = logging.getLogger(__name__)


class SimpleEditCounter:
    """Basic edit count for a user, fetched with a single query.

    Reads the user id, live and deleted edit counts and local groups at once;
    global groups come from the API for registered users.
    """

    def __init__(
        self,
        project: Project,
        username: str,
        namespace: int | str | None = NAMESPACE_ALL,
        start: date | datetime | str | None = None,
        end: date | datetime | str | None = None,
        *,
        gateway: QueryGateway | None = None,
    ):
        self.project = project
        self.username = normalize_username(username)
        self.filters = StatsFilters.build(
            namespace=0 if namespace == "" else namespace, start=start, end=end
        )
        self.gateway = gateway or QueryGateway()
        self.user_id: int | None = None
        self.live_edit_count = 0
        self.deleted_edit_count = 0
        self.user_groups: list[str] = []
        self.global_user_groups: list[str] = []

    def prepare_data(self) -> None:
        rows = self.gateway.summary_counts(self.project, self.username, self.filters)
        counts = sum_by_source(row for row in rows if row.source in ("arch", "rev"))
        values = values_by_source(row for row in rows if row.source in ("id", "groups"))

        ids = values.get("id", [])
        self.user_id = parse_optional_int(ids[0]) if ids else None
        self.deleted_edit_count = counts.get("arch", 0)
        self.live_edit_count = counts.get("rev", 0)
        self.user_groups = [decode_text(group) for group in values.get("groups", [])]

        if self.user_id:
            self.global_user_groups = fetch_global_groups(self.project, self.username)
        logger.debug(
            "Simple edit count for %s on %s: %d live, %d deleted",
            self.username,
            self.project.domain,
            self.live_edit_count,
            self.deleted_edit_count,
        )

    @property
    def total_edit_count(self) -> int:
        return self.live_edit_count + self.deleted_edit_count

    def is_unknown_user(self) -> bool:
        """No account and no edits: the name matches nobody on the project."""
        return not self.user_id and self.total_edit_count == 0

    def get_data(self) -> dict:
        return {
            "user_id": self.user_id,
            "deleted_edit_count": self.deleted_edit_count,
            "live_edit_count": self.live_edit_count,
            "total_edit_count": self.total_edit_count,
            "user_groups": list(self.user_groups),
            "global_user_groups": list(self.global_user_groups),
        }
