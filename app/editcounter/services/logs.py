from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from editcounter.conf import get_setting

from .base import CachedAggregator
from .types import LogCounters

if TYPE_CHECKING:
    from editcounter.models import Project

    from .types import StatsFilters, UserIdentity

logger = logging.getLogger(__name__)

COMMONS_UPLOADS_KEY = "files_uploaded_commons"


class LogAggregator(CachedAggregator):
    """Counts logged actions keyed by ``"<log_type>-<log_action>"``."""

    name = "logs"

    def __init__(self, *args, commons_domain: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        if commons_domain is None:
            commons_domain = get_setting("EDITSTATS_COMMONS_PROJECT")
        self.commons_domain = commons_domain

    def compute_log_counters(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> LogCounters:
        def compute() -> LogCounters:
            counters = LogCounters.from_rows(self.gateway.log_counts(project, identity, filters))
            uploads = self._commons_uploads(project, identity, filters)
            if uploads is not None:
                counters.counts[COMMONS_UPLOADS_KEY] = uploads
            return counters

        return self._cached("counters", project, identity, filters, compute)

    def _commons_uploads(
        self, project: Project, identity: UserIdentity, filters: StatsFilters
    ) -> int | None:
        if not self.commons_domain or project.domain == self.commons_domain:
            return None

        from editcounter.models import Project

        commons = Project.objects.filter(domain=self.commons_domain).first()
        if commons is None:
            logger.warning("Commons project %s is not configured", self.commons_domain)
            return None

        # Account ids differ between projects; match the uploader by name.
        rows = self.gateway.log_counts(commons, identity, filters, by_name=True)
        return sum(row.count for row in rows if row.key == "upload-upload")
