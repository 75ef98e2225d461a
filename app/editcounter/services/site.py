from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

os.environ.setdefault("PYWIKIBOT_NO_USER_CONFIG", "1")

import pywikibot  # noqa: E402

if TYPE_CHECKING:
    from editcounter.models import Project

logger = logging.getLogger(__name__)


def get_site(project: Project):
    return pywikibot.Site(code=project.code, fam=project.family)


def fetch_global_groups(project: Project, username: str) -> list[str]:
    """Return the global (cross-project) groups of a registered user."""
    try:
        site = get_site(project)
        request = site.simple_request(
            action="query",
            meta="globaluserinfo",
            guiuser=username,
            guiprop="groups",
            formatversion=2,
        )
        response = request.submit()
    except Exception:
        logger.exception("Failed to fetch global groups for %s on %s", username, project.domain)
        return []

    info = response.get("query", {}).get("globaluserinfo", {})
    groups = info.get("groups") or []
    return sorted({str(group) for group in groups})


def project_has_extension(project: Project, name: str) -> bool:
    site = get_site(project)
    return bool(site.has_extension(name))
