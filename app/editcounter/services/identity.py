from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from editcounter.exceptions import InvalidUsernameError

from .site import fetch_global_groups
from .types import UserIdentity

if TYPE_CHECKING:
    from editcounter.models import Project

    from .gateway import QueryGateway

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    """Return the canonical MediaWiki form of a display username."""
    text = " ".join((username or "").replace("_", " ").split())
    if not text:
        raise InvalidUsernameError("Username is empty")
    return text[0].upper() + text[1:]


class IdentityResolver:
    """Turns a display username into a registered or anonymous identity.

    A name without an account resolves to an anonymous identity keyed by its
    display text; zero contributions are never an error at this layer.
    """

    def __init__(self, gateway: QueryGateway):
        self.gateway = gateway

    def resolve(
        self, project: Project, username: str, *, include_global_groups: bool = False
    ) -> UserIdentity:
        name = normalize_username(username)
        row = self.gateway.lookup_user(project, name)
        if row is None:
            logger.debug("No account named %s on %s, treating as anonymous", name, project.domain)
            return UserIdentity(username=name)

        global_groups: tuple[str, ...] = ()
        if include_global_groups:
            global_groups = tuple(fetch_global_groups(project, name))
        return UserIdentity(
            username=name,
            user_id=row.user_id,
            local_groups=row.groups,
            global_groups=global_groups,
        )
