"""Project model."""

from __future__ import annotations

import logging
import re

from django.db import models

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")

# Tables that Toolforge replicas also expose as actor-indexed views.
USERINDEX_TABLES = frozenset({"revision", "archive", "logging"})


class Project(models.Model):
    """Represents a MediaWiki project whose contributors are counted."""

    name = models.CharField(max_length=200)
    domain = models.CharField(max_length=255, unique=True, help_text="e.g. en.wikipedia.org")
    code = models.CharField(max_length=50)
    family = models.CharField(max_length=100, default="wikipedia")
    replica_database = models.CharField(
        max_length=100,
        blank=True,
        help_text=(
            "Database holding the replica tables, e.g. enwiki_p. "
            "Leave empty when the tables live in the connection's default schema."
        ),
    )
    use_userindex_views = models.BooleanField(
        default=False,
        help_text="Read revision, archive and logging through their _userindex views.",
    )
    has_page_assessments = models.BooleanField(
        null=True,
        blank=True,
        help_text="Whether the PageAssessments extension is installed. Detected when empty.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["domain"]

    def __str__(self) -> str:
        return f"{self.name} ({self.domain})"

    def get_table(self, name: str) -> str:
        """Return the physical table name for a logical replica table."""
        table = name
        if self.use_userindex_views and name in USERINDEX_TABLES:
            table = f"{name}_userindex"
        if self.replica_database:
            table = f"{self.replica_database}.{table}"
        for part in table.split("."):
            if not IDENTIFIER_RE.match(part):
                raise ValueError(f"Invalid table name: {table!r}")
        return table

    def supports_page_assessments(self) -> bool:
        """Return whether assessment classes can be joined for this project."""
        if self.has_page_assessments is not None:
            return self.has_page_assessments

        from editcounter.services.site import project_has_extension

        try:
            detected = project_has_extension(self, "PageAssessments")
        except Exception:
            logger.exception("Failed to detect PageAssessments on %s", self.domain)
            return False

        self.has_page_assessments = detected
        if self.pk:
            self.save(update_fields=["has_page_assessments", "updated_at"])
        return detected
