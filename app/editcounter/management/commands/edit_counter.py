"""
Management command to print edit statistics for a user.

Runs the statistics engine against the replica database and writes the result
as JSON.
"""

import json

from django.core.management.base import BaseCommand, CommandError

from editcounter.exceptions import EditStatsError, StoreUnavailable
from editcounter.models import Project
from editcounter.services import NullCache, StatisticsEngine, StatsFilters
from editcounter.services.types import REDIRECT_FILTERS, REDIRECTS_ALL


class Command(BaseCommand):
    help = "Compute edit statistics for a user on a project"

    def add_arguments(self, parser):
        parser.add_argument("project", type=str, help="Project domain (e.g., 'fi.wikipedia.org')")
        parser.add_argument("username", type=str, help="Username or IP address")
        parser.add_argument(
            "--namespace",
            type=str,
            default="all",
            help="Namespace id, or 'all' (default)",
        )
        parser.add_argument(
            "--redirects",
            choices=REDIRECT_FILTERS,
            default=REDIRECTS_ALL,
            help="Redirect filter for the pages report",
        )
        parser.add_argument("--start", type=str, help="First day to include (YYYY-MM-DD)")
        parser.add_argument("--end", type=str, help="Last day to include (YYYY-MM-DD)")
        parser.add_argument(
            "--no-cache",
            action="store_true",
            help="Recompute everything instead of reading cached aggregates",
        )
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            "--pages",
            action="store_true",
            help="Print the pages created by the user instead of the edit counter",
        )
        group.add_argument(
            "--simple",
            action="store_true",
            help="Print only the basic edit count and groups",
        )

    def handle(self, *args, **options):
        try:
            project = Project.objects.get(domain=options["project"])
        except Project.DoesNotExist:
            self.stdout.write(self.style.ERROR(f"Project '{options['project']}' not found"))
            return

        try:
            filters = StatsFilters.build(
                namespace=options["namespace"],
                redirects=options["redirects"],
                start=options.get("start"),
                end=options.get("end"),
            )
        except EditStatsError as e:
            raise CommandError(str(e)) from e

        engine = StatisticsEngine(cache=NullCache() if options["no_cache"] else None)
        username = options["username"]

        try:
            if options["simple"]:
                counter = engine.summary(project, username, filters)
                if counter.is_unknown_user():
                    self.stdout.write(
                        self.style.WARNING(f"No user '{username}' on {project.domain}")
                    )
                    return
                data = counter.get_data()
            elif options["pages"]:
                report = engine.pages_report(project, username, filters)
                if report.total < 1:
                    self.stdout.write(
                        self.style.WARNING(f"No pages created by '{username}' on {project.domain}")
                    )
                    return
                data = report.as_dict()
            else:
                data = engine.compute(
                    project, username, filters, include_global_groups=True
                ).as_dict()
        except StoreUnavailable as e:
            kind = "temporary" if e.temporary else "permanent"
            self.stdout.write(self.style.ERROR(f"Replica database error ({kind}): {e}"))
            return
        except EditStatsError as e:
            raise CommandError(str(e)) from e

        self.stdout.write(json.dumps(data, indent=2, default=str))
        self.stdout.write(self.style.SUCCESS(f"Done: {project.domain} / {username}"))
