from __future__ import annotations

from datetime import datetime, timezone
from unittest import mock

from django.core.cache import caches
from django.test import SimpleTestCase, override_settings

from editcounter.services.cache import NullCache, StatsCache, scope_key
from editcounter.services.revisions import RevisionAggregator
from editcounter.services.types import StatsFilters, UserIdentity

from .replica import ReplicaTestCase

NOW = datetime(2024, 3, 2, tzinfo=timezone.utc)
LATER = datetime(2025, 6, 1, tzinfo=timezone.utc)

TEST_CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "editstats-tests",
    }
}


class ScopeKeyTests(SimpleTestCase):
    def test_key_is_deterministic(self):
        first = scope_key("revisions.counters", "en.wikipedia.org", {"user_id": 1}, {"ns": "all"})
        second = scope_key("revisions.counters", "en.wikipedia.org", {"user_id": 1}, {"ns": "all"})

        self.assertEqual(first, second)
        self.assertTrue(first.startswith("editstats.revisions.counters."))

    def test_different_filters_never_share_a_key(self):
        identity = UserIdentity(username="Alice", user_id=1).scope()

        keys = {
            scope_key("revisions.counters", "en.wikipedia.org", identity, filters.scope())
            for filters in (
                StatsFilters(),
                StatsFilters(namespace=0),
                StatsFilters(redirects="noredirects"),
            )
        }

        self.assertEqual(len(keys), 3)

    def test_different_aggregators_and_projects_never_share_a_key(self):
        identity = {"user_id": 1}
        filters = StatsFilters().scope()

        self.assertNotEqual(
            scope_key("revisions.counters", "en.wikipedia.org", identity, filters),
            scope_key("pages.counters", "en.wikipedia.org", identity, filters),
        )
        self.assertNotEqual(
            scope_key("revisions.counters", "en.wikipedia.org", identity, filters),
            scope_key("revisions.counters", "fi.wikipedia.org", identity, filters),
        )


@override_settings(CACHES=TEST_CACHES)
class StatsCacheTests(SimpleTestCase):
    def setUp(self):
        caches["default"].clear()

    def test_put_then_get(self):
        cache = StatsCache("default")
        cache.put("editstats.test.key", {"live": 3}, 60)

        self.assertEqual(cache.get("editstats.test.key"), {"live": 3})

    def test_backend_failure_reads_as_miss(self):
        cache = StatsCache("default")
        backend = mock.Mock()
        backend.get.side_effect = ConnectionError("cache down")

        with mock.patch.object(StatsCache, "backend", backend):
            with self.assertLogs("editcounter.services.cache", level="ERROR"):
                self.assertIsNone(cache.get("editstats.test.key"))

    def test_null_cache_holds_nothing(self):
        cache = NullCache()
        cache.put("editstats.test.key", {"live": 3}, 60)

        self.assertIsNone(cache.get("editstats.test.key"))


@override_settings(CACHES=TEST_CACHES)
class CacheTransparencyTests(ReplicaTestCase):
    def setUp(self):
        super().setUp()
        caches["default"].clear()
        alice = self.replica.user("Alice")
        page = self.replica.page("Example")
        self.replica.revision(page, alice, "20240101000000", parent_id=0, minor=True)
        self.replica.revision(page, alice, "20240301000000", comment="update")
        self.replica.archive("Gone", alice, "20240201000000")
        self.identity = UserIdentity(username="Alice", user_id=1)

    def test_cached_and_uncached_results_are_identical(self):
        cached = RevisionAggregator(self.gateway, StatsCache("default"))
        uncached = RevisionAggregator(self.gateway, NullCache())

        first = cached.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=NOW
        )
        second = cached.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=NOW
        )
        plain = uncached.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=NOW
        )

        self.assertEqual(first, second)
        self.assertEqual(first, plain)

    def test_second_call_is_served_from_cache(self):
        aggregator = RevisionAggregator(self.gateway, StatsCache("default"))

        with mock.patch.object(
            self.gateway, "revision_counts", wraps=self.gateway.revision_counts
        ) as revision_counts:
            aggregator.compute_revision_counters(self.project, self.identity, StatsFilters())
            aggregator.compute_revision_counters(self.project, self.identity, StatsFilters())

        self.assertEqual(revision_counts.call_count, 1)

    def test_filtered_requests_are_cached_separately(self):
        aggregator = RevisionAggregator(self.gateway, StatsCache("default"))

        everything = aggregator.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=NOW
        )
        talk = aggregator.compute_revision_counters(
            self.project, self.identity, StatsFilters(namespace=1), now=NOW
        )

        self.assertEqual(everything.live, 2)
        self.assertEqual(talk.live, 0)

    def test_windows_follow_an_explicit_now(self):
        aggregator = RevisionAggregator(self.gateway, StatsCache("default"))

        recent = aggregator.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=NOW
        )
        a_year_later = aggregator.compute_revision_counters(
            self.project, self.identity, StatsFilters(), now=LATER
        )

        self.assertEqual(recent.month, 1)
        self.assertEqual(a_year_later.month, 0)
        self.assertEqual(a_year_later.live, 2)
