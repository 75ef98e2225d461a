from __future__ import annotations

from datetime import date

from django.test import SimpleTestCase

from editcounter.exceptions import InvalidFilterError
from editcounter.services.types import (
    CountRow,
    LogCounters,
    LogRow,
    PageCounters,
    RevisionCounters,
    StatsFilters,
    UserIdentity,
)


class StatsFiltersTests(SimpleTestCase):
    def test_defaults_select_everything(self):
        filters = StatsFilters()

        self.assertTrue(filters.all_namespaces)
        self.assertIsNone(filters.start_timestamp)
        self.assertIsNone(filters.end_timestamp)

    def test_build_parses_query_string_values(self):
        filters = StatsFilters.build(namespace="4", redirects="noredirects", start="2024-01-02")

        self.assertEqual(filters.namespace, 4)
        self.assertEqual(filters.redirects, "noredirects")
        self.assertEqual(filters.start, date(2024, 1, 2))

    def test_date_bounds_cover_whole_days(self):
        filters = StatsFilters(start=date(2024, 1, 2), end=date(2024, 1, 3))

        self.assertEqual(filters.start_timestamp, "20240102000000")
        self.assertEqual(filters.end_timestamp, "20240103235959")

    def test_invalid_values_are_rejected(self):
        invalid = [
            {"namespace": "talk"},
            {"namespace": "-1"},
            {"namespace": "²"},
            {"redirects": "sometimes"},
            {"start": "yesterday"},
            {"start": "2024-02-01", "end": "2024-01-01"},
        ]
        for kwargs in invalid:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(InvalidFilterError):
                    StatsFilters.build(**kwargs)

    def test_invalid_filter_is_a_value_error(self):
        with self.assertRaises(ValueError):
            StatsFilters(namespace=-3)

    def test_scope_differs_per_filter_set(self):
        self.assertNotEqual(StatsFilters().scope(), StatsFilters(namespace=0).scope())


class UserIdentityTests(SimpleTestCase):
    def test_identity_without_id_is_anonymous(self):
        self.assertTrue(UserIdentity(username="192.0.2.1").is_anonymous)
        self.assertFalse(UserIdentity(username="Alice", user_id=5).is_anonymous)


class CountersTests(SimpleTestCase):
    def test_revision_counters_reduce_repeated_discriminators(self):
        counters = RevisionCounters.from_rows(
            [CountRow("live", 3), CountRow("minor", 1), CountRow("minor", 2)]
        )

        self.assertEqual(counters.live, 3)
        self.assertEqual(counters.minor, 3)
        self.assertEqual(counters.deleted, 0)

    def test_unknown_discriminator_is_rejected(self):
        with self.assertRaises(ValueError):
            PageCounters.from_rows([CountRow("edited-total", 1)])

    def test_page_counters_use_hyphenated_keys(self):
        counters = PageCounters.from_rows([CountRow("created-live", 2), CountRow("moved", 1)])

        self.assertEqual(counters.as_dict()["created-live"], 2)
        self.assertEqual(counters.as_dict()["edited-deleted"], 0)

    def test_log_counters_are_keyed_by_type_and_action(self):
        counters = LogCounters.from_rows(
            [LogRow("thanks", "thank", 2), LogRow("review", "approve-a", 1)]
        )

        self.assertEqual(list(counters.as_dict()), ["review-approve-a", "thanks-thank"])
        self.assertEqual(counters["upload-upload"], 0)
        self.assertEqual(counters.total("thanks-thank", "review-approve-a", "missing"), 3)
