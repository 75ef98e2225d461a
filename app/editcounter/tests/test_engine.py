from __future__ import annotations

import threading
from datetime import datetime, timezone
from unittest import mock

from django.test import SimpleTestCase, override_settings

from editcounter.exceptions import InvariantViolation, TemporaryStoreError
from editcounter.models import Project
from editcounter.services.cache import NullCache
from editcounter.services.engine import StatisticsEngine
from editcounter.services.gateway import QueryGateway
from editcounter.services.types import (
    CountRow,
    LogRow,
    RevisionRow,
    StatsFilters,
    TimestampRow,
    UserRow,
)

from .replica import ReplicaTestCase

NOW = datetime(2024, 3, 2, tzinfo=timezone.utc)


def _at(month, day):
    return datetime(2024, month, day, tzinfo=timezone.utc)


class StatisticsEngineTests(ReplicaTestCase):
    def setUp(self):
        super().setUp()
        alice = self.replica.user("Alice", groups=("autoreviewer",))
        first = self.replica.page("First")
        second = self.replica.page("Second")
        talk = self.replica.page("First", namespace=1)
        self.replica.revision(first, alice, "20240101120000", parent_id=0, comment="new")
        self.replica.revision(second, alice, "20240111120000", parent_id=0)
        self.replica.revision(talk, alice, "20240201120000", parent_id=0)
        self.replica.archive("Gone", alice, "20240105120000", parent_id=0)
        self.replica.log(alice, "thanks", "thank")
        self.replica.log(alice, "review", "approve")
        # Work serially: test data lives in this thread's transaction.
        self.engine = StatisticsEngine(
            self.gateway, NullCache(), max_workers=1, check_invariants=True
        )

    def test_live_and_deleted_edits_across_namespaces(self):
        counter = self.engine.compute(self.project, "Alice", now=NOW)

        self.assertEqual(counter.count_all_revisions(), 4)
        self.assertEqual(counter.count_live_revisions(), 3)
        self.assertEqual(counter.count_deleted_revisions(), 1)
        self.assertEqual(counter.namespace_totals(), {0: 3, 1: 1})

    def test_derived_metrics_come_from_the_counters(self):
        counter = self.engine.compute(self.project, "Alice", now=NOW)

        self.assertEqual(counter.count_pages_created(), 4)
        self.assertEqual(counter.count_all_pages_edited(), 4)
        self.assertEqual(counter.average_revisions_per_page(), 1.0)
        self.assertEqual(counter.get_days_active(), 31)
        self.assertEqual(counter.count_revisions_without_comments(), 3)
        self.assertEqual(counter.thanks(), 1)
        self.assertEqual(counter.approvals(), 1)
        self.assertEqual(counter.count_revisions_in_last("month"), 1)

    def test_as_dict_is_plain_data(self):
        data = self.engine.compute(self.project, "Alice", now=NOW).as_dict()

        self.assertEqual(data["user"]["user_id"], 1)
        self.assertEqual(data["user"]["local_groups"], ["autoreviewer"])
        self.assertEqual(data["revisions"]["all"], 4)
        self.assertEqual(data["pages"]["created-deleted"], 1)
        self.assertEqual(data["namespaces"]["namespace_totals"], {0: 3, 1: 1})

    def test_namespace_filter_keeps_totals_consistent(self):
        counter = self.engine.compute(self.project, "Alice", StatsFilters(namespace=0), now=NOW)

        self.assertEqual(counter.count_all_revisions(), 3)
        self.assertEqual(sum(counter.namespace_totals().values()), 3)

    def test_unknown_user_gets_zero_counters(self):
        counter = self.engine.compute(self.project, "Nobody", now=NOW)

        self.assertTrue(counter.identity.is_anonymous)
        self.assertEqual(counter.count_all_revisions(), 0)
        self.assertEqual(counter.get_days_active(), 1)

    def test_pages_report(self):
        report = self.engine.pages_report(self.project, "Alice")

        self.assertEqual(report.total, 4)
        self.assertEqual(report.deleted_total, 1)
        self.assertEqual(list(report.pages), [0, 1])

    @mock.patch(
        "editcounter.services.simple_counter.fetch_global_groups", return_value=["steward"]
    )
    def test_summary(self, fetch_global_groups):
        counter = self.engine.summary(self.project, "Alice", StatsFilters(namespace=0))

        self.assertEqual(counter.live_edit_count, 2)
        self.assertEqual(counter.deleted_edit_count, 1)
        self.assertEqual(counter.global_user_groups, ["steward"])


@override_settings(EDITSTATS_COMMONS_PROJECT=None)
class ParallelEngineTests(SimpleTestCase):
    def setUp(self):
        self.project = Project(
            name="Test", domain="test.wikipedia.org", code="test", has_page_assessments=False
        )
        self.gateway = mock.Mock(spec=QueryGateway)
        self.gateway.lookup_user.return_value = UserRow(user_id=7, groups=("sysop",))
        self.gateway.revision_counts.return_value = [
            CountRow("live", 3),
            CountRow("deleted", 1),
            CountRow("minor", 2),
            CountRow("week", 1),
        ]
        self.gateway.revision_dates.return_value = [
            TimestampRow(_at(1, 1), _at(2, 1)),
            TimestampRow(_at(1, 15), _at(1, 20)),
        ]
        self.gateway.revision_months.return_value = [
            RevisionRow(0, "202401", False, 2),
            RevisionRow(0, "202401", True, 1),
            RevisionRow(1, "202402", False, 1),
        ]
        self.gateway.page_counts.return_value = [
            CountRow("edited-live", 2),
            CountRow("edited-deleted", 1),
            CountRow("created-live", 1),
            CountRow("created-deleted", 1),
            CountRow("moved", 0),
        ]
        self.gateway.log_counts.return_value = [LogRow("review", "approve-ia", 2)]

    def _engine(self, **kwargs):
        kwargs.setdefault("check_invariants", True)
        return StatisticsEngine(self.gateway, NullCache(), max_workers=4, **kwargs)

    @mock.patch("editcounter.services.engine.connections")
    def test_aggregators_run_in_worker_threads(self, connections):
        threads = set()

        def record(*args, **kwargs):
            threads.add(threading.get_ident())
            return [CountRow("live", 3), CountRow("deleted", 1)]

        self.gateway.revision_counts.side_effect = record

        counter = self._engine().compute(self.project, "Alice", now=NOW)

        self.assertEqual(counter.count_all_revisions(), 4)
        self.assertNotIn(threading.get_ident(), threads)
        self.assertTrue(connections.close_all.called)

    @mock.patch("editcounter.services.engine.connections")
    def test_results_match_the_serial_path(self, connections):
        parallel = self._engine().compute(self.project, "Alice", now=NOW)
        serial = StatisticsEngine(
            self.gateway, NullCache(), max_workers=1, check_invariants=True
        ).compute(self.project, "Alice", now=NOW)

        self.assertEqual(parallel.as_dict(), serial.as_dict())
        self.assertEqual(parallel.approvals(), 2)
        self.assertEqual(parallel.dates.first, _at(1, 1))
        self.assertEqual(parallel.dates.last, _at(2, 1))

    @mock.patch("editcounter.services.engine.connections")
    def test_identity_is_resolved_before_aggregators_run(self, connections):
        self._engine().compute(self.project, "alice", now=NOW)

        self.gateway.lookup_user.assert_called_once_with(self.project, "Alice")
        identity = self.gateway.revision_counts.call_args.args[1]
        self.assertEqual(identity.user_id, 7)

    @mock.patch("editcounter.services.engine.connections")
    def test_inconsistent_totals_raise_when_checking(self, connections):
        self.gateway.revision_months.return_value = [RevisionRow(0, "202401", False, 1)]

        with self.assertRaises(InvariantViolation):
            self._engine().compute(self.project, "Alice", now=NOW)

        counter = self._engine(check_invariants=False).compute(self.project, "Alice", now=NOW)
        self.assertEqual(counter.count_all_revisions(), 4)

    @mock.patch("editcounter.services.engine.connections")
    def test_store_failure_propagates(self, connections):
        self.gateway.page_counts.side_effect = TemporaryStoreError("down", shape="grouped-count")

        with self.assertRaises(TemporaryStoreError):
            self._engine().compute(self.project, "Alice", now=NOW)
