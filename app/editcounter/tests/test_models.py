from __future__ import annotations

from unittest import mock

from django.test import TestCase

from editcounter.models import Project


class ProjectTests(TestCase):
    def setUp(self):
        self.project = Project.objects.create(
            name="Finnish Wikipedia",
            domain="fi.wikipedia.org",
            code="fi",
        )

    def test_tables_default_to_plain_names(self):
        self.assertEqual(self.project.get_table("revision"), "revision")
        self.assertEqual(self.project.get_table("page"), "page")

    def test_replica_database_and_userindex_views(self):
        self.project.replica_database = "fiwiki_p"
        self.project.use_userindex_views = True

        self.assertEqual(self.project.get_table("revision"), "fiwiki_p.revision_userindex")
        self.assertEqual(self.project.get_table("archive"), "fiwiki_p.archive_userindex")
        self.assertEqual(self.project.get_table("logging"), "fiwiki_p.logging_userindex")
        self.assertEqual(self.project.get_table("page"), "fiwiki_p.page")

    def test_invalid_table_names_are_rejected(self):
        self.project.replica_database = "fiwiki_p; DROP TABLE page"

        with self.assertRaises(ValueError):
            self.project.get_table("page")

    def test_page_assessments_flag_is_used_when_known(self):
        self.project.has_page_assessments = True

        with mock.patch("editcounter.services.site.project_has_extension") as detect:
            self.assertTrue(self.project.supports_page_assessments())

        detect.assert_not_called()

    def test_page_assessments_are_detected_once_and_stored(self):
        with mock.patch(
            "editcounter.services.site.project_has_extension", return_value=True
        ) as detect:
            self.assertTrue(self.project.supports_page_assessments())
            self.assertTrue(self.project.supports_page_assessments())

        detect.assert_called_once_with(self.project, "PageAssessments")
        self.project.refresh_from_db()
        self.assertTrue(self.project.has_page_assessments)

    def test_detection_failure_reads_as_unsupported(self):
        with mock.patch(
            "editcounter.services.site.project_has_extension",
            side_effect=RuntimeError("API down"),
        ):
            with self.assertLogs("editcounter.models.project", level="ERROR"):
                self.assertFalse(self.project.supports_page_assessments())

        self.project.refresh_from_db()
        self.assertIsNone(self.project.has_page_assessments)

    def test_str(self):
        self.assertEqual(str(self.project), "Finnish Wikipedia (fi.wikipedia.org)")
