from __future__ import annotations

from unittest import mock

from django.test import SimpleTestCase

from editcounter.exceptions import InvalidUsernameError
from editcounter.services.identity import IdentityResolver, normalize_username
from editcounter.services.site import fetch_global_groups

from .replica import ReplicaTestCase


class FakeRequest:
    def __init__(self, data):
        self._data = data

    def submit(self):
        return self._data


class FakeSite:
    def __init__(self):
        self.response = {"query": {"globaluserinfo": {"groups": []}}}
        self.requests: list[dict] = []
        self.extensions: set[str] = set()

    def simple_request(self, **kwargs):
        self.requests.append(kwargs)
        return FakeRequest(self.response)

    def has_extension(self, name):
        return name in self.extensions


class NormalizeUsernameTests(SimpleTestCase):
    def test_first_letter_is_upper_cased_and_underscores_become_spaces(self):
        self.assertEqual(normalize_username("  example_user "), "Example user")

    def test_ip_addresses_are_kept(self):
        self.assertEqual(normalize_username("2001:db8::1"), "2001:db8::1")

    def test_empty_username_is_rejected(self):
        with self.assertRaises(InvalidUsernameError):
            normalize_username(" _ ")


class IdentityResolverTests(ReplicaTestCase):
    def setUp(self):
        super().setUp()
        self.replica.user("Alice", groups=("sysop",))
        self.fake_site = FakeSite()
        self.site_patcher = mock.patch(
            "editcounter.services.site.pywikibot.Site",
            return_value=self.fake_site,
        )
        self.site_patcher.start()
        self.addCleanup(self.site_patcher.stop)
        self.resolver = IdentityResolver(self.gateway)

    def test_registered_user_resolves_with_id_and_local_groups(self):
        identity = self.resolver.resolve(self.project, "alice")

        self.assertEqual(identity.username, "Alice")
        self.assertEqual(identity.user_id, 1)
        self.assertFalse(identity.is_anonymous)
        self.assertEqual(identity.local_groups, ("sysop",))
        self.assertEqual(identity.global_groups, ())
        self.assertEqual(self.fake_site.requests, [])

    def test_unknown_name_resolves_as_anonymous(self):
        identity = self.resolver.resolve(self.project, "192.0.2.44")

        self.assertTrue(identity.is_anonymous)
        self.assertIsNone(identity.user_id)
        self.assertEqual(identity.username, "192.0.2.44")

    def test_global_groups_are_fetched_on_request(self):
        self.fake_site.response = {
            "query": {"globaluserinfo": {"groups": ["steward", "global-rollbacker"]}}
        }

        identity = self.resolver.resolve(self.project, "Alice", include_global_groups=True)

        self.assertEqual(identity.global_groups, ("global-rollbacker", "steward"))
        self.assertEqual(self.fake_site.requests[0]["meta"], "globaluserinfo")
        self.assertEqual(self.fake_site.requests[0]["guiuser"], "Alice")

    def test_global_groups_are_not_fetched_for_anonymous_editors(self):
        self.resolver.resolve(self.project, "192.0.2.44", include_global_groups=True)

        self.assertEqual(self.fake_site.requests, [])


class FetchGlobalGroupsTests(SimpleTestCase):
    def test_api_failure_yields_no_groups(self):
        project = mock.Mock(code="test", family="wikipedia", domain="test.wikipedia.org")
        site = mock.Mock()
        site.simple_request.return_value.submit.side_effect = RuntimeError("API down")

        with mock.patch("editcounter.services.site.pywikibot.Site", return_value=site):
            with self.assertLogs("editcounter.services.site", level="ERROR"):
                groups = fetch_global_groups(project, "Alice")

        self.assertEqual(groups, [])
