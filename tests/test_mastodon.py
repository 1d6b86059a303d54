"""
Unit Tests for the Mastodon Client Module.

This test suite validates app registration, the OAuth code exchange,
credential verification and timeline paging. Mastodon.py is always
mocked; no test talks to a real instance.

Running Tests:
    $ pytest tests/test_mastodon.py -v
"""
import unittest
from unittest.mock import patch, MagicMock, call

from mastodon import MastodonAPIError, MastodonNetworkError

from config import SpikeError
from credentials import Credentials
from mastodon_client import (
    MastodonClient,
    MastodonClientError,
    Registration,
    TimelinePager,
    normalize_base_url,
)


def _status(n):
    return {"id": str(n), "uri": f"https://mastodon.social/users/alice/statuses/{n}"}


CREDENTIALS = Credentials(
    base="https://mastodon.social",
    client_id="client_id",
    client_secret="client_secret",
    redirect="urn:ietf:wg:oauth:2.0:oob",
    token="access_token",
)

REGISTRATION = Registration(
    base="https://mastodon.social",
    client_id="client_id",
    client_secret="client_secret",
)


class TestNormalizeBaseUrl(unittest.TestCase):

    def test_adds_scheme(self):
        self.assertEqual(normalize_base_url("mastodon.social"), "https://mastodon.social")

    def test_strips_whitespace_and_trailing_slash(self):
        self.assertEqual(normalize_base_url("  https://mastodon.social//\n"), "https://mastodon.social")

    def test_keeps_explicit_scheme(self):
        self.assertEqual(normalize_base_url("http://localhost:3000"), "http://localhost:3000")

    def test_empty_raises(self):
        with self.assertRaises(ValueError):
            normalize_base_url("   ")


class TestRegistration(unittest.TestCase):
    """Test suite for app registration and OAuth."""

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_register_app(self, mock_mastodon):
        mock_mastodon.create_app.return_value = ("new_id", "new_secret")

        registration = MastodonClient.register_app(
            "mastodon.social",
            app_name="spike-mastodon",
            website="https://example.com"
        )

        mock_mastodon.create_app.assert_called_once_with(
            "spike-mastodon",
            scopes=["read"],
            redirect_uris="urn:ietf:wg:oauth:2.0:oob",
            website="https://example.com",
            api_base_url="https://mastodon.social",
            request_timeout=30
        )
        self.assertEqual(registration.base, "https://mastodon.social")
        self.assertEqual(registration.client_id, "new_id")
        self.assertEqual(registration.client_secret, "new_secret")
        self.assertEqual(registration.scopes, ["read"])

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_register_app_failure(self, mock_mastodon):
        mock_mastodon.create_app.side_effect = MastodonNetworkError("connection refused")

        with self.assertRaises(MastodonClientError) as ctx:
            MastodonClient.register_app("mastodon.social")

        self.assertIn("Couldn't register app", str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, MastodonNetworkError)
        self.assertIsInstance(ctx.exception, SpikeError)

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_register_app_empty_server(self, mock_mastodon):
        with self.assertRaises(MastodonClientError):
            MastodonClient.register_app("")

        mock_mastodon.create_app.assert_not_called()

    def test_registration_repr_hides_secret(self):
        self.assertNotIn("client_secret", repr(REGISTRATION))
        self.assertIn("client_id", repr(REGISTRATION))

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authorization_url(self, mock_mastodon):
        mock_api = MagicMock()
        mock_mastodon.return_value = mock_api
        mock_api.auth_request_url.return_value = "https://mastodon.social/oauth/authorize?client_id=client_id"

        url = MastodonClient.authorization_url(REGISTRATION)

        self.assertEqual(url, "https://mastodon.social/oauth/authorize?client_id=client_id")
        mock_mastodon.assert_called_once_with(
            client_id="client_id",
            client_secret="client_secret",
            api_base_url="https://mastodon.social",
            request_timeout=30
        )
        mock_api.auth_request_url.assert_called_once_with(
            scopes=["read"],
            redirect_uris="urn:ietf:wg:oauth:2.0:oob"
        )

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authenticate(self, mock_mastodon):
        mock_api = MagicMock()
        mock_mastodon.return_value = mock_api
        mock_api.log_in.return_value = "new_token"

        client = MastodonClient.authenticate(REGISTRATION, "  the-code\n")

        mock_api.log_in.assert_called_once_with(
            code="the-code",
            redirect_uri="urn:ietf:wg:oauth:2.0:oob",
            scopes=["read"]
        )
        self.assertEqual(client.credentials.token, "new_token")
        self.assertEqual(client.credentials.base, "https://mastodon.social")
        self.assertEqual(client.credentials.client_id, "client_id")
        self.assertEqual(client.credentials.redirect, "urn:ietf:wg:oauth:2.0:oob")

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authorization_url_uses_timeout(self, mock_mastodon):
        MastodonClient.authorization_url(REGISTRATION, request_timeout=5)

        self.assertEqual(mock_mastodon.call_args.kwargs["request_timeout"], 5)

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authenticate_exchange_uses_timeout(self, mock_mastodon):
        mock_mastodon.return_value.log_in.return_value = "new_token"

        MastodonClient.authenticate(REGISTRATION, "the-code", request_timeout=7)

        # Code exchange client, then the authenticated client
        self.assertEqual(mock_mastodon.call_count, 2)
        exchange_call, client_call = mock_mastodon.call_args_list
        self.assertEqual(exchange_call, call(
            client_id="client_id",
            client_secret="client_secret",
            api_base_url="https://mastodon.social",
            request_timeout=7
        ))
        self.assertEqual(client_call.kwargs["request_timeout"], 7)
        self.assertEqual(client_call.kwargs["access_token"], "new_token")

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authenticate_empty_code(self, mock_mastodon):
        with self.assertRaises(MastodonClientError):
            MastodonClient.authenticate(REGISTRATION, "   ")

        mock_mastodon.return_value.log_in.assert_not_called()

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_authenticate_rejected_code(self, mock_mastodon):
        mock_mastodon.return_value.log_in.side_effect = MastodonAPIError("invalid_grant")

        with self.assertRaises(MastodonClientError) as ctx:
            MastodonClient.authenticate(REGISTRATION, "bad-code")

        self.assertIn("Couldn't authenticate", str(ctx.exception))


class TestMastodonClient(unittest.TestCase):
    """Test suite for authenticated API calls."""

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_from_credentials(self, mock_mastodon):
        client = MastodonClient.from_credentials(CREDENTIALS)

        mock_mastodon.assert_called_once_with(
            client_id="client_id",
            client_secret="client_secret",
            access_token="access_token",
            api_base_url="https://mastodon.social",
            request_timeout=30
        )
        self.assertIs(client.api, mock_mastodon.return_value)
        self.assertEqual(client.credentials, CREDENTIALS)

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_from_credentials_unreachable(self, mock_mastodon):
        mock_mastodon.side_effect = MastodonNetworkError("timed out")

        with self.assertRaises(MastodonClientError):
            MastodonClient.from_credentials(CREDENTIALS)

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_verify_credentials(self, mock_mastodon):
        mock_api = mock_mastodon.return_value
        mock_api.account_verify_credentials.return_value = {"id": "1", "username": "alice"}

        account = MastodonClient(CREDENTIALS).verify_credentials()

        self.assertEqual(account["username"], "alice")

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_verify_credentials_failure(self, mock_mastodon):
        mock_api = mock_mastodon.return_value
        mock_api.account_verify_credentials.side_effect = MastodonAPIError("401 Unauthorized")

        with self.assertRaises(MastodonClientError) as ctx:
            MastodonClient(CREDENTIALS).verify_credentials()

        self.assertIn("Couldn't get account", str(ctx.exception))

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_home_timeline(self, mock_mastodon):
        mock_api = mock_mastodon.return_value
        first_page = [_status(3), _status(2)]
        mock_api.timeline_home.return_value = first_page

        timeline = MastodonClient(CREDENTIALS).home_timeline()

        self.assertIsInstance(timeline, TimelinePager)
        self.assertEqual(timeline.initial_items, first_page)
        mock_api.timeline_home.assert_called_once_with(limit=None)

    @patch("mastodon_client.mastodon_client.Mastodon")
    def test_home_timeline_failure(self, mock_mastodon):
        mock_mastodon.return_value.timeline_home.side_effect = MastodonNetworkError("reset")

        with self.assertRaises(MastodonClientError) as ctx:
            MastodonClient(CREDENTIALS).home_timeline()

        self.assertIn("Couldn't get timeline", str(ctx.exception))


class TestTimelinePager(unittest.TestCase):
    """Test suite for next/previous page walking."""

    def setUp(self):
        self.api = MagicMock()
        self.page1 = [_status(9), _status(8)]
        self.page2 = [_status(7), _status(6)]
        self.page3 = [_status(5)]

    def test_uris_in_page_order(self):
        self.assertEqual(
            TimelinePager.uris(self.page1),
            [
                "https://mastodon.social/users/alice/statuses/9",
                "https://mastodon.social/users/alice/statuses/8",
            ]
        )

    def test_next_page_advances_cursor(self):
        self.api.fetch_next.side_effect = [self.page2, self.page3]
        pager = TimelinePager(self.api, self.page1)

        self.assertEqual(pager.next_page(), self.page2)
        self.assertEqual(pager.next_page(), self.page3)

        self.assertIs(self.api.fetch_next.call_args_list[0].args[0], self.page1)
        self.assertIs(self.api.fetch_next.call_args_list[1].args[0], self.page2)
        self.assertIs(pager.current, self.page3)

    def test_next_page_at_end_keeps_cursor(self):
        self.api.fetch_next.return_value = None
        pager = TimelinePager(self.api, self.page1)

        self.assertEqual(pager.next_page(), [])
        self.assertEqual(pager.next_page(), [])

        self.assertIs(pager.current, self.page1)
        for call in self.api.fetch_next.call_args_list:
            self.assertIs(call.args[0], self.page1)

    def test_prev_page_steps_back_from_latest_page(self):
        self.api.fetch_next.side_effect = [self.page2, self.page3]
        self.api.fetch_previous.return_value = self.page2
        pager = TimelinePager(self.api, self.page1)
        pager.next_page()
        pager.next_page()

        self.assertEqual(pager.prev_page(), self.page2)

        self.api.fetch_previous.assert_called_once_with(self.page3)
        self.assertIs(pager.current, self.page2)

    def test_prev_page_empty(self):
        self.api.fetch_previous.return_value = []
        pager = TimelinePager(self.api, self.page1)

        self.assertEqual(pager.prev_page(), [])
        self.assertIs(pager.current, self.page1)

    def test_initial_items_unchanged_by_paging(self):
        self.api.fetch_next.return_value = self.page2
        pager = TimelinePager(self.api, self.page1)
        pager.next_page()

        self.assertEqual(pager.initial_items, self.page1)

    def test_next_page_error(self):
        self.api.fetch_next.side_effect = MastodonNetworkError("timed out")
        pager = TimelinePager(self.api, self.page1)

        with self.assertRaises(MastodonClientError) as ctx:
            pager.next_page()

        self.assertIn("Couldn't get next page", str(ctx.exception))

    def test_prev_page_error(self):
        self.api.fetch_previous.side_effect = MastodonAPIError("500")
        pager = TimelinePager(self.api, self.page1)

        with self.assertRaises(MastodonClientError) as ctx:
            pager.prev_page()

        self.assertIn("Couldn't get prev page", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
