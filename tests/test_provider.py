"""
Tests for the shared provider HTTP plumbing and credentials.
"""

import pytest
import requests
from unittest.mock import MagicMock, patch

from src.mailbox_taxonomy.auth import ProviderCredential
from src.mailbox_taxonomy.config import ProviderName, Settings
from src.mailbox_taxonomy.exceptions import ProviderError
from src.mailbox_taxonomy.gmail_client import GmailLabelClient


def make_response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = ""
    response.json.return_value = payload or {}
    if not response.ok:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    return response


class TestProviderCredential:
    """Tests for bearer credentials."""

    def test_auth_headers(self):
        """Test bearer header construction."""
        credential = ProviderCredential("gmail", "abc")

        assert credential.get_auth_headers()["Authorization"] == "Bearer abc"
        assert credential.provider == ProviderName.GMAIL

    def test_empty_token_rejected(self):
        """Test that an empty token is rejected."""
        with pytest.raises(ValueError):
            ProviderCredential("gmail", "")

    def test_unknown_provider_rejected(self):
        """Test that an unsupported provider is rejected."""
        with pytest.raises(ValueError):
            ProviderCredential("yahoo", "abc")

    def test_refresh(self):
        """Test that refresh swaps the token."""
        credential = ProviderCredential("outlook", "old", refresher=lambda: "new")

        assert credential.refresh() is True
        assert credential.get_auth_headers()["Authorization"] == "Bearer new"

    def test_refresh_without_refresher(self):
        """Test that refresh is a no-op without a callback."""
        credential = ProviderCredential("outlook", "old")

        assert credential.can_refresh is False
        assert credential.refresh() is False

    def test_repr_hides_token(self):
        """Test that the token never appears in repr."""
        credential = ProviderCredential("gmail", "secret-token", account_id="acct-1")

        assert "secret-token" not in repr(credential)


class TestMakeRequest:
    """Tests for authenticated requests."""

    @pytest.fixture
    def settings(self):
        return Settings(request_timeout=5)

    def test_relative_endpoint_uses_base_url(self, settings):
        """Test URL construction, headers and timeout."""
        client = GmailLabelClient(settings, ProviderCredential("gmail", "abc"))

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(200, {"labels": []})
            result = client._make_request("GET", "/users/me/labels")

        assert result == {"labels": []}
        kwargs = mock_request.call_args.kwargs
        assert kwargs["url"] == "https://gmail.googleapis.com/gmail/v1/users/me/labels"
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["timeout"] == 5

    def test_absolute_url_is_used_as_is(self, settings):
        """Test that pagination links are not prefixed."""
        client = GmailLabelClient(settings, ProviderCredential("gmail", "abc"))
        url = "https://example.test/next?page=2"

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(200)
            client._make_request("GET", url)

        assert mock_request.call_args.kwargs["url"] == url

    def test_no_content(self, settings):
        """Test that a 204 response returns an empty dict."""
        client = GmailLabelClient(settings, ProviderCredential("gmail", "abc"))

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(204)
            assert client._make_request("DELETE", "/users/me/labels/Label_1") == {}

    def test_refresh_and_replay_on_401(self, settings):
        """Test that a 401 refreshes the credential and replays once."""
        refresher = MagicMock(return_value="fresh")
        client = GmailLabelClient(
            settings, ProviderCredential("gmail", "stale", refresher=refresher)
        )

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.side_effect = [make_response(401), make_response(200, {"ok": 1})]
            result = client._make_request("GET", "/users/me/labels")

        assert result == {"ok": 1}
        refresher.assert_called_once()
        assert mock_request.call_count == 2
        headers = mock_request.call_args_list[1].kwargs["headers"]
        assert headers["Authorization"] == "Bearer fresh"

    def test_401_without_refresher_raises(self, settings):
        """Test that a 401 is raised when the credential cannot refresh."""
        client = GmailLabelClient(settings, ProviderCredential("gmail", "stale"))

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(401)
            with pytest.raises(requests.HTTPError):
                client._make_request("GET", "/users/me/labels")

        assert mock_request.call_count == 1

    def test_failing_refresher_raises_provider_error(self, settings):
        """Test that a refresh callback error becomes a 401 ProviderError."""
        refresher = MagicMock(side_effect=RuntimeError("invalid_grant"))
        client = GmailLabelClient(
            settings, ProviderCredential("gmail", "stale", refresher=refresher)
        )

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(401)
            with pytest.raises(ProviderError) as exc_info:
                client._make_request("GET", "/users/me/labels")

        assert exc_info.value.status_code == 401
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert mock_request.call_count == 1

    def test_error_status_raises(self, settings):
        """Test that other errors are raised without replay."""
        client = GmailLabelClient(
            settings, ProviderCredential("gmail", "abc", refresher=lambda: "x")
        )

        with patch("src.mailbox_taxonomy.provider.requests.request") as mock_request:
            mock_request.return_value = make_response(409)
            with pytest.raises(requests.HTTPError):
                client._make_request("POST", "/users/me/labels", suppress_statuses={409})

        assert mock_request.call_count == 1
