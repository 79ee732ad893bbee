"""
Unit tests for the OAuth HTTP wrapper.

Tests GHLHttpClient token handling, 401 refresh-and-retry and 429 backoff.
"""

from unittest.mock import MagicMock, call, patch

import pytest
import requests

from hireos_sync.api.ghl_client import GHLAPIError
from hireos_sync.api.ghl_fetch import GHLHttpClient
from hireos_sync.auth.ghl_oauth import TokenError

URL = "https://services.leadconnectorhq.com/contacts/abc123"


def make_response(status_code=200, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    return response


@pytest.fixture
def token_manager():
    manager = MagicMock()
    manager.get_access_token.return_value = "access-1"
    manager.refresh_access_token.return_value = "access-2"
    return manager


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def http(token_manager, session):
    return GHLHttpClient(
        token_manager, session=session, timeout=10, max_retries=3, rate_limit_delay=1.0
    )


def auth_header(mock_call):
    return mock_call.kwargs["headers"].get("Authorization")


class TestRequest:
    """Tests for normal requests."""

    def test_bearer_token_and_headers(self, http, session):
        session.request.return_value = make_response()

        response = http.request(
            "POST", URL, headers={"Version": "2021-07-28"}, json={"a": 1}
        )

        assert response.status_code == 200
        session.request.assert_called_once_with(
            "POST",
            URL,
            headers={
                "Version": "2021-07-28",
                "Accept": "application/json",
                "Authorization": "Bearer access-1",
            },
            json={"a": 1},
            timeout=10,
        )

    def test_caller_headers_not_mutated(self, http, session):
        session.request.return_value = make_response()
        headers = {"Version": "2021-07-28"}

        http.request("GET", URL, headers=headers)

        assert headers == {"Version": "2021-07-28"}

    def test_explicit_timeout_kept(self, http, session):
        session.request.return_value = make_response()
        http.get(URL, timeout=2)
        assert session.request.call_args.kwargs["timeout"] == 2

    def test_unauthenticated_request(self, http, session, token_manager):
        session.request.return_value = make_response()

        http.request("GET", URL, auth=False)

        token_manager.get_access_token.assert_not_called()
        assert auth_header(session.request.call_args) is None

    def test_error_status_returned(self, http, session):
        session.request.return_value = make_response(500)
        assert http.post(URL).status_code == 500
        assert session.request.call_count == 1

    def test_network_error(self, http, session):
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(GHLAPIError, match="slow"):
            http.get(URL)

    def test_token_error_propagates(self, http, session, token_manager):
        token_manager.get_access_token.side_effect = TokenError("No GHL tokens found")
        with pytest.raises(TokenError):
            http.get(URL)
        session.request.assert_not_called()


class TestUnauthorizedRetry:
    """Tests for the 401 refresh path."""

    def test_refresh_and_retry_once(self, http, session, token_manager):
        session.request.side_effect = [make_response(401), make_response(200)]

        response = http.get(URL)

        assert response.status_code == 200
        token_manager.refresh_access_token.assert_called_once()
        calls = session.request.call_args_list
        assert auth_header(calls[0]) == "Bearer access-1"
        assert auth_header(calls[1]) == "Bearer access-2"

    def test_second_401_returned(self, http, session, token_manager):
        session.request.return_value = make_response(401)

        response = http.get(URL)

        assert response.status_code == 401
        assert session.request.call_count == 2
        token_manager.refresh_access_token.assert_called_once()

    def test_no_refresh_without_auth(self, http, session, token_manager):
        session.request.return_value = make_response(401)

        assert http.get(URL, auth=False).status_code == 401
        token_manager.refresh_access_token.assert_not_called()


class TestRateLimitRetry:
    """Tests for 429 handling."""

    @patch("time.sleep")
    def test_retry_after_header_honoured(self, mock_sleep, http, session):
        session.request.side_effect = [
            make_response(429, {"Retry-After": "2"}),
            make_response(200),
        ]

        assert http.get(URL).status_code == 200
        mock_sleep.assert_called_once_with(2.0)

    @patch("time.sleep")
    def test_backoff_grows_without_header(self, mock_sleep, http, session):
        session.request.side_effect = [
            make_response(429),
            make_response(429),
            make_response(200),
        ]

        http.get(URL)

        assert mock_sleep.call_args_list == [call(1.0), call(2.0)]

    @pytest.mark.parametrize("header", ["0", "-5", "soon"])
    @patch("time.sleep")
    def test_unusable_retry_after_falls_back(self, mock_sleep, http, session, header):
        session.request.side_effect = [
            make_response(429, {"Retry-After": header}),
            make_response(200),
        ]
        http.get(URL)
        mock_sleep.assert_called_once_with(1.0)

    @patch("time.sleep")
    def test_budget_exhausted_returns_429(self, mock_sleep, http, session):
        session.request.return_value = make_response(429)

        response = http.get(URL)

        assert response.status_code == 429
        assert session.request.call_count == 4
        assert mock_sleep.call_count == 3

    @patch("time.sleep")
    def test_zero_retries(self, mock_sleep, http, session):
        session.request.return_value = make_response(429)

        assert http.get(URL, retries=0).status_code == 429
        assert session.request.call_count == 1
        mock_sleep.assert_not_called()

    @patch("time.sleep")
    def test_token_reread_on_each_attempt(self, mock_sleep, http, session, token_manager):
        token_manager.get_access_token.side_effect = ["access-1", "access-9"]
        session.request.side_effect = [make_response(429), make_response(200)]

        http.get(URL)

        calls = session.request.call_args_list
        assert auth_header(calls[1]) == "Bearer access-9"
