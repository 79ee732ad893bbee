"""
Authenticated, rate-limit-aware HTTP wrapper for the GoHighLevel v2 API.

Every request carries the current OAuth bearer token. A 401 triggers one
token refresh and one retry; a 429 is retried after the Retry-After delay
(or a growing fallback delay) until the retry budget runs out, at which
point the 429 response is handed back to the caller.
"""

import logging
import time
from typing import Any, Optional

import requests

from hireos_sync.api.ghl_client import GHLAPIError
from hireos_sync.auth.ghl_oauth import TokenManager
from hireos_sync.config.settings import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_TOO_MANY_REQUESTS = 429


def _retry_after_seconds(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


class GHLHttpClient:
    """
    HTTP client for OAuth-authenticated GoHighLevel calls.

    Attributes:
        token_manager: Source of access tokens
        timeout: Per-request timeout in seconds
        max_retries: Default 429 retry budget
        rate_limit_delay: Base delay for 429s without Retry-After

    Usage:
        http = GHLHttpClient(token_manager)
        response = http.request("POST", url, json=payload)
    """

    def __init__(
        self,
        token_manager: TokenManager,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
    ):
        self.token_manager = token_manager
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay

    def _send(
        self,
        method: str,
        url: str,
        token: Optional[str],
        headers: Optional[dict[str, str]],
        **kwargs: Any,
    ) -> requests.Response:
        merged = dict(headers or {})
        merged["Accept"] = "application/json"
        if token:
            merged["Authorization"] = f"Bearer {token}"

        kwargs.setdefault("timeout", self.timeout)
        try:
            return self.session.request(method, url, headers=merged, **kwargs)
        except requests.RequestException as e:
            raise GHLAPIError(f"{method} {url} failed: {e}") from e

    def _backoff_delay(self, response: requests.Response, retries: int) -> float:
        retry_after = _retry_after_seconds(response)
        if retry_after is not None:
            return retry_after
        # Grows as the budget shrinks: 1x, 2x, 3x ... of the base delay
        return self.rate_limit_delay * max(1, self.max_retries + 1 - retries)

    def request(
        self,
        method: str,
        url: str,
        auth: bool = True,
        retries: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Send a request, handling token expiry and rate limits.

        Args:
            method: HTTP method
            url: Absolute URL
            auth: Attach the bearer token and handle 401s (default True)
            retries: 429 retries left; defaults to max_retries
            headers: Extra request headers
            **kwargs: Passed to requests (json, data, params, timeout, ...)

        Returns:
            The final response. Non-2xx responses are returned, not raised.

        Raises:
            GHLAPIError: On network failure
            TokenError: If no token is available when auth is True
        """
        if retries is None:
            retries = self.max_retries

        while True:
            token = self.token_manager.get_access_token() if auth else None
            response = self._send(method, url, token, headers, **kwargs)

            if response.status_code == HTTP_UNAUTHORIZED and auth:
                logger.warning("GHL access token rejected, refreshing")
                token = self.token_manager.refresh_access_token()
                response = self._send(method, url, token, headers, **kwargs)

            if response.status_code != HTTP_TOO_MANY_REQUESTS or retries <= 0:
                return response

            delay = self._backoff_delay(response, retries)
            logger.warning(
                f"Rate limited by GHL, retrying in {delay:.1f}s "
                f"({retries} retries left)"
            )
            time.sleep(delay)
            retries -= 1

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)
