"""
GoHighLevel v1 REST API client for contact synchronization.

Provides a thin interface to the location-scoped v1 API for:
- Listing contacts one page at a time
- Fetching every contact up to a cap with offset pagination
- Reading and updating a single contact

Authentication uses the static location API key (GHL_API_KEY).
"""

import logging
import time
from typing import Any, Optional

import requests

from hireos_sync.config.settings import (
    DEFAULT_GHL_BASE_URL,
    DEFAULT_MAX_RECORDS,
    DEFAULT_PAGE_DELAY,
    DEFAULT_PAGE_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    ConfigurationError,
    GHLSettings,
)
from hireos_sync.sync.contact import InvalidContactError, RemoteContact

logger = logging.getLogger(__name__)


class GHLAPIError(Exception):
    """Raised when a GoHighLevel API call fails or returns malformed data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("msg") or body)
    return str(body)


class GHLClient:
    """
    GoHighLevel v1 API client.

    Attributes:
        base_url: v1 API base URL without trailing slash
        timeout: Per-request timeout in seconds

    Usage:
        client = GHLClient(api_key="...")

        # One page
        contacts = client.list_contacts(limit=20, offset=0)

        # Everything up to a cap
        contacts = client.fetch_all_contacts(page_size=20, max_records=300)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GHL_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        page_delay: float = DEFAULT_PAGE_DELAY,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: GoHighLevel location API key
            base_url: v1 API base URL
            timeout: Per-request timeout in seconds (default 30)
            page_delay: Pause between pages in seconds (default 0.1)
            session: Optional requests session, mainly for tests

        Raises:
            ConfigurationError: If api_key is empty
        """
        if not api_key:
            raise ConfigurationError("GoHighLevel API key is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_delay = page_delay
        self.session = session or requests.Session()

    @classmethod
    def from_settings(
        cls, settings: GHLSettings, session: Optional[requests.Session] = None
    ) -> "GHLClient":
        """Build a client from resolved settings."""
        return cls(
            api_key=settings.require_api_key(),
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            page_delay=settings.page_delay,
            session=session,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            GHLAPIError: On network failure, non-2xx status or invalid JSON
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise GHLAPIError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            raise GHLAPIError(
                f"{method} {path} returned {response.status_code}: "
                f"{_error_detail(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise GHLAPIError(f"{method} {path} returned invalid JSON") from e

    def list_contacts(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> list[RemoteContact]:
        """
        Fetch one page of contacts.

        Args:
            limit: Page size
            offset: Number of contacts to skip

        Returns:
            Contacts on this page, in API order

        Raises:
            GHLAPIError: If the request fails or the page is malformed
        """
        data = self._request(
            "GET", "/contacts/", params={"limit": limit, "offset": offset}
        )
        if not isinstance(data, dict):
            raise GHLAPIError("Contact list response is not an object")

        raw_contacts = data.get("contacts", [])
        if not isinstance(raw_contacts, list):
            raise GHLAPIError("Contact list response has no 'contacts' array")

        try:
            return [RemoteContact.from_api_response(c) for c in raw_contacts]
        except InvalidContactError as e:
            raise GHLAPIError(f"Malformed contact in page at offset {offset}: {e}") from e

    def fetch_all_contacts(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_records: int = DEFAULT_MAX_RECORDS,
    ) -> list[RemoteContact]:
        """
        Fetch contacts page by page until a short page or the cap.

        Pages are requested strictly in sequence with a fixed pause between
        them. Any failure aborts the whole fetch; no partial list is returned.

        Args:
            page_size: Contacts per request
            max_records: Maximum contacts to return

        Returns:
            At most max_records contacts, in fetch order

        Raises:
            GHLAPIError: If any page fails
        """
        contacts: list[RemoteContact] = []
        offset = 0
        page = 0

        while len(contacts) < max_records:
            if page > 0 and self.page_delay > 0:
                time.sleep(self.page_delay)

            batch = self.list_contacts(limit=page_size, offset=offset)
            page += 1
            contacts.extend(batch)
            logger.debug(
                f"Page {page}: {len(batch)} contacts (total {len(contacts)})"
            )

            if len(batch) < page_size:
                break
            offset += page_size

        if len(contacts) > max_records:
            contacts = contacts[:max_records]

        logger.info(f"Fetched {len(contacts)} contacts from GoHighLevel")
        return contacts

    def get_contact(self, contact_id: str) -> RemoteContact:
        """
        Fetch a single contact.

        Raises:
            GHLAPIError: If the contact doesn't exist or the request fails
        """
        data = self._request("GET", f"/contacts/{contact_id}")
        payload = data.get("contact", data) if isinstance(data, dict) else data
        try:
            return RemoteContact.from_api_response(payload)
        except InvalidContactError as e:
            raise GHLAPIError(f"Malformed contact {contact_id}: {e}") from e

    def update_contact(self, contact_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Update fields on a contact.

        Args:
            contact_id: GoHighLevel contact id
            fields: v1 contact fields to set (e.g. firstName, tags)

        Returns:
            The decoded response body
        """
        if not fields:
            raise ValueError("fields must not be empty")
        data = self._request("PUT", f"/contacts/{contact_id}", json=fields)
        logger.debug(f"Updated contact {contact_id}: {sorted(fields)}")
        return data if isinstance(data, dict) else {}
