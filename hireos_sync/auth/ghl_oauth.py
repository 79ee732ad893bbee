"""
OAuth2 token management for the GoHighLevel v2 API.

Provides access-token handling with support for:
- Reading the single location token row from the database on every call
- Refreshing tokens shortly before they expire
- Refresh-token rotation (both tokens are replaced on every refresh)
- Single-flight refreshes shared across threads
- Seeding the initial token pair after a manual authorization
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, TypeVar

import requests

from hireos_sync.config.settings import GHLSettings
from hireos_sync.storage.db import LOCATION_USER_TYPE, SyncDatabase, parse_timestamp
from hireos_sync.utils.logging import mask_secret

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TokenError(Exception):
    """Raised when no usable GoHighLevel token is available."""

    pass


class TokenRefreshError(TokenError):
    """Raised when the token endpoint rejects or fails a refresh."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class TokenRecord:
    """The stored OAuth token pair for one GoHighLevel user type."""

    access_token: str
    refresh_token: str
    user_type: str = LOCATION_USER_TYPE
    expires_at: Optional[datetime] = None
    company_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TokenRecord":
        return cls(
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            user_type=row.get("user_type") or LOCATION_USER_TYPE,
            expires_at=parse_timestamp(row.get("expires_at")),
            company_id=row.get("company_id"),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def is_expired(self, margin: int, now: Optional[datetime] = None) -> bool:
        """True if the token has no expiry or expires within margin seconds."""
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - timedelta(seconds=margin)


class RefreshGuard:
    """
    Single-flight guard for token refreshes.

    The first caller runs the refresh; callers arriving while it is in flight
    block on the same Future and receive its result or exception. The slot is
    cleared as soon as the refresh settles, so the next refresh starts fresh.

    One guard should be shared by every TokenManager that writes the same
    token row.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._pending is not None

    def run(self, refresh: Callable[[], T]) -> T:
        with self._lock:
            future = self._pending
            owner = future is None
            if owner:
                future = Future()
                self._pending = future

        if not owner:
            logger.debug("Waiting for in-flight token refresh")
            return future.result()

        try:
            result = refresh()
        except BaseException as e:
            with self._lock:
                self._pending = None
            future.set_exception(e)
            raise

        with self._lock:
            self._pending = None
        future.set_result(result)
        return result


class TokenManager:
    """
    Access-token manager backed by the ghl_tokens table.

    Attributes:
        database: Storage holding the token row
        settings: Integration settings (token URL, client credentials)
        guard: Shared RefreshGuard

    Usage:
        manager = TokenManager(db, settings)
        token = manager.get_access_token()

        # After a 401 from the API
        token = manager.refresh_access_token()
    """

    def __init__(
        self,
        database: SyncDatabase,
        settings: GHLSettings,
        guard: Optional[RefreshGuard] = None,
        session: Optional[requests.Session] = None,
        user_type: str = LOCATION_USER_TYPE,
    ):
        self.database = database
        self.settings = settings
        self.guard = guard or RefreshGuard()
        self.session = session or requests.Session()
        self.user_type = user_type

    def _load(self) -> Optional[TokenRecord]:
        row = self.database.get_token_row(self.user_type)
        return TokenRecord.from_row(row) if row else None

    def _load_required(self) -> TokenRecord:
        record = self._load()
        if record is None:
            raise TokenError(
                "No GHL tokens found in the database. "
                "Please seed initial tokens with 'hireos-sync token seed'."
            )
        return record

    def get_access_token(self) -> str:
        """
        Return a valid access token, refreshing it if needed.

        The token row is read from the database on every call.

        Raises:
            TokenError: If no token row exists
            TokenRefreshError: If a needed refresh fails
            ConfigurationError: If client credentials are missing
        """
        record = self._load_required()
        if not record.is_expired(self.settings.token_expiry_margin):
            return record.access_token

        logger.info("GHL access token expired or expiring soon, refreshing")
        return self.guard.run(self._refresh_if_expired)

    def refresh_access_token(self) -> str:
        """
        Refresh the access token unconditionally.

        Concurrent callers share one refresh request.

        Raises:
            TokenRefreshError: If the refresh fails
            ConfigurationError: If client credentials are missing
        """
        return self.guard.run(self._refresh)

    def _refresh_if_expired(self) -> str:
        # Another caller may have refreshed between our read and taking the guard
        record = self._load_required()
        if not record.is_expired(self.settings.token_expiry_margin):
            return record.access_token
        return self._refresh()

    def _refresh(self) -> str:
        client_id, client_secret = self.settings.require_client_credentials()

        record = self._load()
        if record is None or not record.refresh_token:
            raise TokenRefreshError("No refresh token found. Please re-authorize GHL.")

        logger.debug(
            f"Refreshing GHL token with client_id={mask_secret(client_id)} "
            f"client_secret={mask_secret(client_secret)}"
        )

        try:
            response = self.session.post(
                self.settings.token_url,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "refresh_token",
                    "refresh_token": record.refresh_token,
                },
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            raise TokenRefreshError(f"Failed to refresh token: {e}") from e

        if not response.ok:
            logger.error(
                f"GHL refresh failed: {response.status_code} {response.text[:200]}"
            )
            if response.status_code in (400, 401):
                raise TokenRefreshError(
                    "Refresh token invalid. Please re-authorize GHL.",
                    status_code=response.status_code,
                )
            raise TokenRefreshError(
                f"Failed to refresh token: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            access_token = data["access_token"]
            refresh_token = data["refresh_token"]
            expires_in = float(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise TokenRefreshError(f"Malformed token response: {e}") from e

        if not isinstance(access_token, str) or not isinstance(refresh_token, str):
            raise TokenRefreshError("Malformed token response: tokens must be strings")

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        if not self.database.update_tokens(
            access_token, refresh_token, expires_at, user_type=self.user_type
        ):
            raise TokenError("GHL token row disappeared during refresh")

        logger.info(f"GHL access token refreshed, expires at {expires_at.isoformat()}")
        return access_token

    def seed_tokens(
        self,
        access_token: str,
        refresh_token: str,
        expires_in: Optional[int] = None,
        company_id: Optional[str] = None,
    ) -> None:
        """
        Store the initial token pair after an OAuth authorization.

        Args:
            access_token: Access token from the authorization code exchange
            refresh_token: Refresh token from the same exchange
            expires_in: Lifetime in seconds; None forces a refresh on first use
            company_id: Optional GoHighLevel company id
        """
        if not access_token or not refresh_token:
            raise ValueError("access_token and refresh_token are required")

        expires_at = None
        if expires_in is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        self.database.save_token_row(
            access_token,
            refresh_token,
            expires_at,
            user_type=self.user_type,
            company_id=company_id,
        )
        logger.info(f"Seeded GHL tokens for user type {self.user_type}")

    def token_status(self) -> dict[str, Any]:
        """
        Describe the stored token for display.

        Returns:
            Dictionary with 'present', 'access_token' (masked), 'expires_at',
            'expired', 'updated_at' and 'company_id'
        """
        record = self._load()
        if record is None:
            return {"present": False}

        return {
            "present": True,
            "access_token": mask_secret(record.access_token),
            "expires_at": record.expires_at.isoformat() if record.expires_at else None,
            "expired": record.is_expired(self.settings.token_expiry_margin),
            "updated_at": record.updated_at.isoformat() if record.updated_at else None,
            "company_id": record.company_id,
        }
