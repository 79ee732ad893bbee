"""
Typed settings for the GoHighLevel integration.

Merges three sources, highest priority first:

    1. Environment variables (secrets only; never read from config files)
    2. The YAML config file loaded by ConfigLoader
    3. Built-in defaults

Environment variables:

    GHL_API_KEY        Static v1 API key used by the contact sync
    GHL_LOCATION_ID    GoHighLevel location (sub-account) id
    GHL_CLIENT_ID      OAuth client id used for token refresh
    GHL_CLIENT_SECRET  OAuth client secret used for token refresh
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# GoHighLevel endpoints
DEFAULT_GHL_BASE_URL = "https://rest.gohighlevel.com/v1"
DEFAULT_GHL_V2_BASE_URL = "https://services.leadconnectorhq.com"
DEFAULT_GHL_TOKEN_URL = f"{DEFAULT_GHL_V2_BASE_URL}/oauth/token"
GHL_API_VERSION = "2021-07-28"

# Contact fetching
DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_RECORDS = 300
DEFAULT_PAGE_DELAY = 0.1  # seconds
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds

# Rate limiting and token handling
DEFAULT_MAX_RETRIES = 3
DEFAULT_RATE_LIMIT_DELAY = 1.0  # seconds
DEFAULT_TOKEN_EXPIRY_MARGIN = 60  # seconds

# HireOS action -> GoHighLevel workflow id
DEFAULT_WORKFLOWS = {
    "assessment": "bb80d0bd-2475-4260-832c-48eacfad539f",
    "interview": "9c6fe3a0-e12b-4a6f-b0dd-e87dc6e7f179",
    "offer": "30ebd770-2419-4ddb-a444-a62a97336b56",
    "reject": "02fb8c33-2358-4777-8599-5ac1e0e081df",
}

ENV_API_KEY = "GHL_API_KEY"
ENV_LOCATION_ID = "GHL_LOCATION_ID"
ENV_CLIENT_ID = "GHL_CLIENT_ID"
ENV_CLIENT_SECRET = "GHL_CLIENT_SECRET"


class ConfigurationError(Exception):
    """Raised when a required credential or setting is missing or invalid."""

    pass


@dataclass
class GHLSettings:
    """
    Resolved GoHighLevel integration settings.

    Usage:
        settings = GHLSettings.from_config(config)
        api_key = settings.require_api_key()
    """

    api_key: str | None = None
    location_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None

    base_url: str = DEFAULT_GHL_BASE_URL
    v2_base_url: str = DEFAULT_GHL_V2_BASE_URL
    token_url: str = DEFAULT_GHL_TOKEN_URL

    page_size: int = DEFAULT_PAGE_SIZE
    max_records: int = DEFAULT_MAX_RECORDS
    page_delay: float = DEFAULT_PAGE_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    max_retries: int = DEFAULT_MAX_RETRIES
    rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY
    token_expiry_margin: int = DEFAULT_TOKEN_EXPIRY_MARGIN

    workflows: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_WORKFLOWS))

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> GHLSettings:
        """
        Build settings from a validated config dict and the environment.

        Args:
            config: Output of ConfigLoader.load_and_validate(), or None
            environ: Environment mapping (defaults to os.environ)

        Returns:
            GHLSettings with defaults filled in
        """
        config = config or {}
        environ = os.environ if environ is None else environ

        workflows = dict(DEFAULT_WORKFLOWS)
        workflows.update(config.get("workflows") or {})

        return cls(
            api_key=environ.get(ENV_API_KEY) or None,
            location_id=environ.get(ENV_LOCATION_ID) or None,
            client_id=environ.get(ENV_CLIENT_ID) or None,
            client_secret=environ.get(ENV_CLIENT_SECRET) or None,
            base_url=config.get("ghl_base_url", DEFAULT_GHL_BASE_URL).rstrip("/"),
            v2_base_url=config.get("ghl_v2_base_url", DEFAULT_GHL_V2_BASE_URL).rstrip(
                "/"
            ),
            token_url=config.get("ghl_token_url", DEFAULT_GHL_TOKEN_URL),
            page_size=config.get("page_size", DEFAULT_PAGE_SIZE),
            max_records=config.get("max_records", DEFAULT_MAX_RECORDS),
            page_delay=float(config.get("page_delay", DEFAULT_PAGE_DELAY)),
            request_timeout=float(
                config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
            ),
            max_retries=config.get("max_retries", DEFAULT_MAX_RETRIES),
            rate_limit_delay=float(
                config.get("rate_limit_delay", DEFAULT_RATE_LIMIT_DELAY)
            ),
            token_expiry_margin=config.get(
                "token_expiry_margin", DEFAULT_TOKEN_EXPIRY_MARGIN
            ),
            workflows=workflows,
        )

    def require_api_key(self) -> str:
        """
        Return the v1 API key.

        Raises:
            ConfigurationError: If GHL_API_KEY is not set
        """
        if not self.api_key:
            raise ConfigurationError(
                f"{ENV_API_KEY} environment variable is not set. "
                "Set it to your GoHighLevel location API key."
            )
        return self.api_key

    def require_location_id(self) -> str:
        """
        Return the GoHighLevel location id new contacts are created in.

        Raises:
            ConfigurationError: If GHL_LOCATION_ID is not set
        """
        if not self.location_id:
            raise ConfigurationError(
                f"{ENV_LOCATION_ID} environment variable is not set. "
                "Set it to the GoHighLevel location (sub-account) id."
            )
        return self.location_id

    def require_client_credentials(self) -> tuple[str, str]:
        """
        Return the OAuth client id and secret.

        Raises:
            ConfigurationError: If either credential is missing
        """
        missing = [
            name
            for name, value in (
                (ENV_CLIENT_ID, self.client_id),
                (ENV_CLIENT_SECRET, self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing OAuth client credentials: {', '.join(missing)}"
            )
        return self.client_id, self.client_secret  # type: ignore[return-value]

    def credential_status(self) -> dict[str, bool]:
        """Report which credentials are present, without revealing them."""
        return {
            ENV_API_KEY: bool(self.api_key),
            ENV_LOCATION_ID: bool(self.location_id),
            ENV_CLIENT_ID: bool(self.client_id),
            ENV_CLIENT_SECRET: bool(self.client_secret),
        }
