"""
Configuration file generator for the GoHighLevel integration.

Writes a default config.yaml with every option documented and commented
out, so operators can opt in to the settings they need.
"""

import logging
from pathlib import Path

from hireos_sync.config.settings import (
    DEFAULT_GHL_BASE_URL,
    DEFAULT_GHL_TOKEN_URL,
    DEFAULT_GHL_V2_BASE_URL,
    DEFAULT_MAX_RECORDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_DELAY,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RATE_LIMIT_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TOKEN_EXPIRY_MARGIN,
    DEFAULT_WORKFLOWS,
)

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate the default YAML configuration with all options documented.

    Returns:
        YAML text in which every option is commented out
    """
    workflow_lines = "\n".join(
        f"#   {action}: {workflow_id}" for action, workflow_id in DEFAULT_WORKFLOWS.items()
    )

    return f"""# HireOS GoHighLevel Sync Configuration
# =====================================
#
# CLI arguments always override these values. Secrets are never read from
# this file; set them in the environment instead:
#
#   GHL_API_KEY, GHL_LOCATION_ID, GHL_CLIENT_ID, GHL_CLIENT_SECRET

# Logging Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Directory for log files
# Default: ~/.hireos-sync/logs
# log_dir: ~/.hireos-sync/logs

# Number of log files to keep per log type (0 disables cleanup)
# Default: 10
# log_retention_count: 10


# Storage
# -------

# SQLite database holding candidates and GoHighLevel tokens.
# Relative paths are resolved against the configuration directory.
# Default: hireos.db
# db_path: hireos.db


# Sync Behavior
# -------------

# Preview changes without writing candidate links
# Default: false
# dry_run: false

# Contacts requested per page
# Default: {DEFAULT_PAGE_SIZE}
# page_size: {DEFAULT_PAGE_SIZE}

# Maximum contacts fetched per sync run
# Default: {DEFAULT_MAX_RECORDS}
# max_records: {DEFAULT_MAX_RECORDS}

# Pause between pages, in seconds
# Default: {DEFAULT_PAGE_DELAY}
# page_delay: {DEFAULT_PAGE_DELAY}

# Per-request HTTP timeout, in seconds
# Default: {DEFAULT_REQUEST_TIMEOUT}
# request_timeout: {DEFAULT_REQUEST_TIMEOUT}


# GoHighLevel Endpoints
# ---------------------

# ghl_base_url: {DEFAULT_GHL_BASE_URL}
# ghl_v2_base_url: {DEFAULT_GHL_V2_BASE_URL}
# ghl_token_url: {DEFAULT_GHL_TOKEN_URL}


# Rate Limiting and Tokens
# ------------------------

# Retries after a 429 Too Many Requests response
# Default: {DEFAULT_MAX_RETRIES}
# max_retries: {DEFAULT_MAX_RETRIES}

# Base delay used when a 429 response carries no Retry-After header
# Default: {DEFAULT_RATE_LIMIT_DELAY}
# rate_limit_delay: {DEFAULT_RATE_LIMIT_DELAY}

# Refresh access tokens this many seconds before they expire
# Default: {DEFAULT_TOKEN_EXPIRY_MARGIN}
# token_expiry_margin: {DEFAULT_TOKEN_EXPIRY_MARGIN}


# Workflow Automation
# -------------------

# HireOS action -> GoHighLevel workflow id. Entries here are merged over the
# built-in defaults shown below.
# workflows:
{workflow_lines}
"""


def save_config_file(config_path: Path, overwrite: bool = False) -> tuple[bool, str | None]:
    """
    Save the default configuration file.

    Creates parent directories if needed and writes the file readable by the
    owner only.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If False, fail when the file already exists

    Returns:
        Tuple of (success, error_message)
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
