"""
Path utilities for the hireos-sync configuration directory.

Resolves where configuration, the local SQLite store and logs live so that
the CLI, the token manager and the sync engine agree on locations.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_DIR = Path.home() / ".hireos-sync"

CONFIG_DIR_ENV_VAR = "HIREOS_SYNC_CONFIG_DIR"

# Database file name used when the config does not set db_path
DEFAULT_DB_FILENAME = "hireos.db"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter
        2. HIREOS_SYNC_CONFIG_DIR environment variable
        3. ~/.hireos-sync

    Returns:
        Absolute Path with ``~`` expanded
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def resolve_db_path(config_dir: Path, db_path: str | None = None) -> Path:
    """
    Resolve the SQLite database location.

    A relative ``db_path`` is taken relative to the configuration directory,
    an absolute one is used as is, and no value means
    ``<config_dir>/hireos.db``.
    """
    if not db_path:
        return config_dir / DEFAULT_DB_FILENAME

    path = Path(db_path).expanduser()
    if path.is_absolute():
        return path
    return config_dir / path
