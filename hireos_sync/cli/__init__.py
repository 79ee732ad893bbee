"""CLI package for hireos_sync."""

from hireos_sync.cli.formatters import (
    show_errors,
    show_name_analysis,
    show_sync_details,
    show_token_status,
)
from hireos_sync.cli.main import cli, get_config_dir, get_config_file

__all__ = [
    "cli",
    "get_config_dir",
    "get_config_file",
    "show_errors",
    "show_name_analysis",
    "show_sync_details",
    "show_token_status",
]
