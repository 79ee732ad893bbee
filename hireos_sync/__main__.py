"""
Entry point for running hireos_sync as a module.

Usage:
    python -m hireos_sync --help
    python -m hireos_sync sync --dry-run
    python -m hireos_sync token status
"""

from hireos_sync.cli import cli

if __name__ == "__main__":
    cli()
