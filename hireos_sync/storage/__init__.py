"""
hireos_sync.storage - Persistence module

SQLite storage for candidates and GoHighLevel OAuth tokens.
"""

from hireos_sync.storage.db import LOCATION_USER_TYPE, SyncDatabase

__all__ = ["LOCATION_USER_TYPE", "SyncDatabase"]
