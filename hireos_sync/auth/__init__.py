"""
hireos_sync.auth - GoHighLevel OAuth token handling
"""

from hireos_sync.auth.ghl_oauth import (
    RefreshGuard,
    TokenError,
    TokenManager,
    TokenRecord,
    TokenRefreshError,
)

__all__ = [
    "RefreshGuard",
    "TokenError",
    "TokenManager",
    "TokenRecord",
    "TokenRefreshError",
]
