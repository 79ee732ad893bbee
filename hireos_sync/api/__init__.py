"""
hireos_sync.api - GoHighLevel API clients

The v1 contact client (static API key), the OAuth-authenticated v2 HTTP
wrapper, and the workflow and candidate-push clients built on them.
"""

from hireos_sync.api.contact_push import ContactPushClient, ContactPushError
from hireos_sync.api.ghl_client import GHLAPIError, GHLClient
from hireos_sync.api.ghl_fetch import GHLHttpClient
from hireos_sync.api.workflows import WorkflowClient, WorkflowError

__all__ = [
    "ContactPushClient",
    "ContactPushError",
    "GHLAPIError",
    "GHLClient",
    "GHLHttpClient",
    "WorkflowClient",
    "WorkflowError",
]
