"""
GoHighLevel workflow automation.

Adds contacts to GoHighLevel workflows in response to HireOS actions
(assessment sent, interview invited, offer made, rejection). Action names are
mapped to workflow ids through configuration.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from hireos_sync.api.ghl_fetch import GHLHttpClient
from hireos_sync.config.settings import (
    DEFAULT_GHL_V2_BASE_URL,
    DEFAULT_WORKFLOWS,
    GHL_API_VERSION,
)

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Raised when a contact cannot be added to a workflow."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, body: str = ""
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def format_event_time(moment: Optional[datetime] = None) -> str:
    """
    Format a time as ISO-8601 to the second with the local UTC offset.

    Example: ``2024-05-01T09:30:00+02:00``
    """
    moment = (moment or datetime.now()).astimezone()
    return moment.replace(microsecond=0).isoformat()


class WorkflowClient:
    """
    Client for adding GoHighLevel contacts to workflows.

    Usage:
        client = WorkflowClient(http, settings.v2_base_url, settings.workflows)
        client.add_contact_to_workflow("abc123", "interview")
    """

    def __init__(
        self,
        http: GHLHttpClient,
        base_url: str = DEFAULT_GHL_V2_BASE_URL,
        workflows: Optional[Mapping[str, str]] = None,
    ):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.workflows = dict(DEFAULT_WORKFLOWS if workflows is None else workflows)

    def workflow_id_for(self, action: str) -> str:
        workflow_id = self.workflows.get(action)
        if not workflow_id:
            raise WorkflowError(f'No workflow mapped for action "{action}"')
        return workflow_id

    def add_contact_to_workflow(
        self,
        contact_id: str,
        action: str,
        event_start_time: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Add a contact to the workflow mapped to an action.

        Args:
            contact_id: GoHighLevel contact id
            action: HireOS action name (e.g. "interview")
            event_start_time: ISO-8601 start time; defaults to now

        Returns:
            The decoded response body ({} when empty)

        Raises:
            WorkflowError: If the action is unmapped or the API call fails
        """
        workflow_id = self.workflow_id_for(action)
        url = f"{self.base_url}/contacts/{contact_id}/workflow/{workflow_id}"

        response = self.http.request(
            "POST",
            url,
            headers={
                "Content-Type": "application/json",
                "Version": GHL_API_VERSION,
            },
            json={"eventStartTime": event_start_time or format_event_time()},
        )

        raw = response.text or ""
        if not response.ok:
            raise WorkflowError(
                f"Failed to add contact to workflow: {response.status_code} {raw}",
                status_code=response.status_code,
                body=raw,
            )

        logger.info(f"Added contact {contact_id} to {action} workflow ({workflow_id})")
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise WorkflowError(f"Workflow response is not JSON: {raw[:200]}") from e
        return data if isinstance(data, dict) else {"result": data}
