"""
Data model for GoHighLevel contacts and local HireOS candidates.

Provides:
- RemoteContact, parsed and validated from the GoHighLevel v1 API
- LocalCandidateRef, read from the candidates table
"""

from dataclasses import dataclass
from typing import Any, Optional

from hireos_sync.utils.normalization import normalize_name


class InvalidContactError(ValueError):
    """Raised when a GoHighLevel contact payload is malformed."""

    pass


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


@dataclass(frozen=True)
class RemoteContact:
    """
    A contact record held by GoHighLevel.

    Attributes:
        id: GoHighLevel contact id
        display_name: Full name, or None if the contact has no name
        email: Primary email address, if any

    Usage:
        contact = RemoteContact.from_api_response(payload)
        key = contact.name_key()
    """

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Any) -> "RemoteContact":
        """
        Create a RemoteContact from a v1 API contact object.

        The name comes from ``contactName``; when that is missing it is built
        from ``firstName`` and ``lastName``.

        Example API response structure::

            {
                'id': 'abc123',
                'contactName': 'jane smith',
                'firstName': 'jane',
                'lastName': 'smith',
                'email': 'jane@example.com'
            }

        Raises:
            InvalidContactError: If the payload is not an object or has no
                string id
        """
        if not isinstance(data, dict):
            raise InvalidContactError(
                f"Contact payload must be an object, got {type(data).__name__}"
            )

        contact_id = data.get("id")
        if not isinstance(contact_id, str) or not contact_id:
            raise InvalidContactError(f"Contact payload has no string id: {data!r}")

        display_name = _optional_str(data.get("contactName"))
        if display_name is None:
            parts = [
                p.strip()
                for p in (data.get("firstName"), data.get("lastName"))
                if isinstance(p, str) and p.strip()
            ]
            display_name = " ".join(parts) or None

        return cls(
            id=contact_id,
            display_name=display_name,
            email=_optional_str(data.get("email")),
        )

    def name_key(self) -> str:
        """Return the normalized name key used for matching."""
        return normalize_name(self.display_name)


@dataclass
class LocalCandidateRef:
    """
    A HireOS candidate as seen by the sync.

    ``remote_contact_id`` mirrors the ghl_contact_id column. Once it is set it
    is never overwritten.
    """

    id: int
    name: str
    remote_contact_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "LocalCandidateRef":
        return cls(
            id=int(row["id"]),
            name=row.get("name") or "",
            remote_contact_id=row.get("ghl_contact_id") or None,
        )

    @property
    def is_linked(self) -> bool:
        return self.remote_contact_id is not None

    def name_key(self) -> str:
        return normalize_name(self.name)
