"""
Pushing HireOS candidates to GoHighLevel.

New candidates are created with the v2 ``/contacts/upsert`` endpoint; linked
candidates get their name, phone, tags and scoring custom fields written back
through the v1 contact client. Tags encode the candidate's role and pipeline
stage so GoHighLevel smart lists and workflows can key off them.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from hireos_sync.api.ghl_client import GHLClient
from hireos_sync.api.ghl_fetch import GHLHttpClient
from hireos_sync.config.settings import DEFAULT_GHL_V2_BASE_URL, GHL_API_VERSION

logger = logging.getLogger(__name__)

CONTACT_SOURCE = "HireOS"

DEFAULT_STATUS_TAG = "00_application_submitted"
STATUS_TAGS = {
    "new": DEFAULT_STATUS_TAG,
    "assessment_sent": "15_assessment_sent",
    "assessment_completed": "30_assessment_completed",
    "interview_scheduled": "45_1st_interview_sent",
    "interview_completed": "60_1st_interview_completed",
    "second_interview_scheduled": "75_2nd_interview_scheduled",
    "second_interview_completed": "90_2nd_interview_completed",
    "offer_sent": "85_offer_sent",
    "talent_pool": "95_talent_pool",
    "rejected": "99_rejected",
    "hired": "100_hired",
}

# GoHighLevel role tags use en dashes
ROLE_TAG_AUDIT_SENIOR = "c–role–aud–sr"
ROLE_TAG_EXECUTIVE_ASSISTANT = "c–role–ea"
ROLE_TAG_OTHER = "c–role–other"

UNKNOWN_ROLE = "Unknown Role"

# Custom field ids in the HireOS GoHighLevel location
CUSTOM_FIELD_IDS = {
    "final_decision_status": "oj1uqAxC9wGGJ7BRzUH3",
    "interview_date": "P1PnG6PqDqPSOpxI85iN",
    "score": "P1fCAXatdJS0Q7KCR1vz",
    "communication_skills": "i5TsZMwxsL4zf1cpyOX6",
    "cultural_fit": "pmk0Nq5WCDlBX7CJ4cv8",
    "expected_salary": "RcjIIRzPgSf0Jg8z3vtG",
    "experience_years": "RODD0qGo2oGxNBFgbkBK",
    "hi_people_assessment_link": "m7h2tz9JaXUukb2P4DM6",
    "hi_people_percentile": "n4uIIQoNV9Kb5pCagkym",
    "problem_solving": "fnSdWp8nbofgf6jaHIxA",
    "leadership_initiative": "YNpq6139B2eRhE3Aoexu",
    "technical_proficiency": "scbqBrtEsihBxWmNpZyw",
    "skills": "xjnAKyMcQF6fTMdl0uPf",
}

# Only these are sent on create; the rest are filled in by later updates
UPSERT_CUSTOM_FIELDS = ("interview_date", "score", "communication_skills")

# Numeric scores stored as custom field text
SCORE_FIELDS = (
    "score",
    "communication_skills",
    "cultural_fit",
    "expected_salary",
    "experience_years",
    "hi_people_percentile",
    "problem_solving",
    "leadership_initiative",
    "technical_proficiency",
)

DateLike = Union[str, date, datetime, None]
Score = Union[int, float, str, None]


class ContactPushError(Exception):
    """Raised when a candidate cannot be created or updated in GoHighLevel."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, body: str = ""
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def parse_full_name(full_name: str) -> tuple[str, str]:
    """
    Split a full name into (first, last) on single spaces.

    Everything after the first word is the last name:

        >>> parse_full_name("Mary Jane Watson")
        ('Mary', 'Jane Watson')
    """
    first, _, last = full_name.strip().partition(" ")
    return first, last


def job_title_tag(job_title: str) -> str:
    """Role tag for a job title; unmapped titles get the catch-all tag."""
    title = job_title.lower()
    if "audit" in title and "senior" in title:
        return ROLE_TAG_AUDIT_SENIOR
    if "executive" in title and "assistant" in title:
        return ROLE_TAG_EXECUTIVE_ASSISTANT
    return ROLE_TAG_OTHER


def status_tag(status: Optional[str]) -> str:
    """Pipeline-stage tag for a HireOS candidate status."""
    return STATUS_TAGS.get(status or "", DEFAULT_STATUS_TAG)


def format_ghl_date(value: DateLike) -> Optional[str]:
    """
    Render a date custom field as ``YYYY-MM-DD`` (UTC).

    Strings are parsed as ISO-8601; anything unparseable gives None.
    """
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    return value.isoformat()


def _job_title(candidate: Mapping[str, Any]) -> str:
    job = candidate.get("job")
    if isinstance(job, Mapping):
        return job.get("title") or job.get("suggested_title") or UNKNOWN_ROLE
    return candidate.get("job_title") or UNKNOWN_ROLE


@dataclass
class CandidateContact:
    """A HireOS candidate in the shape GoHighLevel contacts take."""

    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    interview_date: DateLike = None
    final_decision_status: Optional[str] = None
    hi_people_assessment_link: Optional[str] = None
    skills: Optional[list[str]] = None
    score: Score = None
    communication_skills: Score = None
    cultural_fit: Score = None
    expected_salary: Score = None
    experience_years: Score = None
    hi_people_percentile: Score = None
    problem_solving: Score = None
    leadership_initiative: Score = None
    technical_proficiency: Score = None

    @classmethod
    def from_candidate(cls, candidate: Mapping[str, Any]) -> "CandidateContact":
        """
        Build a contact from a candidate record.

        Empty values (None, "", 0) are treated as unset. The tags are the
        role tag for the candidate's job title followed by the status tag.
        """
        first, last = parse_full_name(candidate.get("name") or "")
        tags = [
            job_title_tag(_job_title(candidate)),
            status_tag(candidate.get("status")),
        ]
        scores = {name: candidate.get(name) or None for name in SCORE_FIELDS}
        scores["score"] = candidate.get("hi_people_score") or None

        return cls(
            first_name=first,
            last_name=last,
            email=candidate.get("email") or None,
            phone=candidate.get("phone") or "",
            location=candidate.get("location") or "",
            tags=tags,
            interview_date=candidate.get("last_interview_date") or None,
            final_decision_status=candidate.get("final_decision_status") or None,
            hi_people_assessment_link=(
                candidate.get("hi_people_assessment_link") or None
            ),
            skills=list(candidate.get("skills") or []),
            **scores,
        )

    def custom_field_values(self) -> dict[str, str]:
        """Custom field id -> value for every field that is set."""
        values: dict[str, Optional[str]] = {
            "interview_date": format_ghl_date(self.interview_date),
            "hi_people_assessment_link": self.hi_people_assessment_link,
        }
        if self.final_decision_status is not None:
            values["final_decision_status"] = (
                str(self.final_decision_status).strip().capitalize()
            )
        for name in SCORE_FIELDS:
            score = getattr(self, name)
            if score is not None:
                values[name] = str(score)
        if self.skills is not None:
            values["skills"] = ", ".join(self.skills)

        return {
            CUSTOM_FIELD_IDS[name]: value
            for name, value in values.items()
            if value is not None
        }

    def upsert_payload(self, location_id: str) -> dict[str, Any]:
        """Request body for the v2 ``/contacts/upsert`` endpoint."""
        custom_fields = []
        for name in UPSERT_CUSTOM_FIELDS:
            value = getattr(self, name)
            if name == "interview_date":
                value = format_ghl_date(value)
            if value:
                custom_fields.append(
                    {"id": CUSTOM_FIELD_IDS[name], "key": name, "field_value": value}
                )

        return {
            "locationId": location_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone or "",
            "source": CONTACT_SOURCE,
            "tags": list(self.tags),
            "customFields": custom_fields,
        }

    def update_fields(self) -> dict[str, Any]:
        """v1 contact fields to write; empty values are left out."""
        fields: dict[str, Any] = {}
        for key, value in (
            ("firstName", self.first_name),
            ("lastName", self.last_name),
            ("email", self.email),
            ("phone", self.phone),
            ("location", self.location),
        ):
            if value:
                fields[key] = value
        if self.tags:
            fields["tags"] = list(self.tags)
        custom_field = self.custom_field_values()
        if custom_field:
            fields["customField"] = custom_field
        return fields


class ContactPushClient:
    """
    Creates and updates GoHighLevel contacts for HireOS candidates.

    Creating contacts needs a location id; updating linked candidates needs
    the v1 contact client.

    Usage:
        push = ContactPushClient(http, contacts, settings.require_location_id())
        push.create_contact(CandidateContact.from_candidate(candidate))
        push.update_candidate(candidate)
    """

    def __init__(
        self,
        http: GHLHttpClient,
        contacts: Optional[GHLClient] = None,
        location_id: Optional[str] = None,
        base_url: str = DEFAULT_GHL_V2_BASE_URL,
    ):
        self.http = http
        self.contacts = contacts
        self.location_id = location_id
        self.base_url = base_url.rstrip("/")

    def create_contact(self, contact: CandidateContact) -> dict[str, Any]:
        """
        Create (or update, matched on email) a contact through the v2 API.

        Returns:
            The decoded upsert response, which carries ``contact.id``

        Raises:
            ContactPushError: Without a location id, on a non-2xx status or
                on a non-JSON body
        """
        if not self.location_id:
            raise ContactPushError("A location id is required to create contacts")
        payload = contact.upsert_payload(self.location_id)
        response = self.http.request(
            "POST",
            f"{self.base_url}/contacts/upsert",
            headers={
                "Content-Type": "application/json",
                "Version": GHL_API_VERSION,
            },
            json=payload,
        )

        raw = response.text or ""
        logger.debug(f"Upsert response for {contact.email}: {raw[:500]}")
        if not response.ok:
            logger.error(
                f"Failed to create GoHighLevel contact for {contact.email}: "
                f"{response.status_code}"
            )
            raise ContactPushError(
                f"GHL API Error: {response.status_code} {raw}",
                status_code=response.status_code,
                body=raw,
            )

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ContactPushError(f"Upsert response is not JSON: {raw[:200]}") from e
        if not isinstance(data, dict):
            raise ContactPushError(f"Unexpected upsert response: {raw[:200]}")

        logger.info(f"Upserted contact for {contact.email or contact.first_name}")
        return data

    def update_candidate(self, candidate: Mapping[str, Any]) -> dict[str, Any]:
        """
        Write a linked candidate's name, tags and scores to its contact.

        Raises:
            ContactPushError: If the candidate has no ghl_contact_id
            GHLAPIError: If the update request fails
        """
        contact_id = candidate.get("ghl_contact_id")
        if not contact_id:
            raise ContactPushError("Candidate must have a GHL contact ID to update")
        if self.contacts is None:
            raise ContactPushError("No v1 contact client configured for updates")

        contact = CandidateContact.from_candidate(candidate)
        fields = contact.update_fields()
        # Candidate updates never change the contact email
        fields.pop("email", None)
        result = self.contacts.update_contact(contact_id, fields)
        logger.info(
            f"Updated GoHighLevel contact {contact_id} for candidate "
            f"{candidate.get('id')} ({', '.join(contact.tags)})"
        )
        return result


def upserted_contact_id(response: Mapping[str, Any]) -> Optional[str]:
    """Pull the contact id out of an upsert response, if present."""
    contact = response.get("contact")
    if isinstance(contact, Mapping) and contact.get("id"):
        return str(contact["id"])
    return None
