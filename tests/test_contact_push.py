"""Tests for creating and updating GoHighLevel contacts from candidates."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from hireos_sync.api.contact_push import (
    CUSTOM_FIELD_IDS,
    DEFAULT_STATUS_TAG,
    ROLE_TAG_AUDIT_SENIOR,
    ROLE_TAG_EXECUTIVE_ASSISTANT,
    ROLE_TAG_OTHER,
    CandidateContact,
    ContactPushClient,
    ContactPushError,
    format_ghl_date,
    job_title_tag,
    parse_full_name,
    status_tag,
    upserted_contact_id,
)
from hireos_sync.config.settings import GHL_API_VERSION

BASE_URL = "https://services.leadconnectorhq.com"


def make_response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    return response


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def contacts():
    return MagicMock()


@pytest.fixture
def client(http, contacts):
    return ContactPushClient(
        http, contacts=contacts, location_id="loc-1", base_url=BASE_URL + "/"
    )


class TestParseFullName:
    """Tests for parse_full_name."""

    def test_first_and_last(self):
        assert parse_full_name("Jane Smith") == ("Jane", "Smith")

    def test_rest_is_last_name(self):
        assert parse_full_name("Mary Jane Watson") == ("Mary", "Jane Watson")

    def test_single_word(self):
        assert parse_full_name("Cher") == ("Cher", "")

    def test_surrounding_whitespace(self):
        assert parse_full_name("  Jane Smith ") == ("Jane", "Smith")

    def test_inner_double_space_kept_in_last_name(self):
        assert parse_full_name("Jane  Smith") == ("Jane", " Smith")


class TestTags:
    """Tests for the role and status tag mappings."""

    @pytest.mark.parametrize(
        "title,tag",
        [
            ("Senior Audit Associate", ROLE_TAG_AUDIT_SENIOR),
            ("AUDIT SENIOR", ROLE_TAG_AUDIT_SENIOR),
            ("Executive Assistant to the CEO", ROLE_TAG_EXECUTIVE_ASSISTANT),
            ("Audit Associate", ROLE_TAG_OTHER),
            ("Unknown Role", ROLE_TAG_OTHER),
        ],
    )
    def test_job_title_tag(self, title, tag):
        assert job_title_tag(title) == tag

    @pytest.mark.parametrize(
        "status,tag",
        [
            ("assessment_sent", "15_assessment_sent"),
            ("interview_scheduled", "45_1st_interview_sent"),
            ("offer_sent", "85_offer_sent"),
            ("rejected", "99_rejected"),
            ("hired", "100_hired"),
        ],
    )
    def test_status_tag(self, status, tag):
        assert status_tag(status) == tag

    @pytest.mark.parametrize("status", [None, "", "archived"])
    def test_unknown_status_defaults_to_submitted(self, status):
        assert status_tag(status) == DEFAULT_STATUS_TAG == "00_application_submitted"


class TestFormatGhlDate:
    """Tests for format_ghl_date."""

    def test_aware_datetime_converted_to_utc(self):
        moment = datetime(2024, 5, 1, 1, 30, tzinfo=timezone(timedelta(hours=3)))
        assert format_ghl_date(moment) == "2024-04-30"

    def test_iso_string(self):
        assert format_ghl_date("2024-05-01T10:00:00Z") == "2024-05-01"

    def test_date(self):
        assert format_ghl_date(date(2024, 5, 1)) == "2024-05-01"

    @pytest.mark.parametrize("value", [None, "", "next tuesday"])
    def test_missing_or_invalid(self, value):
        assert format_ghl_date(value) is None


class TestCandidateContact:
    """Tests for building contacts from candidate records."""

    def test_from_candidate(self):
        contact = CandidateContact.from_candidate(
            {
                "id": 7,
                "name": "Jane Smith",
                "email": "jane@example.com",
                "status": "offer_sent",
                "job": {"title": "Senior Auditor"},
                "hi_people_score": 88,
                "communication_skills": 4,
                "cultural_fit": 0,
            }
        )

        assert contact.first_name == "Jane"
        assert contact.last_name == "Smith"
        assert contact.tags == [ROLE_TAG_AUDIT_SENIOR, "85_offer_sent"]
        assert contact.score == 88
        assert contact.communication_skills == 4
        assert contact.cultural_fit is None
        assert contact.phone == ""
        assert contact.skills == []

    def test_suggested_title_and_job_title(self):
        from_job = CandidateContact.from_candidate(
            {"name": "A B", "job": {"suggested_title": "Executive Assistant"}}
        )
        from_column = CandidateContact.from_candidate(
            {"name": "A B", "job_title": "Executive Assistant"}
        )
        assert from_job.tags[0] == from_column.tags[0] == ROLE_TAG_EXECUTIVE_ASSISTANT

    def test_custom_field_values(self):
        contact = CandidateContact(
            first_name="Jane",
            interview_date="2024-05-01T10:00:00Z",
            final_decision_status="  HIRED ",
            score=88,
            skills=["Excel", "SQL"],
        )

        assert contact.custom_field_values() == {
            CUSTOM_FIELD_IDS["interview_date"]: "2024-05-01",
            CUSTOM_FIELD_IDS["final_decision_status"]: "Hired",
            CUSTOM_FIELD_IDS["score"]: "88",
            CUSTOM_FIELD_IDS["skills"]: "Excel, SQL",
        }

    def test_update_fields_leave_out_empty_values(self):
        contact = CandidateContact(first_name="Cher", phone="", tags=[])
        assert contact.update_fields() == {"firstName": "Cher"}

    def test_upsert_payload(self):
        contact = CandidateContact(
            first_name="Jane",
            last_name="Smith",
            email="jane@example.com",
            tags=["t1"],
            score=88,
            cultural_fit=5,
        )

        assert contact.upsert_payload("loc-1") == {
            "locationId": "loc-1",
            "firstName": "Jane",
            "lastName": "Smith",
            "email": "jane@example.com",
            "phone": "",
            "source": "HireOS",
            "tags": ["t1"],
            "customFields": [
                {"id": CUSTOM_FIELD_IDS["score"], "key": "score", "field_value": 88}
            ],
        }


class TestCreateContact:
    """Tests for ContactPushClient.create_contact."""

    def test_request(self, client, http):
        http.request.return_value = make_response(
            text='{"new": true, "contact": {"id": "ghl-9"}}'
        )
        contact = CandidateContact(first_name="Jane", email="jane@example.com")

        result = client.create_contact(contact)

        assert upserted_contact_id(result) == "ghl-9"
        http.request.assert_called_once_with(
            "POST",
            f"{BASE_URL}/contacts/upsert",
            headers={"Content-Type": "application/json", "Version": GHL_API_VERSION},
            json=contact.upsert_payload("loc-1"),
        )

    def test_error_status(self, client, http):
        http.request.return_value = make_response(400, text='{"message": "bad email"}')

        with pytest.raises(ContactPushError) as exc_info:
            client.create_contact(CandidateContact(first_name="Jane"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == '{"message": "bad email"}'
        assert "GHL API Error: 400" in str(exc_info.value)

    @pytest.mark.parametrize("body", ["", "<html/>", "[1]"])
    def test_unusable_body(self, client, http, body):
        http.request.return_value = make_response(text=body)
        with pytest.raises(ContactPushError):
            client.create_contact(CandidateContact(first_name="Jane"))

    def test_location_required(self, http):
        client = ContactPushClient(http)
        with pytest.raises(ContactPushError, match="location id"):
            client.create_contact(CandidateContact(first_name="Jane"))
        http.request.assert_not_called()


class TestUpdateCandidate:
    """Tests for ContactPushClient.update_candidate."""

    def test_writes_tags_to_linked_contact(self, client, contacts):
        contacts.update_contact.return_value = {"contact": {"id": "abc123"}}

        result = client.update_candidate(
            {
                "id": 7,
                "name": "Jane Smith",
                "email": "jane@example.com",
                "ghl_contact_id": "abc123",
                "status": "interview_scheduled",
                "job_title": "Executive Assistant",
            }
        )

        assert result == {"contact": {"id": "abc123"}}
        contact_id, fields = contacts.update_contact.call_args.args
        assert contact_id == "abc123"
        assert fields["firstName"] == "Jane"
        assert fields["lastName"] == "Smith"
        assert fields["tags"] == [ROLE_TAG_EXECUTIVE_ASSISTANT, "45_1st_interview_sent"]
        assert "email" not in fields

    @pytest.mark.parametrize("contact_id", [None, ""])
    def test_unlinked_candidate_rejected(self, client, contacts, contact_id):
        with pytest.raises(ContactPushError, match="GHL contact ID"):
            client.update_candidate(
                {"name": "Jane Smith", "ghl_contact_id": contact_id}
            )
        contacts.update_contact.assert_not_called()

    def test_contact_client_required(self, http):
        with pytest.raises(ContactPushError, match="v1 contact client"):
            ContactPushClient(http).update_candidate(
                {"name": "Jane Smith", "ghl_contact_id": "abc123"}
            )


class TestUpsertedContactId:
    """Tests for upserted_contact_id."""

    def test_missing(self):
        assert upserted_contact_id({}) is None
        assert upserted_contact_id({"contact": "abc"}) is None
