"""
Unit tests for the contact data model.

Tests RemoteContact parsing from GoHighLevel payloads and LocalCandidateRef
construction from candidate rows.
"""

import dataclasses

import pytest

from hireos_sync.sync.contact import (
    InvalidContactError,
    LocalCandidateRef,
    RemoteContact,
)


class TestRemoteContactFromApiResponse:
    """Tests for RemoteContact.from_api_response."""

    def test_full_payload(self):
        contact = RemoteContact.from_api_response(
            {
                "id": "abc123",
                "contactName": "jane smith",
                "firstName": "jane",
                "lastName": "smith",
                "email": "jane@example.com",
            }
        )
        assert contact == RemoteContact(
            id="abc123", display_name="jane smith", email="jane@example.com"
        )

    def test_name_built_from_first_and_last(self):
        contact = RemoteContact.from_api_response(
            {"id": "c1", "firstName": " Jane ", "lastName": "Smith"}
        )
        assert contact.display_name == "Jane Smith"

    def test_blank_contact_name_falls_back(self):
        contact = RemoteContact.from_api_response(
            {"id": "c1", "contactName": "   ", "firstName": "Jane"}
        )
        assert contact.display_name == "Jane"

    def test_only_last_name(self):
        contact = RemoteContact.from_api_response({"id": "c1", "lastName": "Smith"})
        assert contact.display_name == "Smith"

    def test_no_name_at_all(self):
        contact = RemoteContact.from_api_response({"id": "c1", "email": "x@y.z"})
        assert contact.display_name is None
        assert contact.name_key() == ""

    def test_non_string_fields_ignored(self):
        contact = RemoteContact.from_api_response(
            {"id": "c1", "contactName": 42, "firstName": None, "email": ["a"]}
        )
        assert contact.display_name is None
        assert contact.email is None

    @pytest.mark.parametrize("payload", [None, "abc123", ["abc123"]])
    def test_non_object_rejected(self, payload):
        with pytest.raises(InvalidContactError, match="object"):
            RemoteContact.from_api_response(payload)

    @pytest.mark.parametrize(
        "payload",
        [{}, {"id": ""}, {"id": 123}, {"contactName": "Jane Smith"}],
    )
    def test_missing_id_rejected(self, payload):
        with pytest.raises(InvalidContactError, match="id"):
            RemoteContact.from_api_response(payload)

    def test_invalid_contact_error_is_value_error(self):
        assert issubclass(InvalidContactError, ValueError)


class TestRemoteContactBehaviour:
    """Tests for RemoteContact methods."""

    def test_name_key_normalizes(self):
        assert RemoteContact("abc123", "jane SMITH").name_key() == "Jane Smith"

    def test_frozen(self):
        contact = RemoteContact("abc123", "Jane Smith")
        with pytest.raises(dataclasses.FrozenInstanceError):
            contact.display_name = "Other"


class TestLocalCandidateRef:
    """Tests for LocalCandidateRef."""

    def test_from_row(self):
        ref = LocalCandidateRef.from_row(
            {"id": 7, "name": "Jane Smith", "email": None, "ghl_contact_id": None}
        )
        assert ref.id == 7
        assert ref.name == "Jane Smith"
        assert ref.remote_contact_id is None
        assert ref.is_linked is False

    def test_linked_row(self):
        ref = LocalCandidateRef.from_row(
            {"id": "8", "name": "John Doe", "ghl_contact_id": "xyz"}
        )
        assert ref.id == 8
        assert ref.remote_contact_id == "xyz"
        assert ref.is_linked is True

    def test_empty_link_treated_as_unlinked(self):
        ref = LocalCandidateRef.from_row({"id": 1, "name": "A", "ghl_contact_id": ""})
        assert ref.is_linked is False

    def test_missing_name_defaults_to_empty(self):
        ref = LocalCandidateRef.from_row({"id": 1, "name": None})
        assert ref.name == ""
        assert ref.name_key() == ""

    def test_name_key(self):
        assert LocalCandidateRef(1, "JOHN michael DOE").name_key() == "John Michael Doe"
