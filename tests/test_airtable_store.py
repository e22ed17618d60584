"""Tests for the Airtable backend against a mocked Airtable API"""

import json

import httpx
import pytest

from patient_intake.backends.airtable_store import (
    AirtableStore,
    build_filter_formula,
    from_airtable_record,
    to_airtable_fields,
)
from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageError,
)
from patient_intake.models.patient import PatientStatus
from tests.helpers import make_airtable_store, make_record


class TestFieldMapping:
    def test_to_airtable_fields(self):
        fields = to_airtable_fields(make_record(age=30, gender="female"))

        assert fields["Name"] == "John Doe"
        assert fields["Phone"] == "+15551234567"
        assert fields["Email"] == "john@example.com"
        assert fields["Registration_Status"] == "Pending"
        assert fields["Registration_Date"] == "2026-10-15T09:30:00+00:00"
        assert fields["Source"] == "Website Registration"
        assert fields["Group"] == "C"
        assert fields["Payment_Status"] == "Unpaid"
        assert fields["Score"] == 0
        assert fields["Message_Count"] == 0
        assert fields["Age"] == 30
        assert fields["Gender"] == "female"
        assert "Address" not in fields

    def test_from_airtable_record(self):
        record = from_airtable_record(
            {
                "id": "recABC",
                "createdTime": "2026-10-01T08:00:00.000Z",
                "fields": {
                    "Name": "Jane",
                    "Email": "jane@example.com",
                    "Registration_Status": "Confirmed",
                    "Age": 51,
                },
            }
        )

        assert record.id == "recABC"
        assert record.phone is None
        assert record.age == 51
        assert record.status == PatientStatus.CONFIRMED
        # Falls back to createdTime without Registration_Date
        assert record.registered_at.isoformat() == "2026-10-01T08:00:00+00:00"

    def test_unknown_status_reads_as_pending(self):
        record = from_airtable_record(
            {"id": "rec1", "fields": {"Name": "X", "Registration_Status": "Waitlist"}}
        )

        assert record.status == PatientStatus.PENDING


class TestFilterFormula:
    def test_single_key(self):
        assert (
            build_filter_formula(LookupPredicate(phone="+15551234567"))
            == "{Phone} = '+15551234567'"
        )

    def test_both_keys(self):
        formula = build_filter_formula(
            LookupPredicate(phone="+15551234567", email="a@example.com")
        )

        assert formula == (
            "OR({Phone} = '+15551234567', LOWER({Email}) = 'a@example.com')"
        )

    def test_email_match_ignores_case(self):
        formula = build_filter_formula(LookupPredicate(email="Jane.Doe@Example.com"))

        assert formula == "LOWER({Email}) = 'jane.doe@example.com'"

    def test_quotes_are_escaped(self):
        formula = build_filter_formula(LookupPredicate(email="o'brien@example.com"))

        assert formula == "LOWER({Email}) = 'o\\'brien@example.com'"


class TestAirtableStore:
    def test_create_checks_then_posts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            assert request.headers["Authorization"] == "Bearer pat-secret-token"
            assert request.url.path == "/v0/appClinic/tblPatients"
            if request.method == "GET":
                return httpx.Response(200, json={"records": []})
            body = json.loads(request.content)
            assert body["typecast"] is True
            assert body["fields"]["Name"] == "John Doe"
            return httpx.Response(200, json={"id": "recNEW", "fields": body["fields"]})

        store = make_airtable_store(handler)

        assert store.create(make_record()) == "recNEW"
        assert [c.method for c in calls] == ["GET", "POST"]
        assert "filterByFormula" in calls[0].url.params

    def test_create_rejects_existing_contact(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            return httpx.Response(
                200,
                json={"records": [{"id": "recOLD", "fields": {"Name": "John Doe"}}]},
            )

        with pytest.raises(DuplicateRecordError):
            make_airtable_store(handler).create(make_record())

    def test_list_all_follows_pagination(self):
        pages = {
            None: {
                "records": [
                    {
                        "id": "rec1",
                        "fields": {
                            "Name": "Old",
                            "Registration_Date": "2026-10-01T00:00:00+00:00",
                        },
                    }
                ],
                "offset": "page2",
            },
            "page2": {
                "records": [
                    {
                        "id": "rec2",
                        "fields": {
                            "Name": "New",
                            "Registration_Date": "2026-10-10T00:00:00+00:00",
                        },
                    }
                ]
            },
        }

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["sort[0][field]"] == "Registration_Date"
            return httpx.Response(200, json=pages[request.url.params.get("offset")])

        records = make_airtable_store(handler).list_all()

        assert [r.name for r in records] == ["New", "Old"]

    @pytest.mark.parametrize(
        "status,message",
        [
            (401, "Airtable authentication failed"),
            (404, "Airtable base or table not found"),
            (422, "Airtable rejected the record"),
            (503, "Airtable request failed with status 503"),
        ],
    )
    def test_http_errors_map_to_storage_error(self, status, message):
        store = make_airtable_store(
            lambda request: httpx.Response(status, json={"error": "nope"})
        )

        with pytest.raises(StorageError) as exc_info:
            store.find(LookupPredicate(email="a@example.com"))

        assert str(exc_info.value) == message
        assert "pat-secret-token" not in str(exc_info.value)

    def test_network_error_maps_to_storage_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_airtable_store(handler)

        with pytest.raises(StorageError, match="unreachable"):
            store.health_check()

    def test_unconfigured_store_never_calls_out(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        store = AirtableStore(
            base_id=None,
            table_id="tblPatients",
            token=None,
            transport=httpx.MockTransport(handler),
        )

        assert store.is_configured() is False
        with pytest.raises(StorageError, match="not configured"):
            store.list_all()
