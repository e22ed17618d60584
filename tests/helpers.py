"""Builders and fakes shared across the test modules"""

from datetime import datetime, timezone

import httpx

from patient_intake.backends.airtable_store import AirtableStore
from patient_intake.backends.base import StorageError
from patient_intake.models.patient import PatientRecord


def make_airtable_store(handler, token: str = "pat-secret-token") -> AirtableStore:
    """Airtable store whose HTTP calls are answered by `handler`"""
    return AirtableStore(
        base_id="appClinic",
        table_id="tblPatients",
        token=token,
        transport=httpx.MockTransport(handler),
    )


def make_record(**overrides) -> PatientRecord:
    fields = {
        "name": "John Doe",
        "email": "john@example.com",
        "phone": "+15551234567",
        "registered_at": datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return PatientRecord(**fields)


class FailingStore:
    """Backend that cannot be reached. Used for outage scenarios."""

    name = "failing"

    def __init__(self, fail_find: bool = True):
        self.fail_find = fail_find
        self.create_calls = 0

    def create(self, record):
        self.create_calls += 1
        raise StorageError("Airtable is unreachable")

    def find(self, predicate):
        if self.fail_find:
            raise StorageError("Airtable is unreachable")
        return []

    def list_all(self):
        raise StorageError("Airtable is unreachable")

    def is_configured(self):
        return True

    def health_check(self):
        raise StorageError("Airtable is unreachable")

    def close(self):
        pass
