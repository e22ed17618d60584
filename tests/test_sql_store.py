"""Tests for the SQLModel backend on SQLite"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageError,
)
from patient_intake.models.database import create_db_engine
from patient_intake.models.patient import PatientStatus
from tests.helpers import make_record


class TestSqlPatientStore:
    def test_create_and_read_back(self, sql_store):
        record_id = sql_store.create(make_record(age=34, gender="male"))

        (record,) = sql_store.list_all()
        assert record.id == record_id
        assert record.age == 34
        assert record.status == PatientStatus.PENDING
        assert record.registered_at.tzinfo is not None

    def test_unique_email_enforced(self, sql_store):
        sql_store.create(make_record())

        with pytest.raises(DuplicateRecordError):
            sql_store.create(make_record(name="Other", phone="+19999999999"))

    def test_unique_phone_enforced(self, sql_store):
        sql_store.create(make_record())

        with pytest.raises(DuplicateRecordError):
            sql_store.create(make_record(name="Other", email="other@example.com"))

    def test_missing_contacts_do_not_collide(self, sql_store):
        sql_store.create(make_record(email=None))
        sql_store.create(make_record(name="Jane", email="jane@example.com", phone=None))

        assert len(sql_store.list_all()) == 2

    def test_find_is_disjunction(self, sql_store):
        sql_store.create(make_record())
        sql_store.create(make_record(name="Jane", email="jane@example.com", phone=None))

        found = sql_store.find(
            LookupPredicate(phone="+15551234567", email="jane@example.com")
        )
        assert sorted(r.name for r in found) == ["Jane", "John Doe"]
        assert sql_store.find(LookupPredicate()) == []

    def test_list_all_newest_first(self, sql_store):
        base = make_record().registered_at
        old = make_record(name="Old", registered_at=base - timedelta(days=3))
        new = make_record(
            name="New", email="new@example.com", phone=None, registered_at=base
        )
        sql_store.create(old)
        sql_store.create(new)

        assert [r.name for r in sql_store.list_all()] == ["New", "Old"]

    def test_health_check(self, sql_store):
        sql_store.health_check()

    def test_query_failure_becomes_storage_error(self, sql_store, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr("patient_intake.backends.sql_store.Session.exec", broken)

        with pytest.raises(StorageError):
            sql_store.list_all()


def test_engine_requires_url():
    with pytest.raises(ValueError):
        create_db_engine(None)
