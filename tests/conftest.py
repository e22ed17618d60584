"""Shared test configuration and fixtures for Patient Intake tests"""

import logging

import pytest
from fastapi.testclient import TestClient

from patient_intake.backends.json_file_store import JsonFileStore
from patient_intake.backends.sql_store import open_sql_store
from patient_intake.config import config
from patient_intake.main import create_app

logging.basicConfig(level=logging.INFO)

ADMIN_KEY = "test-admin-key"


@pytest.fixture
def json_store(tmp_path):
    """JSON file store backed by a fresh file per test"""
    store = JsonFileStore(tmp_path / "patients.json")
    yield store
    store.close()


@pytest.fixture
def sql_store():
    """SQL store on an in-memory SQLite database"""
    store = open_sql_store("sqlite://")
    store.create_tables()
    yield store
    store.close()


@pytest.fixture(params=["json", "sql"])
def storage(request):
    """Each locally runnable backend in turn"""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def admin_key(monkeypatch):
    """Configure the admin key for the duration of a test"""
    monkeypatch.setitem(config, "admin_api_key", ADMIN_KEY)
    return ADMIN_KEY


@pytest.fixture
def client(json_store, admin_key):
    """Test client for an app using the JSON file store"""
    return TestClient(create_app(storage=json_store))


@pytest.fixture
def admin_headers(admin_key):
    return {"X-Admin-Key": admin_key}
