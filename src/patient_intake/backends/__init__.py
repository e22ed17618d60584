"""Storage backends for patient records"""

import threading

from fastapi import Request

from patient_intake.backends.airtable_store import AirtableStore, open_airtable_store
from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageBackend,
    StorageError,
)
from patient_intake.backends.json_file_store import JsonFileStore, open_json_store
from patient_intake.backends.sql_store import SqlPatientStore, open_sql_store
from patient_intake.config import config
from patient_intake.logging_config import get_logger

logger = get_logger(__name__)

BACKEND_NAMES = ("json", "sql", "airtable")

_build_lock = threading.Lock()


def build_storage_backend(settings: dict) -> StorageBackend:
    """Construct the backend named by settings["storage_backend"]."""
    backend = (settings.get("storage_backend") or "json").lower()

    if backend == "json":
        store = open_json_store(settings.get("data_file"))
    elif backend == "sql":
        store = open_sql_store(settings.get("database_url"))
    elif backend == "airtable":
        store = open_airtable_store(settings)
    else:
        raise ValueError(
            f"Unknown STORAGE_BACKEND '{backend}'. Expected one of: {', '.join(BACKEND_NAMES)}"
        )

    logger.info(f"Using {store.name} storage backend")
    return store


def get_storage(request: Request) -> StorageBackend:
    """FastAPI dependency: the app's storage backend, built from config on first use"""
    state = request.app.state
    if getattr(state, "storage", None) is None:
        with _build_lock:
            if getattr(state, "storage", None) is None:
                state.storage = build_storage_backend(config)
    return state.storage


__all__ = [
    "AirtableStore",
    "BACKEND_NAMES",
    "DuplicateRecordError",
    "JsonFileStore",
    "LookupPredicate",
    "SqlPatientStore",
    "StorageBackend",
    "StorageError",
    "build_storage_backend",
    "get_storage",
]
