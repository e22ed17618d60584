"""Storage backend interface shared by the Airtable, JSON file and SQL stores."""

from dataclasses import dataclass
from typing import Optional, Protocol

from patient_intake.models.patient import PatientRecord


class StorageError(Exception):
    """The backend could not complete an operation (network, I/O, database).

    Messages are safe to show to callers: they never carry credentials.
    """


class DuplicateRecordError(StorageError):
    """The backend's uniqueness policy rejected a record on phone or email"""


@dataclass(frozen=True)
class LookupPredicate:
    """Disjunction over phone/email equality. Absent keys are ignored."""

    phone: Optional[str] = None
    email: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.phone and not self.email


class StorageBackend(Protocol):
    """Persists and queries patient records."""

    name: str

    def create(self, record: PatientRecord) -> str:
        """Persist a new record durably and return its assigned id.

        Raises DuplicateRecordError when phone or email is already stored,
        StorageError on any other failure.
        """
        ...

    def find(self, predicate: LookupPredicate) -> list[PatientRecord]:
        """Return records whose phone or email equals the predicate's. Never None."""
        ...

    def list_all(self) -> list[PatientRecord]:
        """Return every record, newest registered_at first."""
        ...

    def is_configured(self) -> bool:
        """Whether the backend has the settings it needs."""
        ...

    def health_check(self) -> None:
        """Raise StorageError when the backend cannot be reached."""
        ...

    def close(self) -> None:
        ...


def newest_first(records: list[PatientRecord]) -> list[PatientRecord]:
    return sorted(records, key=lambda record: record.registered_at, reverse=True)
