"""Intake service: validate, dedupe and persist one registration submission"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from patient_intake.backends.base import (
    DuplicateRecordError,
    StorageBackend,
    StorageError,
)
from patient_intake.errors import BackendUnavailable, ConflictError
from patient_intake.models.patient import PatientRecord, PatientStatus
from patient_intake.services.duplicate_checker import DuplicateChecker
from patient_intake.services.validation import validate_submission

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Patient with this phone/email already exists"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationResult:
    id: str
    name: str
    registered_at: datetime


class IntakeService:
    """Service for registering patients against one storage backend"""

    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.duplicate_checker = DuplicateChecker(storage)
        self.clock = clock

    def register(self, raw: Mapping[str, Any]) -> RegistrationResult:
        """
        Run a submission through validate -> dedupe -> persist.

        Each step is terminal on failure and nothing is retried; the caller
        resubmits after a backend failure.

        Args:
            raw: Submitted form or JSON fields

        Returns:
            RegistrationResult with the backend-assigned id

        Raises:
            ValidationError: one or more fields are missing or malformed (400)
            ConflictError: phone or email is already registered (409)
            BackendUnavailable: the storage backend failed (500)
        """
        submission = validate_submission(raw)

        try:
            duplicate = self.duplicate_checker.is_duplicate(
                submission.phone, submission.email
            )
        except StorageError as e:
            logger.error(f"Duplicate check failed on {self.storage.name}: {e}")
            raise BackendUnavailable("duplicate check failed") from e

        if duplicate:
            logger.warning(f"Rejected duplicate registration for '{submission.name}'")
            raise ConflictError(DUPLICATE_MESSAGE)

        record = PatientRecord(
            name=submission.name,
            email=submission.email,
            phone=submission.phone,
            age=submission.age,
            gender=submission.gender,
            address=submission.address,
            status=PatientStatus.PENDING,
            registered_at=self.clock(),
        )

        try:
            record_id = self.storage.create(record)
        except DuplicateRecordError as e:
            # Lost a race with a concurrent submission for the same patient
            logger.warning(f"Storage rejected duplicate for '{submission.name}': {e}")
            raise ConflictError(DUPLICATE_MESSAGE) from e
        except StorageError as e:
            logger.error(f"Failed to save registration on {self.storage.name}: {e}")
            raise BackendUnavailable(f"Failed to register patient: {e}") from e

        logger.info(f"Registered patient {record_id} ({submission.name})")
        return RegistrationResult(
            id=record_id, name=submission.name, registered_at=record.registered_at
        )
