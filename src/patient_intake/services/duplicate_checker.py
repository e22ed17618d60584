"""Duplicate detection on the phone/email dedupe key"""

from typing import Optional

from patient_intake.backends.base import LookupPredicate, StorageBackend


class DuplicateChecker:
    """Asks the storage backend whether a phone or email is already registered.

    Backend failures propagate as StorageError. A failed lookup is never
    reported as "no duplicate".
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    def is_duplicate(self, phone: Optional[str], email: Optional[str]) -> bool:
        predicate = LookupPredicate(phone=phone, email=email)
        if predicate.is_empty():
            return False
        return len(self.storage.find(predicate)) > 0
