"""JSON document file backend.

The whole patient list lives in one JSON array. Every `create` goes through a
single writer thread, so the read-all / append / write-all cycle never races
with another create in this process. The write replaces the file atomically
(temp file, fsync, os.replace) so readers always see a complete document.

Known limitation: several *processes* writing the same file still race.
Run one worker per data file, or use the SQL backend.
"""

import contextlib
import json
import logging
import os
import queue
import threading
import uuid
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageError,
    newest_first,
)
from patient_intake.models.patient import PatientRecord

logger = logging.getLogger(__name__)

_STOP = object()


class JsonFileStore:
    """Stores patients in a local JSON file"""

    name = "json"

    def __init__(self, path: Union[str, Path], write_timeout: float = 30.0):
        self.path = Path(path)
        self.write_timeout = write_timeout
        self._ensure_file()

        self._jobs: queue.Queue = queue.Queue()
        self._writer = threading.Thread(
            target=self._run_writer, name="json-store-writer", daemon=True
        )
        self._writer.start()

    def _ensure_file(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self._write_atomic([])
        except OSError as e:
            raise StorageError(f"Patient data file is not writable: {e.strerror}") from e

    # --- public API -------------------------------------------------------

    def create(self, record: PatientRecord) -> str:
        if not self._writer.is_alive():
            raise StorageError("Patient data file writer is not running")

        future: Future = Future()
        self._jobs.put((record, future))
        try:
            return future.result(timeout=self.write_timeout)
        except FutureTimeout as e:
            if future.cancel():
                # Never reached the writer; nothing was written.
                raise StorageError("Timed out saving registration") from e

        # The write already started; report its real outcome.
        logger.warning(f"Slow write to {self.path}; waiting for it to finish")
        return future.result()

    def find(self, predicate: LookupPredicate) -> list[PatientRecord]:
        if predicate.is_empty():
            return []
        return [
            record
            for record in self._read_records()
            if record.matches(predicate.phone, predicate.email)
        ]

    def list_all(self) -> list[PatientRecord]:
        # Reverse first so records sharing a timestamp keep newest-first order.
        return newest_first(list(reversed(self._read_records())))

    def is_configured(self) -> bool:
        return True

    def health_check(self) -> None:
        self._read_rows()

    def close(self) -> None:
        if self._writer.is_alive():
            self._jobs.put(_STOP)
            self._writer.join(timeout=self.write_timeout)

    # --- writer thread ----------------------------------------------------

    def _run_writer(self) -> None:
        while True:
            job = self._jobs.get()
            if job is _STOP:
                break
            record, future = job
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(self._append(record))
            except Exception as e:
                future.set_exception(e)

    def _append(self, record: PatientRecord) -> str:
        rows = self._read_rows()
        existing = [self._to_record(row) for row in rows]

        for other in existing:
            if other.matches(record.phone, record.email):
                raise DuplicateRecordError(
                    "A patient with this phone or email is already registered"
                )

        registered_at = record.registered_at
        if existing and existing[-1].registered_at > registered_at:
            registered_at = existing[-1].registered_at

        stored = record.model_copy(
            update={"id": uuid.uuid4().hex, "registered_at": registered_at}
        )
        rows.append(stored.model_dump(mode="json"))
        self._write_atomic(rows)

        logger.info(f"Saved patient {stored.id} to {self.path}")
        return stored.id

    # --- file I/O ---------------------------------------------------------

    def _read_rows(self) -> list[dict]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            logger.error(f"Patient data file {self.path} is corrupt: {e}")
            raise StorageError("Patient data file is corrupt") from e
        except OSError as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StorageError(f"Failed to read patient data: {e.strerror}") from e

        if not isinstance(data, list):
            raise StorageError("Patient data file is corrupt")
        return data

    def _read_records(self) -> list[PatientRecord]:
        return [self._to_record(row) for row in self._read_rows()]

    @staticmethod
    def _to_record(row: dict) -> PatientRecord:
        try:
            return PatientRecord.model_validate(row)
        except PydanticValidationError as e:
            raise StorageError("Patient data file holds an invalid record") from e

    def _write_atomic(self, rows: list[dict]) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise StorageError(f"Failed to save patient data: {e.strerror}") from e


def open_json_store(path: Optional[str]) -> JsonFileStore:
    if not path:
        raise ValueError("PATIENTS_FILE must be set when STORAGE_BACKEND=json")
    return JsonFileStore(path)
