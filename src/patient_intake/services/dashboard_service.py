"""Read-only views over stored patients for the admin dashboard"""

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from patient_intake.backends.base import StorageBackend
from patient_intake.models.patient import PatientRecord, PatientStatus
from patient_intake.services.intake_service import utc_now
from patient_intake.services.validation import normalize_phone

CSV_HEADERS = [
    "Name",
    "Phone",
    "Email",
    "Age",
    "Gender",
    "Address",
    "Registration Time",
    "Status",
]


@dataclass
class DashboardSummary:
    total: int
    today: int
    this_week: int
    by_status: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "today": self.today,
            "thisWeek": self.this_week,
            "byStatus": self.by_status,
        }


class DashboardService:
    """Recomputes listings and counts on every call; nothing is cached"""

    def __init__(
        self,
        storage: StorageBackend,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.clock = clock

    def list_patients(self) -> list[PatientRecord]:
        return self.storage.list_all()

    def summary(self, records: list[PatientRecord]) -> DashboardSummary:
        """Count registrations today (UTC date), in the last 7 days, and by status"""
        now = self.clock()
        week_start = now - timedelta(days=7)

        by_status = {status.value: 0 for status in PatientStatus}
        today = this_week = 0
        for record in records:
            by_status[record.status.value] += 1
            if record.registered_at.date() == now.date():
                today += 1
            if week_start <= record.registered_at <= now:
                this_week += 1

        return DashboardSummary(
            total=len(records), today=today, this_week=this_week, by_status=by_status
        )

    def search(self, term: str) -> list[PatientRecord]:
        """Case-insensitive substring match over name, email and phone"""
        needle = (term or "").strip().lower()
        if not needle:
            return []
        # Stored phones have no separators
        phone_needle = normalize_phone(needle)
        return [
            record
            for record in self.storage.list_all()
            if needle in record.name.lower()
            or needle in (record.email or "")
            or (phone_needle and phone_needle in (record.phone or ""))
        ]

    @staticmethod
    def export_csv(records: list[PatientRecord]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for record in records:
            writer.writerow(
                [
                    record.name,
                    record.phone or "",
                    record.email or "",
                    "" if record.age is None else record.age,
                    record.gender or "",
                    record.address or "",
                    record.registered_at.isoformat(),
                    record.status.value,
                ]
            )
        return buffer.getvalue()
