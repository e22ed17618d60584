"""Data models for Patient Intake"""

from patient_intake.models.patient import PatientRecord, PatientStatus
from patient_intake.models.patient_row import PatientRow

__all__ = [
    "PatientRecord",
    "PatientStatus",
    "PatientRow",
]
