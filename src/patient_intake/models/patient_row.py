"""SQLModel Patient table for the relational backend"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from patient_intake.models.patient import DEFAULT_SOURCE, PatientStatus


class PatientRow(SQLModel, table=True):
    """Registered patient. Email and phone are unique when present."""

    __tablename__ = "patients"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=200)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    phone: Optional[str] = Field(default=None, unique=True, index=True)
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=500)
    source: str = Field(default=DEFAULT_SOURCE)
    status: PatientStatus = Field(
        default=PatientStatus.PENDING,
        sa_column=Column(
            SAEnum(
                PatientStatus,
                name="patient_status",
                native_enum=True,
                values_callable=lambda enum: [e.value for e in enum],
            ),
            nullable=False,
            server_default=PatientStatus.PENDING.value,
        ),
    )
    registered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )
