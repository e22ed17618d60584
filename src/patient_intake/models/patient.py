"""Canonical patient record shared by every storage backend"""

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_SOURCE = "Website Registration"


class PatientStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PatientRecord(BaseModel):
    """A stored registration. `id` is None until a backend assigns one."""

    id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    source: str = DEFAULT_SOURCE
    status: PatientStatus = PatientStatus.PENDING
    registered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def matches(self, phone: Optional[str], email: Optional[str]) -> bool:
        """True when this record shares the given phone or email"""
        if phone and self.phone == phone:
            return True
        if email and self.email == email:
            return True
        return False
