"""Airtable backend: patients live in a table of an Airtable base.

Airtable has no uniqueness constraints, so `create` re-checks phone/email
right before inserting. Two submissions racing between that lookup and the
insert can still both land; the SQL backend is the one to use when that
matters.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageError,
    newest_first,
)
from patient_intake.models.patient import DEFAULT_SOURCE, PatientRecord, PatientStatus

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"

# Columns of the clinic's Airtable table that this backend does not manage
# but must fill in for new rows.
STATIC_FIELDS = {
    "Group": "C",
    "Score": 0,
    "Payment_Status": "Unpaid",
    "Message_Count": 0,
}

_STATUS_TO_AIRTABLE = {
    PatientStatus.PENDING: "Pending",
    PatientStatus.CONFIRMED: "Confirmed",
    PatientStatus.CANCELLED: "Cancelled",
}
_STATUS_FROM_AIRTABLE = {
    label.lower(): status for status, label in _STATUS_TO_AIRTABLE.items()
}


def to_airtable_fields(record: PatientRecord) -> dict[str, Any]:
    """Map a patient record onto the Airtable column schema"""
    fields: dict[str, Any] = {
        "Name": record.name,
        "Phone": record.phone or "",
        "Email": record.email or "",
        "Registration_Status": _STATUS_TO_AIRTABLE[record.status],
        "Registration_Date": record.registered_at.isoformat(),
        "Source": record.source,
        **STATIC_FIELDS,
    }
    if record.age is not None:
        fields["Age"] = record.age
    if record.gender:
        fields["Gender"] = record.gender
    if record.address:
        fields["Address"] = record.address
    return fields


def from_airtable_record(data: dict[str, Any]) -> PatientRecord:
    """Build a patient record from an Airtable API record object"""
    fields = data.get("fields") or {}

    registered_raw = fields.get("Registration_Date") or data.get("createdTime")
    registered_at = _parse_timestamp(registered_raw)

    status_raw = str(fields.get("Registration_Status") or "").strip().lower()
    age = fields.get("Age")

    return PatientRecord(
        id=data["id"],
        name=fields.get("Name") or "N/A",
        email=fields.get("Email") or None,
        phone=fields.get("Phone") or None,
        age=int(age) if isinstance(age, (int, float)) else None,
        gender=fields.get("Gender") or None,
        address=fields.get("Address") or None,
        source=fields.get("Source") or DEFAULT_SOURCE,
        status=_STATUS_FROM_AIRTABLE.get(status_raw, PatientStatus.PENDING),
        registered_at=registered_at,
    )


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable Airtable timestamp: {value!r}")
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _quote(value: str) -> str:
    """Quote a string literal for an Airtable formula"""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_filter_formula(predicate: LookupPredicate) -> str:
    clauses = []
    if predicate.phone:
        clauses.append(f"{{Phone}} = {_quote(predicate.phone)}")
    if predicate.email:
        # Rows entered by hand may carry mixed-case emails.
        clauses.append(f"LOWER({{Email}}) = {_quote(predicate.email.lower())}")
    if len(clauses) == 1:
        return clauses[0]
    return f"OR({', '.join(clauses)})"


class AirtableStore:
    """Stores patients in an Airtable table through the REST API"""

    name = "airtable"

    def __init__(
        self,
        base_id: Optional[str],
        table_id: Optional[str],
        token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_id = base_id
        self.table_id = table_id
        self._token = token

        self.url = f"{AIRTABLE_API_URL}/{base_id}/{table_id}"
        self.client = httpx.Client(
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            transport=transport,
        )

        if not self.is_configured():
            logger.warning(
                "Airtable credentials not configured. "
                "Registrations will fail until AIRTABLE_BASE_ID, "
                "AIRTABLE_TABLE_ID and AIRTABLE_TOKEN are set."
            )

    def is_configured(self) -> bool:
        return bool(self.base_id and self.table_id and self._token)

    def create(self, record: PatientRecord) -> str:
        # Closest thing to a uniqueness constraint Airtable offers.
        if self.find(LookupPredicate(phone=record.phone, email=record.email)):
            raise DuplicateRecordError(
                "A patient with this phone or email is already registered"
            )

        body = {"fields": to_airtable_fields(record), "typecast": True}
        data = self._request("POST", json=body)

        record_id = data.get("id")
        if not record_id:
            raise StorageError("Airtable did not return a record id")

        logger.info(f"Created Airtable record {record_id}")
        return record_id

    def find(self, predicate: LookupPredicate) -> list[PatientRecord]:
        if predicate.is_empty():
            return []
        params = {"filterByFormula": build_filter_formula(predicate)}
        return [from_airtable_record(rec) for rec in self._fetch_all(params)]

    def list_all(self) -> list[PatientRecord]:
        params = {
            "sort[0][field]": "Registration_Date",
            "sort[0][direction]": "desc",
        }
        records = [from_airtable_record(rec) for rec in self._fetch_all(params)]
        # Rows without Registration_Date fall back to createdTime; re-sort.
        return newest_first(records)

    def health_check(self) -> None:
        self._request("GET", params={"maxRecords": 1})

    def close(self) -> None:
        self.client.close()

    def _fetch_all(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Follow Airtable's offset pagination and collect every record"""
        records: list[dict[str, Any]] = []
        page_params = dict(params)
        while True:
            data = self._request("GET", params=page_params)
            records.extend(data.get("records") or [])
            offset = data.get("offset")
            if not offset:
                return records
            page_params = {**params, "offset": offset}

    def _request(self, method: str, **kwargs) -> dict[str, Any]:
        if not self.is_configured():
            raise StorageError("Airtable is not configured")

        try:
            response = self.client.request(method, self.url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Airtable API error: {status} on {method} {e.request.url.path}")
            if status in (401, 403):
                raise StorageError("Airtable authentication failed") from e
            if status == 404:
                raise StorageError("Airtable base or table not found") from e
            if status == 422:
                raise StorageError("Airtable rejected the record") from e
            raise StorageError(f"Airtable request failed with status {status}") from e
        except httpx.RequestError as e:
            logger.error(f"Airtable request error: {type(e).__name__}")
            raise StorageError("Airtable is unreachable") from e
        except ValueError as e:
            raise StorageError("Airtable returned an invalid response") from e


def open_airtable_store(config: dict) -> AirtableStore:
    return AirtableStore(
        base_id=config.get("airtable_base_id"),
        table_id=config.get("airtable_table_id"),
        token=config.get("airtable_token"),
        timeout=config.get("airtable_timeout", 10.0),
    )
