"""Field validation and normalization for registration submissions.

Accepts either a single `name` or `first_name` + `last_name`, and produces
one canonical submission shape. All violations are collected before raising,
so the caller can show every bad field at once.
"""

import re
from typing import Any, Mapping, Optional

from pydantic import BaseModel, EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from patient_intake.errors import ValidationError

NAME_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 500
AGE_MIN, AGE_MAX = 0, 130

PHONE_RE = re.compile(r"^\+?\d{7,15}$")
# Separators people type into phone fields
PHONE_SEPARATORS_RE = re.compile(r"[\s\-().]")


class RegistrationSubmission(BaseModel):
    """A validated, normalized submission ready to become a patient record"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None


def _text(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return str(value).strip()


def normalize_phone(value: str) -> str:
    """Strip the separators people type ("(555) 123-4567") from a phone number"""
    return PHONE_SEPARATORS_RE.sub("", value)


_email_adapter = TypeAdapter(EmailStr)


def normalize_email(value: str) -> Optional[str]:
    """Return the lower-cased address when `value` is a valid email, else None"""
    try:
        return _email_adapter.validate_python(value).lower()
    except PydanticValidationError:
        return None


def is_valid_email(value: str) -> bool:
    return normalize_email(value) is not None


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(value))


def validate_submission(raw: Mapping[str, Any]) -> RegistrationSubmission:
    """
    Validate and normalize a raw registration payload.

    Args:
        raw: Form or JSON fields as submitted

    Returns:
        RegistrationSubmission with trimmed text, lower-cased email and a
        separator-free phone number

    Raises:
        ValidationError: listing every violated field
    """
    errors: list[dict] = []

    name = _text(raw, "name")
    if not name:
        first_name = _text(raw, "first_name")
        last_name = _text(raw, "last_name")
        name = " ".join(part for part in (first_name, last_name) if part)

    if not name:
        errors.append({"field": "name", "message": "Name is required"})
    elif len(name) > NAME_MAX_LENGTH:
        errors.append(
            {
                "field": "name",
                "message": f"Name must be at most {NAME_MAX_LENGTH} characters",
            }
        )

    email = _text(raw, "email").lower() or None
    if email:
        normalized_email = normalize_email(email)
        if normalized_email:
            email = normalized_email
        else:
            errors.append({"field": "email", "message": "Valid email required"})

    phone = normalize_phone(_text(raw, "phone")) or None
    if phone and not is_valid_phone(phone):
        errors.append({"field": "phone", "message": "Valid phone number required"})

    if not email and not phone:
        errors.append(
            {
                "field": "contact",
                "message": "Please provide either an email address or phone number",
            }
        )

    age: Optional[int] = None
    age_raw = _text(raw, "age")
    if age_raw:
        try:
            age = int(age_raw)
        except ValueError:
            errors.append({"field": "age", "message": "Age must be a whole number"})
        else:
            if not AGE_MIN <= age <= AGE_MAX:
                errors.append(
                    {
                        "field": "age",
                        "message": f"Age must be between {AGE_MIN} and {AGE_MAX}",
                    }
                )

    address = _text(raw, "address") or None
    if address and len(address) > ADDRESS_MAX_LENGTH:
        errors.append(
            {
                "field": "address",
                "message": f"Address must be at most {ADDRESS_MAX_LENGTH} characters",
            }
        )

    if errors:
        raise ValidationError(errors)

    return RegistrationSubmission(
        name=name,
        email=email,
        phone=phone,
        age=age,
        gender=_text(raw, "gender") or None,
        address=address,
    )
