"""Error kinds surfaced by the intake pipeline and the admin routes.

Every failure a caller can see is one of these. Routers never build error
bodies by hand; the application-level handler renders them.
"""

from typing import Optional


class IntakeError(Exception):
    """Base class for caller-visible failures"""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(IntakeError):
    """Submitted fields are missing or malformed"""

    status_code = 400
    error = "Validation failed"

    def __init__(self, details: list[dict], message: str = "Invalid registration"):
        super().__init__(message)
        self.details = details

    @property
    def fields(self) -> list[str]:
        return [detail["field"] for detail in self.details]

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "details": self.details}


class ConflictError(IntakeError):
    """A patient with the same phone or email is already registered"""

    status_code = 409
    error = "duplicate"


class BackendUnavailable(IntakeError):
    """The storage backend failed; the caller may resubmit"""

    status_code = 500
    error = "Registration failed"


class AuthError(IntakeError):
    """Admin access denied (401 missing/wrong key, 403 not configured)"""

    status_code = 401
    error = "Unauthorized"

    def to_dict(self) -> dict:
        error = "Forbidden" if self.status_code == 403 else self.error
        return {"error": error, "message": self.message}
