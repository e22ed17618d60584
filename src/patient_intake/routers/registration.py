"""Patient registration endpoints"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from patient_intake.backends import get_storage
from patient_intake.backends.base import StorageBackend
from patient_intake.errors import ValidationError
from patient_intake.services.intake_service import IntakeService

router = APIRouter(tags=["Registration"])

# Get template directory relative to this file
template_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))

logger = logging.getLogger(__name__)


async def _read_submission(request: Request) -> dict:
    """Read a JSON or form-encoded body into a plain dict"""
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError(
                [{"field": "body", "message": "Request body is not valid JSON"}]
            )
        if not isinstance(body, dict):
            raise ValidationError(
                [{"field": "body", "message": "Request body must be a JSON object"}]
            )
        return body

    form_data = await request.form()
    return {key: value for key, value in form_data.items() if isinstance(value, str)}


@router.get("/api/register")
def registration_status(storage: StorageBackend = Depends(get_storage)):
    """Capability probe for the registration endpoint. No side effects."""
    return {
        "status": "running",
        "method": "POST",
        "airtableConnected": storage.name == "airtable" and storage.is_configured(),
        "backend": storage.name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/api/register", status_code=201)
async def register_patient(
    request: Request, storage: StorageBackend = Depends(get_storage)
):
    """Handle a registration form submission"""
    submission = await _read_submission(request)
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Registration submission received from {client_host}")

    intake_service = IntakeService(storage)
    result = await run_in_threadpool(intake_service.register, submission)

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Patient registered successfully",
            "id": result.id,
            "name": result.name,
            "registeredAt": result.registered_at.isoformat(),
        },
    )


@router.get("/register", include_in_schema=False)
async def registration_page(request: Request):
    """Serve the public registration form"""
    return templates.TemplateResponse(request, "register.html", {})
