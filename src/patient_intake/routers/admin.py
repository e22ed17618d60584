"""Admin dashboard, patient listing, search and CSV export.

Every route here sits behind the admin key check.
"""

from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates

from patient_intake.auth.dependencies import require_admin
from patient_intake.backends import get_storage
from patient_intake.backends.base import StorageBackend
from patient_intake.errors import ValidationError
from patient_intake.models.patient import PatientRecord
from patient_intake.services.dashboard_service import DashboardService

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_admin)])

template_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))


def get_dashboard_service(
    storage: StorageBackend = Depends(get_storage),
) -> DashboardService:
    return DashboardService(storage)


def _patient_item(record: PatientRecord) -> dict:
    return {
        "id": record.id,
        "name": record.name,
        "phone": record.phone or "N/A",
        "email": record.email or "N/A",
        "age": record.age,
        "gender": record.gender or "N/A",
        "address": record.address or "N/A",
        "source": record.source,
        "status": record.status.value,
        "registrationTime": record.registered_at.isoformat(),
    }


@router.get("/admin", include_in_schema=False)
def admin_dashboard(
    request: Request,
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    """Render the admin dashboard: counts plus the newest registrations"""
    patients = dashboard.list_patients()
    summary = dashboard.summary(patients)

    return templates.TemplateResponse(
        request,
        "admin.html",
        {
            "summary": summary,
            "patients": patients,
            "backend": dashboard.storage.name,
        },
    )


@router.get("/api/admin/patients")
def list_patients(dashboard: DashboardService = Depends(get_dashboard_service)):
    """All patients, newest registration first"""
    patients = dashboard.list_patients()
    return {
        "success": True,
        "count": len(patients),
        "patients": [_patient_item(p) for p in patients],
    }


@router.get("/api/admin/patients/search")
def search_patients(
    q: str = "", dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Search patients by name, email or phone"""
    if not q.strip():
        raise ValidationError(
            [{"field": "q", "message": "Search query required"}],
            message="Search query required",
        )

    results = dashboard.search(q)
    return {
        "success": True,
        "count": len(results),
        "searchTerm": q,
        "patients": [_patient_item(p) for p in results],
    }


@router.get("/api/admin/patients/export")
def export_patients(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Download every patient as a CSV file"""
    csv_content = dashboard.export_csv(dashboard.list_patients())
    filename = f"patients_{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/api/admin/stats")
def patient_stats(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Registration counts: total, today, this week and by status"""
    summary = dashboard.summary(dashboard.list_patients())
    return {"success": True, **summary.to_dict()}
