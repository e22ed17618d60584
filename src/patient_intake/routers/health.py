from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from patient_intake.backends import get_storage
from patient_intake.backends.base import StorageBackend, StorageError
from patient_intake.config import config

health = APIRouter()


@health.get("/health")
def health_check(storage: StorageBackend = Depends(get_storage)):
    """Basic health check endpoint"""
    return {
        "status": "OK",
        "service": "patient-intake",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.get("environment", "development"),
        "backend": storage.name,
        "storageConfigured": storage.is_configured(),
    }


@health.get("/health/detailed")
def detailed_health_check(storage: StorageBackend = Depends(get_storage)):
    """Detailed health check that also reaches the storage backend"""
    health_status = {
        "status": "OK",
        "service": "patient-intake",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.get("environment", "development"),
        "backend": storage.name,
        "checks": {},
    }

    if not storage.is_configured():
        health_status["checks"]["storage"] = "unhealthy: not configured"
        health_status["status"] = "unhealthy"
    else:
        try:
            storage.health_check()
            health_status["checks"]["storage"] = "healthy"
        except StorageError as e:
            health_status["checks"]["storage"] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
