#!/usr/bin/env python3
"""Patient Intake - registration API and admin dashboard"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from patient_intake.backends.base import StorageBackend, StorageError
from patient_intake.config import config
from patient_intake.errors import AuthError, IntakeError
from patient_intake.logging_config import get_logger, setup_logging
from patient_intake.routers.admin import router as admin_router
from patient_intake.routers.health import health
from patient_intake.routers.registration import router as registration_router

# Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
setup_logging()
logger = get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def _wants_html(request: Request) -> bool:
    return request.url.path == "/admin" or "text/html" in request.headers.get(
        "accept", ""
    )


async def intake_error_handler(request: Request, exc: IntakeError):
    headers = None
    if isinstance(exc, AuthError) and exc.status_code == 401:
        headers = {"WWW-Authenticate": 'Basic realm="admin"'}

    if _wants_html(request):
        body = exc.to_dict()
        return templates.TemplateResponse(
            request,
            "error.html",
            {"error": body["error"], "message": body["message"]},
            status_code=exc.status_code,
            headers=headers,
        )
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Storage unavailable", "message": str(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": "Please try again later"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    storage = getattr(app.state, "storage", None)
    if storage is not None:
        logger.info(f"Closing {storage.name} storage backend")
        storage.close()


def create_app(storage: Optional[StorageBackend] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        storage: Backend to use. When omitted, one is built from config on
            the first request that needs it.
    """
    app = FastAPI(
        title="Patient Intake",
        description="Patient registration API for clinic websites",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config["cors_origins"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Key"],
    )

    app.add_exception_handler(IntakeError, intake_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health)
    app.include_router(registration_router)
    app.include_router(admin_router)

    return app


app = create_app()


def run():
    """Serve the app with uvicorn on the configured port"""
    port = config.get("port")
    logger.info(f"Starting Patient Intake on 0.0.0.0:{port}")
    logger.info(f"Storage backend: {config['storage_backend']}")
    logger.info("Registration endpoint available at /api/register")
    logger.info("Health check available at /health")

    try:
        uvicorn.run(
            app, host="0.0.0.0", port=port, log_level=config["log_level"].lower()
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise


if __name__ == "__main__":
    run()
