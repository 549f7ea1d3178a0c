# pyright: reportMissingTypeStubs=false
"""
Clinic Scheduler API

A FastAPI application for booking clinic appointments without double-booking
clinicians or exam rooms.

Features:
- Appointment scheduling, rescheduling with conflict reports, status changes
- Exam room management and availability
- PostgreSQL database with SQLAlchemy ORM
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api import appointments, exam_rooms
from core.config import LOG_LEVEL
from core.constants import CORS_ORIGINS
from core.exceptions import SchedulingError

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Clinic Scheduler API starting...")


# Create FastAPI application
app = FastAPI(
    title="Clinic Scheduler",
    description="Appointment scheduling with clinician and exam room conflict detection",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Translate domain errors into HTTP responses with a structured detail."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Validation raised inside services (outside FastAPI's own body parsing)."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors(include_url=False, include_context=False)},
    )


# Include API routers
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={
        404: {"description": "Appointment not found"},
        409: {"description": "Scheduling conflict or invalid status change"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    appointments.patient_router,
    prefix="/api/patients",
    tags=["patient-appointments"],
    responses={
        403: {"description": "Forbidden"},
        404: {"description": "Appointment not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    exam_rooms.router,
    prefix="/api/exam-rooms",
    tags=["exam-rooms"],
    responses={
        404: {"description": "Exam room not found"},
        500: {"description": "Internal server error"},
    },
)


@app.get("/health", summary="Health check")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "service": "clinic-scheduler"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
