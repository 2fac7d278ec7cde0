# backend/vetclinic/main.py
import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from scheduler.clock import SystemClock
from scheduler.errors import InfrastructureError, SchedulingError

from . import config, models, schemas
from .auth import get_current_user
from .database import engine, get_db
from .notifications import NotificationService
from .service import AppointmentService
from .store import SqlAppointmentStore, SqlDirectory

logger = logging.getLogger(__name__)


def configure_logging():
    """Console logging at LOG_LEVEL, plus a rotating error log when LOG_FILE is set."""
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if config.LOG_FILE:
        handler = RotatingFileHandler(config.LOG_FILE, maxBytes=100000, backupCount=3)
        handler.setLevel(logging.ERROR)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
        logging.getLogger().addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="PawPal Scheduling", lifespan=lifespan)


def api_error(code: str, message: str, status: int = 400):
    """Return a standardized JSON API error response."""
    return JSONResponse(status_code=status, content={"error": {"code": code, "message": message}})


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    if any(error.get("type") == "missing" for error in exc.errors()):
        return api_error("MISSING_FIELDS", "Missing required fields")
    return api_error("INVALID_REQUEST", "Malformed request")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InfrastructureError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Dependencies
def get_clock():
    return SystemClock()


def get_settings():
    return config.get_settings()


def get_appointment_service(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    settings=Depends(get_settings),
):
    return AppointmentService(
        store=SqlAppointmentStore(db),
        directory=SqlDirectory(db),
        notifier=NotificationService(db, clock),
        clock=clock,
        settings=settings,
    )


def _envelope(appointment, message=None):
    return schemas.AppointmentEnvelope(
        message=message, appointment=schemas.Appointment.model_validate(appointment)
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/appointments", status_code=201, response_model=schemas.AppointmentEnvelope)
def create_appointment(
    appointment: schemas.AppointmentCreate,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    created = service.create(user, appointment)
    return _envelope(created, "Appointment created successfully")


@app.get("/appointments", response_model=schemas.AppointmentPage)
def read_appointments(
    status: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    upcoming: bool = False,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    items, has_more = service.list_appointments(user, status=status, limit=limit, offset=offset, upcoming=upcoming)
    return schemas.AppointmentPage(
        appointments=[schemas.Appointment.model_validate(item) for item in items],
        has_more=has_more,
    )


@app.get("/appointments/availability/{veterinarian_id}", response_model=schemas.Availability)
def read_availability(
    veterinarian_id: str,
    date: Optional[str] = None,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    slots = service.availability(veterinarian_id, date)
    return schemas.Availability(date=date, veterinarian_id=veterinarian_id, available_slots=slots)


@app.get("/appointments/{appointment_id}", response_model=schemas.AppointmentEnvelope)
def read_appointment(
    appointment_id: str,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return _envelope(service.get(user, appointment_id))


@app.patch("/appointments/{appointment_id}/status", response_model=schemas.AppointmentEnvelope)
def update_appointment_status(
    appointment_id: str,
    update: schemas.StatusUpdate,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.change_status(user, appointment_id, update.status, update.reason)
    return _envelope(appointment, "Appointment status updated successfully")


@app.patch("/appointments/{appointment_id}/reschedule", response_model=schemas.AppointmentEnvelope)
def reschedule_appointment(
    appointment_id: str,
    request: schemas.RescheduleRequest,
    user: models.User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.reschedule(user, appointment_id, request.new_date_time, request.reason)
    return _envelope(appointment, "Appointment rescheduled successfully")
