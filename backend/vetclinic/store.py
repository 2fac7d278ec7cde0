# backend/vetclinic/store.py
"""SQLAlchemy-backed implementations of the scheduler's collaborator ports."""
import functools
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.conflicts import Interval
from scheduler.errors import ConflictError, InfrastructureError, SchedulingError
from scheduler.lifecycle import AppointmentStatus

from . import crud

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_vet_locks = defaultdict(threading.Lock)


def _lock_for(veterinarian_id):
    with _registry_lock:
        return _vet_locks[veterinarian_id]


def _translate_errors(method):
    """Roll back and surface database failures as retryable InfrastructureError."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SchedulingError:
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Appointment store failure in %s", method.__name__)
            raise InfrastructureError() from exc

    return wrapper


def to_interval(appointment) -> Interval:
    return Interval(appointment.start_time, appointment.end_time, appointment.id)


class SqlAppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def booking_lock(self, veterinarian_id):
        """Hold the per-vet lock for a whole check-then-write unit of work."""
        with _lock_for(veterinarian_id):
            try:
                crud.lock_user_row(self.db, veterinarian_id)
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise InfrastructureError() from exc
            yield

    @_translate_errors
    def blocking_intervals(self, veterinarian_id, window_start, window_end):
        rows = crud.get_blocking_appointments(self.db, veterinarian_id, window_start, window_end)
        return [to_interval(row) for row in rows]

    @_translate_errors
    def get(self, appointment_id):
        return crud.get_appointment(self.db, appointment_id)

    @_translate_errors
    def get_for_update(self, appointment_id):
        return crud.lock_appointment_row(self.db, appointment_id)

    @_translate_errors
    def add(self, **fields):
        appointment = crud.create_appointment(self.db, **fields)
        self._commit_checked(appointment)
        return appointment

    @_translate_errors
    def update(self, appointment, **fields):
        crud.update_appointment(self.db, appointment, **fields)
        self._commit_checked(appointment)
        return appointment

    @_translate_errors
    def query(self, *, owner_id=None, veterinarian_id=None, status=None,
              starts_after=None, ascending=False, limit=20, offset=0):
        return crud.get_appointments(
            self.db,
            owner_id=owner_id,
            veterinarian_id=veterinarian_id,
            status=status,
            starts_after=starts_after,
            ascending=ascending,
            skip=offset,
            limit=limit,
        )

    @_translate_errors
    def confirmed_between(self, start, end):
        return crud.get_confirmed_between(self.db, start, end)

    def _commit_checked(self, appointment):
        """Re-check overlap against flushed state, then commit.

        A writer that slipped past the lock (another process, say) shows up
        here as a second blocking row in the same window.
        """
        if AppointmentStatus(appointment.status).is_blocking:
            clashes = [
                row for row in crud.get_blocking_appointments(
                    self.db, appointment.veterinarian_id, appointment.start_time, appointment.end_time
                )
                if row.id != appointment.id
            ]
            if clashes:
                self.db.rollback()
                logger.warning(
                    "Commit-time conflict for vet %s at %s (%d overlapping)",
                    appointment.veterinarian_id, appointment.start_time.isoformat(), len(clashes),
                )
                raise ConflictError()
        self.db.commit()
        self.db.refresh(appointment)


class SqlDirectory:
    """Pet and user lookups used for ownership and approval checks."""

    def __init__(self, db: Session):
        self.db = db

    @_translate_errors
    def get_user(self, user_id):
        return crud.get_user(self.db, user_id)

    @_translate_errors
    def get_pet(self, pet_id):
        return crud.get_pet(self.db, pet_id)


class SqlTokenVerifier:
    """Resolves bearer tokens against ``users.api_token``.

    Stands in for the identity provider; anything with a ``verify(token)``
    method can replace it through the ``get_token_verifier`` dependency.
    """

    def __init__(self, db: Session):
        self.db = db

    @_translate_errors
    def verify(self, token):
        if not token:
            return None
        return crud.get_user_by_token(self.db, token)
