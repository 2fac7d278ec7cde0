# backend/vetclinic/service.py
"""Appointment booking, status changes, rescheduling and availability.

Every public method is one request-scoped unit of work: read the vet's
current bookings, evaluate the rule, write the result, then notify. Checks
that can fail without touching the store run first.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from scheduler.availability import compute_available_slots
from scheduler.clock import Clock, ensure_utc
from scheduler.conflicts import Interval, conflicting
from scheduler.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from scheduler.lifecycle import (
    ActorRelation,
    AppointmentStatus,
    parse_requested_status,
    plan_transition,
    relation_of,
)
from scheduler.ports import AppointmentStore, Directory, NotificationGateway

from .config import Settings

logger = logging.getLogger(__name__)


class AppointmentService:
    def __init__(
        self,
        store: AppointmentStore,
        directory: Directory,
        notifier: NotificationGateway,
        clock: Clock,
        settings: Settings = None,
    ):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.clock = clock
        self.settings = settings or Settings()

    # --- Create ---

    def create(self, actor, data):
        """Book a new ``pending`` appointment on behalf of a pet owner."""
        if not (data.pet_id and data.veterinarian_id and data.date_time and data.type
                and data.reason and data.reason.strip()):
            raise ValidationError("Missing required fields", code="MISSING_FIELDS")

        duration = data.duration if data.duration is not None else self.settings.default_duration_minutes
        if not 0 < duration <= self.settings.max_duration_minutes:
            raise ValidationError(
                f"Duration must be between 1 and {self.settings.max_duration_minutes} minutes",
                code="INVALID_DURATION",
            )

        pet = self.directory.get_pet(data.pet_id)
        if pet is None or pet.owner_id != actor.id:
            raise AuthorizationError("Pet not found or access denied", code="PET_ACCESS_DENIED")

        vet = self.directory.get_user(data.veterinarian_id)
        if vet is None or not vet.is_approved_veterinarian:
            raise AuthorizationError("Veterinarian not found or not approved", code="VET_NOT_AVAILABLE")

        now = self.clock.now()
        start = ensure_utc(data.date_time)
        if start <= now:
            raise ValidationError("Appointment must be in the future", code="INVALID_DATE")

        candidate = self._booking_interval(start, duration)
        with self.store.booking_lock(vet.id):
            self._ensure_free(vet.id, candidate)
            appointment = self.store.add(
                owner_id=actor.id,
                pet_id=pet.id,
                veterinarian_id=vet.id,
                type=data.type,
                start_time=candidate.start,
                end_time=candidate.end,
                duration_minutes=duration,
                status=AppointmentStatus.PENDING.value,
                reason=data.reason.strip(),
                notes=data.notes.strip() if data.notes and data.notes.strip() else None,
                created_at=now,
                updated_at=now,
            )

        logger.info("Appointment %s booked with vet %s at %s", appointment.id, vet.id, start.isoformat())
        self._dispatch(
            vet.id,
            "new_appointment",
            "New Appointment Request",
            f"New appointment request for {pet.name}",
            {"appointmentId": appointment.id, "petId": pet.id, "petName": pet.name},
        )
        return appointment

    # --- Read ---

    def get(self, actor, appointment_id):
        appointment = self._load(appointment_id)
        if relation_of(actor.id, appointment.owner_id, appointment.veterinarian_id) is ActorRelation.NONE:
            raise AuthorizationError()
        return appointment

    def list_appointments(self, actor, status=None, limit=20, offset=0, upcoming=False) -> Tuple[List, bool]:
        if limit <= 0 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative", code="INVALID_PAGINATION")
        if status in (None, "", "all"):
            status = None
        else:
            try:
                status = AppointmentStatus(status).value
            except ValueError:
                raise ValidationError("Invalid status", code="INVALID_STATUS") from None

        scope = {"veterinarian_id": actor.id} if actor.is_veterinarian else {"owner_id": actor.id}
        items = self.store.query(
            status=status,
            starts_after=self.clock.now() if upcoming else None,
            ascending=upcoming,
            limit=limit,
            offset=offset,
            **scope,
        )
        items = list(items)
        return items, len(items) == limit

    # --- Status lifecycle ---

    def change_status(self, actor, appointment_id, status, reason=None):
        requested = parse_requested_status(status)
        appointment = self._load(appointment_id)
        with self.store.booking_lock(appointment.veterinarian_id):
            # Re-read under the lock; a concurrent change may have ended it.
            appointment = self._load(appointment_id, for_update=True)
            relation = relation_of(actor.id, appointment.owner_id, appointment.veterinarian_id)
            rule = plan_transition(appointment.status_enum, requested, relation)

            now = self.clock.now()
            updates = {"status": rule.target.value, "updated_at": now}
            if reason and reason.strip():
                updates["status_reason"] = reason.strip()
            if rule.timestamp_field:
                updates[rule.timestamp_field] = now
            appointment = self.store.update(appointment, **updates)

        logger.info(
            "Appointment %s moved to %s by %s %s", appointment.id, rule.target.value, relation.value, actor.id
        )
        self._dispatch(
            self._other_party(appointment, relation),
            rule.notification_type,
            "Appointment Status Update",
            rule.message,
            {"appointmentId": appointment.id, "status": rule.target.value, "reason": reason},
        )
        return appointment

    def reschedule(self, actor, appointment_id, new_date_time: Optional[datetime], reason=None):
        if new_date_time is None:
            raise ValidationError("New date and time required", code="MISSING_DATETIME")

        appointment = self._load(appointment_id)
        with self.store.booking_lock(appointment.veterinarian_id):
            appointment = self._load(appointment_id, for_update=True)
            relation = relation_of(actor.id, appointment.owner_id, appointment.veterinarian_id)
            rule = plan_transition(appointment.status_enum, AppointmentStatus.PENDING, relation)

            now = self.clock.now()
            start = ensure_utc(new_date_time)
            if start <= now:
                raise ValidationError("New appointment time must be in the future", code="INVALID_DATE")

            candidate = self._booking_interval(start, appointment.duration_minutes, appointment.id)
            self._ensure_free(appointment.veterinarian_id, candidate, exclude_id=appointment.id)
            appointment = self.store.update(
                appointment,
                start_time=candidate.start,
                end_time=candidate.end,
                status=rule.target.value,
                rescheduled_at=now,
                reschedule_reason=reason.strip() if reason and reason.strip() else None,
                updated_at=now,
            )

        logger.info("Appointment %s rescheduled to %s", appointment.id, start.isoformat())
        self._dispatch(
            self._other_party(appointment, relation),
            rule.notification_type,
            "Appointment Rescheduled",
            f"{rule.message} to {start.isoformat()}",
            {"appointmentId": appointment.id, "newDateTime": start.isoformat(), "reason": reason},
        )
        return appointment

    # --- Availability ---

    def availability(self, veterinarian_id, day: Optional[str]) -> List[datetime]:
        if not day:
            raise ValidationError("Date parameter required", code="MISSING_DATE")
        try:
            requested = date.fromisoformat(day)
        except ValueError:
            raise ValidationError("Invalid date", code="INVALID_DATE") from None

        tz = self.settings.timezone
        now = self.clock.now()
        if requested < now.astimezone(tz).date():
            raise ValidationError("Invalid date", code="INVALID_DATE")

        vet = self.directory.get_user(veterinarian_id)
        if vet is None or not vet.is_approved_veterinarian:
            raise NotFoundError("Veterinarian not found", code="VET_NOT_FOUND")

        work_start = vet.work_start or self.settings.work_start
        work_end = vet.work_end or self.settings.work_end
        day_start = datetime.combine(requested, work_start, tzinfo=tz)
        day_end = datetime.combine(requested, work_end, tzinfo=tz)
        bookings = self.store.blocking_intervals(vet.id, day_start, day_end)
        slots = compute_available_slots(
            requested,
            bookings,
            now,
            work_start=work_start,
            work_end=work_end,
            granularity_minutes=self.settings.slot_minutes,
            tz=tz,
        )
        return list(slots)

    # --- Helpers ---

    def _load(self, appointment_id, for_update=False):
        if for_update:
            appointment = self.store.get_for_update(appointment_id)
        else:
            appointment = self.store.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found", code="APPOINTMENT_NOT_FOUND")
        return appointment

    @staticmethod
    def _booking_interval(start, duration, appointment_id=None) -> Interval:
        try:
            return Interval.from_booking(start, duration, appointment_id)
        except ValueError:
            raise ValidationError("Appointment time is out of range", code="INVALID_DATE") from None

    def _ensure_free(self, veterinarian_id, candidate: Interval, exclude_id=None):
        existing = self.store.blocking_intervals(veterinarian_id, candidate.start, candidate.end)
        clashes = conflicting(existing, candidate, exclude_id=exclude_id)
        if clashes:
            logger.info(
                "Rejected %s for vet %s: overlaps %s",
                candidate.start.isoformat(), veterinarian_id, [c.appointment_id for c in clashes],
            )
            raise ConflictError()

    @staticmethod
    def _other_party(appointment, relation):
        if relation is ActorRelation.VETERINARIAN:
            return appointment.owner_id
        return appointment.veterinarian_id

    def _dispatch(self, user_id, type, title, message, data):
        try:
            self.notifier.notify(user_id, type, title, message, data)
        except Exception:
            logger.exception("Failed to deliver %s notification to %s", type, user_id)
