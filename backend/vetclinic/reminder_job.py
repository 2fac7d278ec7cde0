"""Cron-friendly script to send reminders for tomorrow's confirmed appointments."""
import logging
from datetime import datetime, time, timedelta, timezone

from scheduler.clock import SystemClock

from .database import Base, SessionLocal, engine
from .notifications import NotificationService
from .store import SqlAppointmentStore

logger = logging.getLogger(__name__)


def send_appointment_reminders(db, clock) -> int:
    """Notify owner and vet of every confirmed appointment starting tomorrow (UTC).

    Returns the number of appointments reminded. One failing appointment is
    logged and does not stop the rest.
    """
    tomorrow = clock.now().date() + timedelta(days=1)
    start = datetime.combine(tomorrow, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)

    store = SqlAppointmentStore(db)
    notifier = NotificationService(db, clock)
    sent = 0
    for appt in store.confirmed_between(start, end):
        pet_name = appt.pet.name if appt.pet else "your pet"
        vet = appt.veterinarian
        owner = appt.owner
        vet_name = f"Dr. {vet.full_name}" if vet else "your veterinarian"
        owner_name = owner.full_name if owner else "the owner"
        when = appt.start_time.isoformat()
        try:
            notifier.notify(
                appt.owner_id,
                "appointment_reminder",
                "Appointment Reminder",
                f"Don't forget about {pet_name}'s appointment tomorrow with {vet_name}",
                {"appointmentId": appt.id, "petName": pet_name, "vetName": vet_name, "dateTime": when},
                sms=True,
            )
            notifier.notify(
                appt.veterinarian_id,
                "appointment_reminder",
                "Appointment Reminder",
                f"Upcoming appointment tomorrow: {pet_name} with {owner_name}",
                {"appointmentId": appt.id, "petName": pet_name, "ownerName": owner_name, "dateTime": when},
            )
            sent += 1
        except Exception:
            logger.exception("Error sending reminder for appointment %s", appt.id)
    logger.info("Sent %d appointment reminders for %s", sent, tomorrow.isoformat())
    return sent


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        send_appointment_reminders(session, SystemClock())
    finally:
        session.close()


if __name__ == "__main__":
    main()
