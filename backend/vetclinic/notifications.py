# backend/vetclinic/notifications.py
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud
from .reminders import send_email_reminder, send_sms_reminder

logger = logging.getLogger(__name__)


class NotificationService:
    """Persists an in-app notification and emails the recipient.

    Each notification is committed on its own, after the appointment change
    that triggered it, so a delivery failure can never undo that change.
    """

    def __init__(self, db: Session, clock):
        self.db = db
        self.clock = clock

    def notify(self, user_id, type, title, message, data, sms=False):
        try:
            crud.create_notification(
                self.db,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=data,
                created_at=self.clock.now(),
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        user = crud.get_user(self.db, user_id)
        if user is None:
            logger.warning("Notification %s stored for unknown user %s", type, user_id)
            return
        if user.email and user.email_opt_in:
            send_email_reminder(user.email, f"{title} - PawPal", message)
        if sms and user.phone and user.sms_opt_in:
            send_sms_reminder(user.phone, message)
