# backend/vetclinic/crud.py
from datetime import datetime

from sqlalchemy.orm import Session

from scheduler.lifecycle import BLOCKING_STATUSES, AppointmentStatus

from . import models

_BLOCKING = [status.value for status in BLOCKING_STATUSES]


def get_user(db: Session, user_id: str):
    return db.get(models.User, user_id)


def get_user_by_token(db: Session, token: str):
    return db.query(models.User).filter(models.User.api_token == token).first()


def lock_user_row(db: Session, user_id: str):
    # FOR UPDATE is a no-op on SQLite; row-locking databases serialize here.
    return db.query(models.User).filter(models.User.id == user_id).with_for_update().first()


def get_pet(db: Session, pet_id: str):
    return db.get(models.Pet, pet_id)


def get_appointment(db: Session, appointment_id: str):
    return db.get(models.Appointment, appointment_id)


def lock_appointment_row(db: Session, appointment_id: str):
    # populate_existing discards a stale copy already held by the session.
    return db.query(models.Appointment).filter(
        models.Appointment.id == appointment_id
    ).with_for_update().populate_existing().first()


def get_blocking_appointments(db: Session, veterinarian_id: str, window_start: datetime, window_end: datetime):
    return db.query(models.Appointment).filter(
        models.Appointment.veterinarian_id == veterinarian_id,
        models.Appointment.status.in_(_BLOCKING),
        models.Appointment.start_time < window_end,
        models.Appointment.end_time > window_start,
    ).all()


def get_confirmed_between(db: Session, start: datetime, end: datetime):
    return db.query(models.Appointment).filter(
        models.Appointment.status == AppointmentStatus.CONFIRMED.value,
        models.Appointment.start_time >= start,
        models.Appointment.start_time < end,
    ).order_by(models.Appointment.start_time).all()


def get_appointments(
    db: Session,
    owner_id=None,
    veterinarian_id=None,
    status=None,
    starts_after=None,
    ascending=False,
    skip: int = 0,
    limit: int = 20,
):
    query = db.query(models.Appointment)
    if owner_id is not None:
        query = query.filter(models.Appointment.owner_id == owner_id)
    if veterinarian_id is not None:
        query = query.filter(models.Appointment.veterinarian_id == veterinarian_id)
    if status is not None:
        query = query.filter(models.Appointment.status == status)
    if starts_after is not None:
        query = query.filter(models.Appointment.start_time >= starts_after)
    order = models.Appointment.start_time.asc() if ascending else models.Appointment.start_time.desc()
    return query.order_by(order).offset(skip).limit(limit).all()


def create_appointment(db: Session, **fields):
    db_appointment = models.Appointment(**fields)
    db.add(db_appointment)
    db.flush()
    return db_appointment


def update_appointment(db: Session, appointment: models.Appointment, **fields):
    for key, value in fields.items():
        setattr(appointment, key, value)
    db.flush()
    return appointment


def create_notification(db: Session, user_id: str, type: str, title: str, message: str, data: dict, created_at: datetime):
    db_notification = models.Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data,
        read=False,
        created_at=created_at,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification


def get_notifications(db: Session, user_id: str):
    return db.query(models.Notification).filter(
        models.Notification.user_id == user_id
    ).order_by(models.Notification.created_at).all()
