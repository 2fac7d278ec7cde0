# backend/vetclinic/models.py
import uuid

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import relationship

from scheduler.lifecycle import AppointmentStatus

from .database import Base, UTCDateTime


def new_id():
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=new_id)
    role = Column(String, index=True, default="pet_owner")  # pet_owner | veterinarian | admin
    first_name = Column(String)
    last_name = Column(String)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    email_opt_in = Column(Boolean, default=True)
    sms_opt_in = Column(Boolean, default=False)
    # Veterinarians only
    vet_application_status = Column(String)  # pending | approved | rejected
    specialization = Column(String)
    work_start = Column(Time)
    work_end = Column(Time)
    # Credential resolved by the token verifier
    api_token = Column(String, unique=True, index=True)

    pets = relationship("Pet", back_populates="owner")

    @property
    def is_veterinarian(self):
        return self.role == "veterinarian"

    @property
    def is_approved_veterinarian(self):
        return self.is_veterinarian and self.vet_application_status == "approved"

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Pet(Base):
    __tablename__ = "pets"
    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, ForeignKey("users.id"), index=True)
    name = Column(String)
    species = Column(String)
    breed = Column(String)
    owner = relationship("User", back_populates="pets")


class Appointment(Base):
    __tablename__ = "appointments"
    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    pet_id = Column(String, ForeignKey("pets.id"), nullable=False)
    veterinarian_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    type = Column(String)
    start_time = Column(UTCDateTime, index=True, nullable=False)
    end_time = Column(UTCDateTime, index=True, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    status = Column(String, index=True, nullable=False, default=AppointmentStatus.PENDING.value)

    reason = Column(Text)
    notes = Column(Text)
    status_reason = Column(Text)
    reschedule_reason = Column(Text)

    created_at = Column(UTCDateTime)
    updated_at = Column(UTCDateTime)
    confirmed_at = Column(UTCDateTime)
    completed_at = Column(UTCDateTime)
    cancelled_at = Column(UTCDateTime)
    rescheduled_at = Column(UTCDateTime)

    pet = relationship("Pet")
    owner = relationship("User", foreign_keys=[owner_id])
    veterinarian = relationship("User", foreign_keys=[veterinarian_id])

    @property
    def status_enum(self):
        return AppointmentStatus(self.status)


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), index=True)
    type = Column(String)
    title = Column(String)
    message = Column(Text)
    data = Column(JSON, default=dict)
    read = Column(Boolean, default=False)
    created_at = Column(UTCDateTime)
