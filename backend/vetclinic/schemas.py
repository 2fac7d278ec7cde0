# backend/vetclinic/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# --- Requests ---
# Required fields are optional here so a missing one is reported as
# MISSING_FIELDS by the service rather than as a generic schema error.

class AppointmentCreate(CamelModel):
    pet_id: Optional[str] = None
    veterinarian_id: Optional[str] = None
    date_time: Optional[datetime] = None
    type: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    duration: Optional[int] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None
    reason: Optional[str] = None


class RescheduleRequest(CamelModel):
    new_date_time: Optional[datetime] = None
    reason: Optional[str] = None


# --- Responses ---

class PetSummary(CamelModel):
    id: str
    name: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None


class VeterinarianSummary(CamelModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    specialization: Optional[str] = None
    email: Optional[str] = None


class Appointment(CamelModel):
    id: str
    owner_id: str
    pet_id: str
    veterinarian_id: str
    type: Optional[str] = None
    start_time: datetime = Field(alias="dateTime")
    end_time: datetime
    duration_minutes: int = Field(alias="duration")
    status: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    status_reason: Optional[str] = None
    reschedule_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None
    pet: Optional[PetSummary] = None
    veterinarian: Optional[VeterinarianSummary] = None


class AppointmentEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    appointment: Appointment


class AppointmentPage(CamelModel):
    success: bool = True
    appointments: List[Appointment]
    has_more: bool


class Availability(CamelModel):
    success: bool = True
    date: str
    veterinarian_id: str
    available_slots: List[datetime]
