"""
Appointment data models for the Clinic Slot Scheduler.

This module defines the 'Demand' side: booking requests, persisted
appointments, and the lightweight BookedInterval projection the slot
generator reads.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import date as date_type, time, datetime

from .interval import TimeInterval, parse_time_of_day, time_to_minutes


class AppointmentStatus(str, Enum):
    """Lifecycle of a booked appointment."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"

    @property
    def occupies_schedule(self) -> bool:
        """Cancelled and no-show bookings free their time again."""
        return self not in NON_OCCUPYING_STATUSES


NON_OCCUPYING_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    PROCEDURE = "procedure"
    OTHER = "other"


class VisitType(str, Enum):
    IN_PERSON = "in_person"
    TELEMEDICINE = "telemedicine"
    PHONE = "phone"


class _TimedModel(BaseModel):
    """Shared start/end handling for anything occupying part of a day."""
    start_time: time
    end_time: time

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def normalize_times(cls, v):
        return parse_time_of_day(v)

    @model_validator(mode='after')
    def validate_times(self):
        if self.start_time >= self.end_time:
            raise ValueError("End time must be strictly after start time")
        return self

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start_time, end=self.end_time)


class BookedInterval(_TimedModel):
    """An existing appointment as seen by availability computation."""
    physician_id: str
    location_id: str
    date: date_type
    status: AppointmentStatus = Field(default=AppointmentStatus.SCHEDULED)
    appointment_id: Optional[str] = Field(default=None)

    @property
    def occupies_schedule(self) -> bool:
        return self.status.occupies_schedule


class BookingRequest(_TimedModel):
    """Input to the conflict guard: who wants which slot."""
    patient_id: str
    physician_id: str
    location_id: str
    appointment_date: date_type
    appointment_type: AppointmentType = Field(default=AppointmentType.CONSULTATION)
    visit_type: VisitType = Field(default=VisitType.IN_PERSON)
    notes: Optional[str] = Field(default=None)

    @property
    def slot_key(self):
        """Identity of the slot being claimed."""
        return (self.physician_id, self.location_id, self.appointment_date, self.start_time)


class Appointment(_TimedModel):
    """
    A persisted booking.
    Only the core's view of the row; billing and reminders live elsewhere.
    """

    # --- Identity ---
    id: Optional[str] = Field(default=None, description="Assigned by storage on insert")
    appointment_number: Optional[str] = Field(default=None)

    # --- Who / Where / When ---
    patient_id: str
    physician_id: str
    location_id: str
    appointment_date: date_type

    # --- Visit Details ---
    appointment_type: AppointmentType = Field(default=AppointmentType.CONSULTATION)
    visit_type: VisitType = Field(default=VisitType.IN_PERSON)
    status: AppointmentStatus = Field(default=AppointmentStatus.SCHEDULED)
    notes: Optional[str] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)

    estimated_copay: Optional[Decimal] = Field(default=None, description="Looked up from the copay collaborator")
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)

    def as_booked_interval(self) -> BookedInterval:
        return BookedInterval(
            physician_id=self.physician_id,
            location_id=self.location_id,
            date=self.appointment_date,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            appointment_id=self.id,
        )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "apt_000123",
            "appointment_number": "APT-20250115-0001",
            "patient_id": "pat_emily",
            "physician_id": "phy_smith",
            "location_id": "loc_main",
            "appointment_date": "2025-01-15",
            "start_time": "09:00:00",
            "end_time": "09:30:00",
            "appointment_type": "consultation",
            "status": "scheduled"
        }
    })
