"""
Resource and Constraint data models for the Clinic Slot Scheduler.

This module defines the 'Supply' side of the scheduler:
1. Locations (Hospitals, satellite offices, clinics)
2. Physicians and their location assignments
3. Working Periods (recurring weekly hours per location)
4. Availability Exceptions (date-specific overrides)
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import date, time

from .interval import TimeInterval, parse_time_of_day


class LocationType(str, Enum):
    """Categories of clinic sites in a hospital network."""
    MAIN_HOSPITAL = "main_hospital"
    SATELLITE_OFFICE = "satellite_office"
    OUTPATIENT_CLINIC = "outpatient_clinic"
    SPECIALTY_CENTER = "specialty_center"
    URGENT_CARE = "urgent_care"


class Location(BaseModel):
    """A physical site where physicians see patients."""
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1, description="Display name of the site")
    location_type: LocationType = Field(default=LocationType.OUTPATIENT_CLINIC)
    city: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)


class Physician(BaseModel):
    """
    Human resource with a specialty, working at one or more locations.
    """
    id: str = Field(description="Unique identifier")
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    specialty: str = Field(min_length=1, description="Primary specialty, e.g. 'Cardiology'")
    subspecialty: Optional[str] = Field(default=None)
    primary_location_id: Optional[str] = Field(default=None)
    consultation_duration: int = Field(default=30, ge=5, le=480, description="Minutes per consultation")
    is_active: bool = Field(default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def sort_key(self):
        """Alphabetical by last name, then first name."""
        return (self.last_name.lower(), self.first_name.lower(), self.id)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "phy_jones",
            "first_name": "Sarah",
            "last_name": "Jones",
            "specialty": "Cardiology",
            "subspecialty": "Interventional Cardiology",
            "primary_location_id": "loc_west_end"
        }
    })


class PhysicianLocation(BaseModel):
    """Assignment of a physician to a location (many-to-many)."""
    physician_id: str
    location_id: str
    is_primary_location: bool = Field(default=False)
    is_active: bool = Field(default=True)
    start_date: date = Field(description="First day of the assignment")
    end_date: Optional[date] = Field(default=None, description="Last day of the assignment (inclusive)")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("Assignment end date cannot be before its start date")
        return self

    def covers(self, on_date: date) -> bool:
        if not self.is_active or on_date < self.start_date:
            return False
        return self.end_date is None or on_date <= self.end_date


class BreakPeriod(BaseModel):
    """A named pause inside a working day (e.g. 'morning break')."""
    name: str = Field(default="break")
    start: time
    end: time

    @field_validator('start', 'end', mode='before')
    @classmethod
    def normalize_times(cls, v):
        return parse_time_of_day(v)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)


class WorkingPeriod(BaseModel):
    """
    A physician's recurring working hours for one location and one weekday.
    Day numbering follows the clinic schema: 0=Sunday ... 6=Saturday.
    """
    id: str = Field(description="Unique identifier")
    physician_id: str
    location_id: str
    day_of_week: int = Field(ge=0, le=6, description="0=Sunday, 6=Saturday")

    start_time: time = Field(description="Shift start")
    end_time: time = Field(description="Shift end")
    lunch_start: Optional[time] = Field(default=None)
    lunch_end: Optional[time] = Field(default=None)
    breaks: List[BreakPeriod] = Field(default_factory=list)

    slot_duration_minutes: int = Field(default=30, ge=5, le=480)

    effective_date: date = Field(description="First date this pattern applies")
    expiry_date: Optional[date] = Field(default=None, description="Pattern no longer applies from this date")
    is_active: bool = Field(default=True)

    @field_validator('start_time', 'end_time', 'lunch_start', 'lunch_end', mode='before')
    @classmethod
    def normalize_times(cls, v):
        if v is None:
            return v
        return parse_time_of_day(v)

    @model_validator(mode='after')
    def validate_times(self):
        if self.start_time >= self.end_time:
            raise ValueError("End time must be strictly after start time")

        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValueError("Both lunch_start and lunch_end must be provided together")

        hours = self.hours
        lunch = self.lunch
        if lunch is not None:
            if lunch.duration_minutes <= 0 or not lunch.within(hours):
                raise ValueError(f"Lunch {lunch} must lie inside working hours {hours}")

        intervals = sorted((b.interval for b in self.breaks), key=lambda i: i.start_minute)
        for interval in intervals:
            if interval.duration_minutes <= 0 or not interval.within(hours):
                raise ValueError(f"Break {interval} must lie inside working hours {hours}")
        for first, second in zip(intervals, intervals[1:]):
            if first.overlaps(second):
                raise ValueError(f"Breaks {first} and {second} overlap")

        if self.expiry_date and self.expiry_date <= self.effective_date:
            raise ValueError("Expiry date must be after the effective date")
        return self

    @property
    def hours(self) -> TimeInterval:
        return TimeInterval(start=self.start_time, end=self.end_time)

    @property
    def lunch(self) -> Optional[TimeInterval]:
        if self.lunch_start is None or self.lunch_end is None:
            return None
        return TimeInterval(start=self.lunch_start, end=self.lunch_end)

    @property
    def break_intervals(self) -> List[TimeInterval]:
        return [b.interval for b in self.breaks]

    def is_effective_on(self, on_date: date) -> bool:
        """Active and on_date within [effective_date, expiry_date)."""
        if not self.is_active or on_date < self.effective_date:
            return False
        return self.expiry_date is None or on_date < self.expiry_date

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "wp_smith_main_mon",
            "physician_id": "phy_smith",
            "location_id": "loc_main",
            "day_of_week": 1,
            "start_time": "08:00",
            "end_time": "17:00",
            "lunch_start": "12:00",
            "lunch_end": "13:00",
            "breaks": [{"name": "morning", "start": "10:30", "end": "10:45"}],
            "effective_date": "2024-01-01"
        }
    })


class ExceptionType(str, Enum):
    """Kinds of date-specific overrides."""
    UNAVAILABLE = "unavailable"
    MODIFIED_HOURS = "modified_hours"
    LOCATION_CHANGE = "location_change"


class AvailabilityException(BaseModel):
    """
    Date-specific override of a WorkingPeriod (time off, modified hours, relocation).
    A null location applies to every location the physician works at.
    """
    id: str = Field(description="Unique identifier")
    physician_id: str
    location_id: Optional[str] = Field(default=None, description="None = applies everywhere")
    exception_date: date
    exception_type: ExceptionType

    start_time: Optional[time] = Field(default=None, description="Override start (modified_hours)")
    end_time: Optional[time] = Field(default=None, description="Override end (modified_hours)")
    reason: Optional[str] = Field(default=None)
    alternate_location_id: Optional[str] = Field(default=None, description="Target site (location_change)")

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def normalize_times(cls, v):
        if v is None:
            return v
        return parse_time_of_day(v)

    @model_validator(mode='after')
    def validate_configuration(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("Override start_time and end_time must be provided together")

        if self.start_time is not None and self.start_time >= self.end_time:
            raise ValueError("Override end time must be strictly after start time")

        if self.exception_type == ExceptionType.MODIFIED_HOURS and self.start_time is None:
            raise ValueError("modified_hours exceptions require override start_time and end_time")

        if self.exception_type == ExceptionType.LOCATION_CHANGE and not self.alternate_location_id:
            raise ValueError("location_change exceptions require 'alternate_location_id'")
        return self

    @property
    def override_hours(self) -> Optional[TimeInterval]:
        if self.start_time is None or self.end_time is None:
            return None
        return TimeInterval(start=self.start_time, end=self.end_time)
