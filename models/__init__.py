"""
Data models package for the Clinic Slot Scheduler.

This package exports the pillars of the data architecture:
1. Time (TimeInterval and parsing helpers)
2. Demand (Appointment, BookingRequest, BookedInterval)
3. Supply (Location, Physician, WorkingPeriod, AvailabilityException)
4. Output (Slot, availability reports, alternatives)
"""

from .interval import (
    InvalidTimeFormat,
    TimeInterval,
    contains,
    minutes_to_time,
    overlaps,
    parse_time_of_day,
    time_to_minutes
)

from .appointment import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    BookedInterval,
    BookingRequest,
    NON_OCCUPYING_STATUSES,
    VisitType
)

from .resource import (
    AvailabilityException,
    BreakPeriod,
    ExceptionType,
    Location,
    LocationType,
    Physician,
    PhysicianLocation,
    WorkingPeriod
)

from .schedule import (
    AlternativeOption,
    LocationAvailabilityReport,
    PhysicianAvailabilityResult,
    Slot
)

__all__ = [
    # --- Time Model ---
    "InvalidTimeFormat",
    "TimeInterval",
    "contains",
    "minutes_to_time",
    "overlaps",
    "parse_time_of_day",
    "time_to_minutes",

    # --- Demand Models ---
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "BookedInterval",
    "BookingRequest",
    "NON_OCCUPYING_STATUSES",
    "VisitType",

    # --- Resource & Constraint Models ---
    "AvailabilityException",
    "BreakPeriod",
    "ExceptionType",
    "Location",
    "LocationType",
    "Physician",
    "PhysicianLocation",
    "WorkingPeriod",

    # --- Output Models ---
    "AlternativeOption",
    "LocationAvailabilityReport",
    "PhysicianAvailabilityResult",
    "Slot",
]
