"""
Error kinds raised by the scheduling core.

Callers (the routing layer) catch these and turn them into user-facing
messages. A missing schedule is not an error: it is an empty availability.
"""

from datetime import date as date_type, time as time_type
from typing import List, Optional, Sequence

from models import InvalidTimeFormat

__all__ = [
    "AppointmentNotFound",
    "InvalidTimeFormat",
    "PhysicianNotAtLocation",
    "PhysicianNotFound",
    "SchedulingError",
    "SlotConflict",
]


class SchedulingError(Exception):
    """Base class for all scheduling core errors."""


class PhysicianNotAtLocation(SchedulingError):
    """The physician has no active assignment at the requested location."""

    def __init__(self, physician_id: str, location_id: str, on_date: Optional[date_type] = None):
        self.physician_id = physician_id
        self.location_id = location_id
        self.on_date = on_date
        when = f" on {on_date.isoformat()}" if on_date else ""
        super().__init__(f"Physician {physician_id} is not available at location {location_id}{when}")


class SlotConflict(SchedulingError):
    """The requested slot was taken between the availability query and the commit."""

    def __init__(
        self,
        physician_id: str,
        location_id: str,
        on_date: date_type,
        start_time: time_type,
        conflicting_appointment_ids: Sequence[str] = ()
    ):
        self.physician_id = physician_id
        self.location_id = location_id
        self.on_date = on_date
        self.start_time = start_time
        self.conflicting_appointment_ids: List[str] = [a for a in conflicting_appointment_ids if a]
        super().__init__(
            f"Time slot {on_date.isoformat()} {start_time.strftime('%H:%M')} "
            f"for physician {physician_id} at {location_id} is no longer available"
        )


class AppointmentNotFound(SchedulingError):
    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class PhysicianNotFound(SchedulingError):
    def __init__(self, physician_id: str):
        self.physician_id = physician_id
        super().__init__(f"Physician {physician_id} not found")
