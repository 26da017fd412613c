"""
Collaborator interfaces consumed by the scheduling core.

The core never talks to a database directly. It reads schedules, exceptions
and bookings through a SchedulingRepository, lists candidate physicians
through a PhysicianDirectory, and asks a CopayEstimator for billing figures.
Concrete adapters live in the ``storage`` package.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date as date_type, time as time_type
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple, Union

from models import (
    Appointment,
    AppointmentType,
    AvailabilityException,
    BookedInterval,
    Location,
    Physician,
    TimeInterval,
    WorkingPeriod
)

# (physician_id, location_id, date, start_time)
SlotKey = Tuple[str, str, date_type, time_type]


class BookingTransaction(ABC):
    """
    Unit of work handed to the conflict guard.
    Everything done through it commits or rolls back together.
    """

    @abstractmethod
    def lock_slot(self, key: SlotKey) -> None:
        """Serialize competing writers for the same slot until the transaction ends."""

    @abstractmethod
    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        ...

    @abstractmethod
    def find_conflicts(
        self,
        physician_id: str,
        location_id: str,
        on_date: date_type,
        start_time: time_type,
        end_time: time_type,
        exclude_appointment_id: Optional[str] = None
    ) -> List[BookedInterval]:
        """
        Occupying bookings for the physician on that date which either start at
        start_time at this location or overlap [start_time, end_time) anywhere.
        """

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    def insert_appointment(self, appointment: Appointment) -> Appointment:
        ...

    @abstractmethod
    def update_appointment(self, appointment: Appointment) -> Appointment:
        ...


class SchedulingRepository(ABC):
    """Read access to schedules plus transactional booking writes."""

    @abstractmethod
    def fetch_working_periods(
        self,
        physician_id: str,
        day_of_week: int,
        location_id: Optional[str] = None
    ) -> List[WorkingPeriod]:
        ...

    @abstractmethod
    def fetch_exceptions(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[AvailabilityException]:
        ...

    @abstractmethod
    def fetch_booked_intervals(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[BookedInterval]:
        """Bookings that occupy the schedule (cancelled / no-show excluded)."""

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    def get_location(self, location_id: str) -> Optional[Location]:
        ...

    @abstractmethod
    def get_physician(self, physician_id: str) -> Optional[Physician]:
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Context manager yielding a BookingTransaction; commits on success, rolls back on error."""


class PhysicianDirectory(ABC):

    @abstractmethod
    def list_physicians_by_specialty(
        self,
        specialty: str,
        location_id: Optional[str] = None
    ) -> List[Tuple[Physician, Location]]:
        """Active (physician, location) pairings, ordered by physician name."""

    @abstractmethod
    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        """True when an active assignment at an active location covers on_date."""


class CopayEstimator(ABC):

    @abstractmethod
    def estimate(self, appointment_type: AppointmentType) -> Optional[Decimal]:
        ...


class CopaySchedule(CopayEstimator):
    """Copay lookup backed by a mapping supplied from configuration."""

    def __init__(self, amounts: Mapping[Union[str, AppointmentType], Union[Decimal, float, str]]):
        self.amounts: Dict[str, Decimal] = {}
        for key, amount in amounts.items():
            name = key.value if isinstance(key, AppointmentType) else str(key)
            self.amounts[name] = Decimal(str(amount))

    def estimate(self, appointment_type: AppointmentType) -> Optional[Decimal]:
        name = appointment_type.value if isinstance(appointment_type, AppointmentType) else str(appointment_type)
        if name in self.amounts:
            return self.amounts[name]
        return self.amounts.get("default")


def filter_conflicts(
    bookings: List[BookedInterval],
    location_id: str,
    start_time: time_type,
    end_time: time_type,
    exclude_appointment_id: Optional[str] = None
) -> List[BookedInterval]:
    """Shared conflict rule for adapters: same start at this location, or any overlap."""
    requested = TimeInterval(start=start_time, end=end_time)
    conflicts = []
    for booked in bookings:
        if exclude_appointment_id and booked.appointment_id == exclude_appointment_id:
            continue
        if not booked.occupies_schedule:
            continue
        same_start = booked.location_id == location_id and booked.start_time == start_time
        if same_start or booked.interval.overlaps(requested):
            conflicts.append(booked)
    return conflicts
