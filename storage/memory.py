"""
In-Memory Scheduling Store.

Holds locations, physicians, assignments, working periods, exceptions and
appointments in plain dictionaries with secondary indices, the way a small
clinic deployment or a test run needs them.

Booking transactions are serialized with one re-entrant lock; a failed
transaction restores the appointment table it started from.
"""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date as date_type, datetime, time as time_type
from typing import Dict, Iterator, List, Optional, Tuple

from models import (
    Appointment,
    AvailabilityException,
    BookedInterval,
    Location,
    Physician,
    PhysicianLocation,
    WorkingPeriod
)
from scheduler.errors import SlotConflict
from scheduler.repository import (
    BookingTransaction,
    PhysicianDirectory,
    SchedulingRepository,
    SlotKey,
    filter_conflicts
)

logger = logging.getLogger(__name__)


class _MemoryTransaction(BookingTransaction):
    """Unit of work over the store; only valid while the store lock is held."""

    def __init__(self, store: "InMemoryRepository"):
        self.store = store
        self.locked_slots: List[SlotKey] = []

    def lock_slot(self, key: SlotKey) -> None:
        # The store lock already serializes every writer
        self.locked_slots.append(key)

    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        return self.store.has_location_assignment(physician_id, location_id, on_date)

    def find_conflicts(
        self,
        physician_id: str,
        location_id: str,
        on_date: date_type,
        start_time: time_type,
        end_time: time_type,
        exclude_appointment_id: Optional[str] = None
    ) -> List[BookedInterval]:
        return filter_conflicts(
            self.store.fetch_booked_intervals(physician_id, on_date),
            location_id, start_time, end_time, exclude_appointment_id
        )

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self.store.get_appointment(appointment_id)

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        return self.store.insert_appointment(appointment)

    def update_appointment(self, appointment: Appointment) -> Appointment:
        return self.store.update_appointment(appointment)


class InMemoryRepository(SchedulingRepository, PhysicianDirectory):
    """
    Dictionary-backed implementation of both collaborator interfaces.
    """

    def __init__(self):
        self._lock = threading.RLock()

        self.locations: Dict[str, Location] = {}
        self.physicians: Dict[str, Physician] = {}
        self.assignments: Dict[str, List[PhysicianLocation]] = defaultdict(list)

        # Indices: physician_id -> records
        self.periods: Dict[str, List[WorkingPeriod]] = defaultdict(list)
        self.exceptions: Dict[str, List[AvailabilityException]] = defaultdict(list)

        self.appointments: Dict[str, Appointment] = {}
        self._sequence = 0

    # --- Loading ---

    def add_location(self, location: Location) -> Location:
        self.locations[location.id] = location
        return location

    def add_physician(self, physician: Physician) -> Physician:
        self.physicians[physician.id] = physician
        return physician

    def assign(self, assignment: PhysicianLocation) -> PhysicianLocation:
        self.assignments[assignment.physician_id].append(assignment)
        return assignment

    def add_working_period(self, period: WorkingPeriod) -> WorkingPeriod:
        self.periods[period.physician_id].append(period)
        return period

    def add_exception(self, exception: AvailabilityException) -> AvailabilityException:
        self.exceptions[exception.physician_id].append(exception)
        return exception

    # --- Reads ---

    def fetch_working_periods(
        self,
        physician_id: str,
        day_of_week: int,
        location_id: Optional[str] = None
    ) -> List[WorkingPeriod]:
        return [
            p for p in self.periods.get(physician_id, [])
            if p.day_of_week == day_of_week and (location_id is None or p.location_id == location_id)
        ]

    def fetch_exceptions(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[AvailabilityException]:
        return [
            e for e in self.exceptions.get(physician_id, [])
            if e.exception_date == on_date and (location_id is None or e.location_id in (None, location_id))
        ]

    def fetch_booked_intervals(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[BookedInterval]:
        with self._lock:
            rows = [
                a for a in self.appointments.values()
                if a.physician_id == physician_id
                and a.appointment_date == on_date
                and a.status.occupies_schedule
                and (location_id is None or a.location_id == location_id)
            ]
        rows.sort(key=lambda a: a.start_time)
        return [a.as_booked_interval() for a in rows]

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            return self.appointments.get(appointment_id)

    def get_location(self, location_id: str) -> Optional[Location]:
        return self.locations.get(location_id)

    def get_physician(self, physician_id: str) -> Optional[Physician]:
        return self.physicians.get(physician_id)

    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        location = self.locations.get(location_id)
        if location is None or not location.is_active:
            return False
        return any(
            a.location_id == location_id and a.covers(on_date)
            for a in self.assignments.get(physician_id, [])
        )

    def list_physicians_by_specialty(
        self,
        specialty: str,
        location_id: Optional[str] = None
    ) -> List[Tuple[Physician, Location]]:
        pairs: Dict[Tuple[str, str], Tuple[Physician, Location]] = {}
        for physician in self.physicians.values():
            if not physician.is_active or physician.specialty != specialty:
                continue
            for assignment in self.assignments.get(physician.id, []):
                if not assignment.is_active:
                    continue
                if location_id is not None and assignment.location_id != location_id:
                    continue
                location = self.locations.get(assignment.location_id)
                if location is None or not location.is_active:
                    continue
                pairs[(physician.id, location.id)] = (physician, location)

        return sorted(pairs.values(), key=lambda pair: (pair[0].sort_key, pair[1].name))

    # --- Writes ---

    @contextmanager
    def transaction(self) -> Iterator[_MemoryTransaction]:
        with self._lock:
            snapshot = dict(self.appointments)
            sequence = self._sequence
            try:
                yield _MemoryTransaction(self)
            except Exception:
                self.appointments = snapshot
                self._sequence = sequence
                raise

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._sequence += 1
            now = datetime.now()
            stored = appointment.model_copy(update={
                "id": appointment.id or f"apt_{self._sequence:06d}",
                "appointment_number": appointment.appointment_number or (
                    f"APT-{appointment.appointment_date.strftime('%Y%m%d')}-{self._sequence:04d}"
                ),
                "created_at": now,
                "updated_at": now,
            })
            self._check_unique_slot(stored)
            self.appointments[stored.id] = stored
            logger.debug(f"Stored appointment {stored.id} ({stored.appointment_number})")
            return stored

    def update_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id not in self.appointments:
                raise KeyError(appointment.id)
            stored = appointment.model_copy(update={"updated_at": datetime.now()})
            self._check_unique_slot(stored)
            self.appointments[stored.id] = stored
            return stored

    def _check_unique_slot(self, appointment: Appointment) -> None:
        """One occupying appointment per (physician, date, start_time)."""
        if not appointment.status.occupies_schedule:
            return
        for other in self.appointments.values():
            if other.id == appointment.id or not other.status.occupies_schedule:
                continue
            if (other.physician_id == appointment.physician_id
                    and other.appointment_date == appointment.appointment_date
                    and other.start_time == appointment.start_time):
                raise SlotConflict(
                    appointment.physician_id,
                    appointment.location_id,
                    appointment.appointment_date,
                    appointment.start_time,
                    [other.id]
                )
