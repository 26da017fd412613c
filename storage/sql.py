"""
SQLAlchemy Scheduling Store.

Reads run in short-lived sessions. Each booking guard runs in exactly one
session transaction:

    BEGIN -> advisory/keyed lock -> checks -> INSERT/UPDATE -> COMMIT

On PostgreSQL the lock is ``pg_advisory_xact_lock`` (released by COMMIT or
ROLLBACK); other dialects use a process-local lock per key. The partial
unique index on appointments backs both up, and its IntegrityError surfaces
as SlotConflict.
"""

import hashlib
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import date as date_type, time as time_type
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from models import (
    NON_OCCUPYING_STATUSES,
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

from .tables import (
    AppointmentRow,
    AvailabilityExceptionRow,
    LocationRow,
    PhysicianLocationRow,
    PhysicianRow,
    WorkingPeriodRow
)

logger = logging.getLogger(__name__)

APPOINTMENT_FIELDS = (
    "patient_id", "physician_id", "location_id", "appointment_date", "start_time", "end_time",
    "appointment_type", "visit_type", "status", "notes", "cancellation_reason", "estimated_copay",
)


def advisory_key(physician_id: str, on_date: date_type) -> int:
    """Stable signed 64-bit key for one physician-day."""
    digest = hashlib.blake2b(f"{physician_id}|{on_date.isoformat()}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class KeyedLocks:
    """
    Process-local mutex per key, for dialects without advisory locks.
    An entry lives only while some thread holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[object, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def acquire(self, key) -> None:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()

    def release(self, key) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]
        entry[0].release()


def slot_conflict_from(key: SlotKey) -> SlotConflict:
    physician_id, location_id, on_date, start_time = key
    return SlotConflict(physician_id, location_id, on_date, start_time)


def _to_appointment(row: AppointmentRow) -> Appointment:
    return Appointment.model_validate(row, from_attributes=True)


def _to_booked(row: AppointmentRow) -> BookedInterval:
    return BookedInterval(
        physician_id=row.physician_id,
        location_id=row.location_id,
        date=row.appointment_date,
        start_time=row.start_time,
        end_time=row.end_time,
        status=row.status,
        appointment_id=row.id,
    )


def _occupying_bookings(session: Session, physician_id: str, on_date: date_type, location_id: Optional[str] = None):
    stmt = (
        select(AppointmentRow)
        .where(
            AppointmentRow.physician_id == physician_id,
            AppointmentRow.appointment_date == on_date,
            AppointmentRow.status.notin_(sorted(NON_OCCUPYING_STATUSES)),
        )
        .order_by(AppointmentRow.start_time)
    )
    if location_id is not None:
        stmt = stmt.where(AppointmentRow.location_id == location_id)
    return [_to_booked(row) for row in session.scalars(stmt)]


class _SqlTransaction(BookingTransaction):

    def __init__(self, repository: "SqlRepository", session: Session):
        self.repository = repository
        self.session = session
        self.slot_key: Optional[SlotKey] = None
        self.held_keys: List[Tuple[str, date_type]] = []

    def lock_slot(self, key: SlotKey) -> None:
        # Lock the whole physician-day so overlapping (not just identical) requests serialize
        physician_id, _location_id, on_date, _start = key
        self.slot_key = key
        if self.session.get_bind().dialect.name == "postgresql":
            self.session.execute(select(func.pg_advisory_xact_lock(advisory_key(physician_id, on_date))))
        else:
            self.repository.keyed_locks.acquire((physician_id, on_date))
            self.held_keys.append((physician_id, on_date))

    def release(self) -> None:
        while self.held_keys:
            self.repository.keyed_locks.release(self.held_keys.pop())

    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        return self.repository._has_location_assignment(self.session, physician_id, location_id, on_date)

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
            _occupying_bookings(self.session, physician_id, on_date),
            location_id, start_time, end_time, exclude_appointment_id
        )

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        row = self.session.get(AppointmentRow, appointment_id)
        return _to_appointment(row) if row else None

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        appointment_id = appointment.id or f"apt_{uuid.uuid4().hex[:12]}"
        number = appointment.appointment_number or (
            f"APT-{appointment.appointment_date.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"
        )
        row = AppointmentRow(
            id=appointment_id,
            appointment_number=number,
            **{name: getattr(appointment, name) for name in APPOINTMENT_FIELDS}
        )
        self.session.add(row)
        self._flush()
        self.session.refresh(row)
        return _to_appointment(row)

    def update_appointment(self, appointment: Appointment) -> Appointment:
        row = self.session.get(AppointmentRow, appointment.id)
        if row is None:
            raise KeyError(appointment.id)
        for name in APPOINTMENT_FIELDS:
            setattr(row, name, getattr(appointment, name))
        self._flush()
        self.session.refresh(row)
        return _to_appointment(row)

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            if self.slot_key is None:
                raise
            raise slot_conflict_from(self.slot_key) from e


class SqlRepository(SchedulingRepository, PhysicianDirectory):
    """
    SQLAlchemy-backed implementation of both collaborator interfaces.
    The session factory is injected; see storage.database.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.keyed_locks = KeyedLocks()

    # --- Loading ---

    def add_location(self, location: Location) -> Location:
        self._merge(LocationRow(**location.model_dump()))
        return location

    def add_physician(self, physician: Physician) -> Physician:
        self._merge(PhysicianRow(**physician.model_dump()))
        return physician

    def assign(self, assignment: PhysicianLocation) -> PhysicianLocation:
        self._merge(PhysicianLocationRow(**assignment.model_dump()))
        return assignment

    def add_working_period(self, period: WorkingPeriod) -> WorkingPeriod:
        data = period.model_dump(exclude={"breaks"})
        data["breaks"] = [b.model_dump(mode="json") for b in period.breaks]
        self._merge(WorkingPeriodRow(**data))
        return period

    def add_exception(self, exception: AvailabilityException) -> AvailabilityException:
        self._merge(AvailabilityExceptionRow(**exception.model_dump()))
        return exception

    def _merge(self, row) -> None:
        with self.session_factory.begin() as session:
            session.merge(row)

    # --- Reads ---

    def fetch_working_periods(
        self,
        physician_id: str,
        day_of_week: int,
        location_id: Optional[str] = None
    ) -> List[WorkingPeriod]:
        stmt = select(WorkingPeriodRow).where(
            WorkingPeriodRow.physician_id == physician_id,
            WorkingPeriodRow.day_of_week == day_of_week,
        )
        if location_id is not None:
            stmt = stmt.where(WorkingPeriodRow.location_id == location_id)
        with self.session_factory() as session:
            return [WorkingPeriod.model_validate(row, from_attributes=True) for row in session.scalars(stmt)]

    def fetch_exceptions(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[AvailabilityException]:
        stmt = select(AvailabilityExceptionRow).where(
            AvailabilityExceptionRow.physician_id == physician_id,
            AvailabilityExceptionRow.exception_date == on_date,
        )
        if location_id is not None:
            stmt = stmt.where(or_(
                AvailabilityExceptionRow.location_id == location_id,
                AvailabilityExceptionRow.location_id.is_(None),
            ))
        with self.session_factory() as session:
            return [AvailabilityException.model_validate(row, from_attributes=True) for row in session.scalars(stmt)]

    def fetch_booked_intervals(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None
    ) -> List[BookedInterval]:
        with self.session_factory() as session:
            return _occupying_bookings(session, physician_id, on_date, location_id)

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        with self.session_factory() as session:
            row = session.get(AppointmentRow, appointment_id)
            return _to_appointment(row) if row else None

    def get_location(self, location_id: str) -> Optional[Location]:
        with self.session_factory() as session:
            row = session.get(LocationRow, location_id)
            return Location.model_validate(row, from_attributes=True) if row else None

    def get_physician(self, physician_id: str) -> Optional[Physician]:
        with self.session_factory() as session:
            row = session.get(PhysicianRow, physician_id)
            return Physician.model_validate(row, from_attributes=True) if row else None

    def list_physicians_by_specialty(
        self,
        specialty: str,
        location_id: Optional[str] = None
    ) -> List[Tuple[Physician, Location]]:
        stmt = (
            select(PhysicianRow, LocationRow)
            .join(PhysicianLocationRow, PhysicianLocationRow.physician_id == PhysicianRow.id)
            .join(LocationRow, LocationRow.id == PhysicianLocationRow.location_id)
            .where(
                PhysicianRow.specialty == specialty,
                PhysicianRow.is_active.is_(True),
                PhysicianLocationRow.is_active.is_(True),
                LocationRow.is_active.is_(True),
            )
            .distinct()
            .order_by(PhysicianRow.last_name, PhysicianRow.first_name, PhysicianRow.id, LocationRow.name)
        )
        if location_id is not None:
            stmt = stmt.where(LocationRow.id == location_id)

        with self.session_factory() as session:
            return [
                (Physician.model_validate(p, from_attributes=True), Location.model_validate(loc, from_attributes=True))
                for p, loc in session.execute(stmt)
            ]

    def has_location_assignment(self, physician_id: str, location_id: str, on_date: date_type) -> bool:
        with self.session_factory() as session:
            return self._has_location_assignment(session, physician_id, location_id, on_date)

    def _has_location_assignment(
        self,
        session: Session,
        physician_id: str,
        location_id: str,
        on_date: date_type
    ) -> bool:
        stmt = (
            select(PhysicianLocationRow.id)
            .join(LocationRow, LocationRow.id == PhysicianLocationRow.location_id)
            .where(
                PhysicianLocationRow.physician_id == physician_id,
                PhysicianLocationRow.location_id == location_id,
                PhysicianLocationRow.is_active.is_(True),
                PhysicianLocationRow.start_date <= on_date,
                or_(PhysicianLocationRow.end_date.is_(None), PhysicianLocationRow.end_date >= on_date),
                LocationRow.is_active.is_(True),
            )
            .limit(1)
        )
        return session.scalar(stmt) is not None

    # --- Writes ---

    @contextmanager
    def transaction(self) -> Iterator[_SqlTransaction]:
        session = self.session_factory()
        tx = _SqlTransaction(self, session)
        try:
            with session.begin():
                yield tx
        except IntegrityError as e:
            if tx.slot_key is None:
                raise
            logger.warning(f"Booking backstop rejected a write for {tx.slot_key}: {e.orig}")
            raise slot_conflict_from(tx.slot_key) from e
        finally:
            tx.release()
            session.close()

