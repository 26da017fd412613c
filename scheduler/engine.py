"""
The Clinic Scheduling Engine.

This module is the entry point the routing/API layer calls. It wires the
pieces together and normalizes raw request values (ISO dates, "HH:MM" times):
1. Availability (Resolver + Slot Generator, per location)
2. Alternatives (greedy search across same-specialty physicians)
3. Bookings (Conflict Guard: reserve, reschedule, cancel)

Authorization is expected to have happened before any of these calls.
"""

import logging
import threading
from datetime import date as date_type, time as time_type
from typing import List, Optional, Union

from models import (
    AlternativeOption,
    Appointment,
    AppointmentType,
    BookingRequest,
    PhysicianAvailabilityResult,
    VisitType,
    parse_time_of_day
)
from .alternatives import AlternativeSlotSearch
from .availability import AvailabilityAggregator
from .booking import ConflictGuard
from .config import SchedulerSettings, get_settings
from .errors import AppointmentNotFound, PhysicianNotAtLocation, SlotConflict
from .repository import CopayEstimator, CopaySchedule, PhysicianDirectory, SchedulingRepository
from .resolver import ScheduleResolver

logger = logging.getLogger(__name__)

DateInput = Union[date_type, str]
TimeInput = Union[time_type, str]


def _to_date(value: DateInput) -> date_type:
    if isinstance(value, date_type):
        return value
    return date_type.fromisoformat(value)


class AppointmentScheduler:
    """
    Main scheduling facade.
    Holds no per-request state; every call reads fresh data from the repository.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        directory: Optional[PhysicianDirectory] = None,
        copay_estimator: Optional[CopayEstimator] = None,
        settings: Optional[SchedulerSettings] = None
    ):
        self.settings = settings or get_settings()
        self.repository = repository

        if directory is None:
            if not isinstance(repository, PhysicianDirectory):
                raise TypeError("A PhysicianDirectory is required when the repository does not provide one")
            directory = repository

        if copay_estimator is None and self.settings.COPAY_SCHEDULE:
            copay_estimator = CopaySchedule(self.settings.COPAY_SCHEDULE)

        # Initialize Helpers
        self.resolver = ScheduleResolver(repository)
        self.aggregator = AvailabilityAggregator(repository, self.resolver)
        self.search = AlternativeSlotSearch(repository, directory, self.aggregator, self.settings)
        self.guard = ConflictGuard(repository, copay_estimator)

    def get_availability(
        self,
        physician_id: str,
        on_date: DateInput,
        location_id: Optional[str] = None,
        slot_duration: Optional[int] = None
    ) -> PhysicianAvailabilityResult:
        result = self.aggregator.get_availability(physician_id, _to_date(on_date), location_id, slot_duration)
        logger.debug(
            f"Availability {physician_id} on {result.date}: "
            f"{sum(len(loc.slots) for loc in result.locations)} slots across {len(result.locations)} locations"
        )
        return result

    def find_alternatives(
        self,
        reference_appointment_id: str,
        preferred_location_id: Optional[str] = None,
        window_days: Optional[int] = None,
        today: Optional[DateInput] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> List[AlternativeOption]:
        return self.search.find_alternatives(
            reference_appointment_id,
            preferred_location_id=preferred_location_id,
            window_days=window_days,
            today=_to_date(today) if today is not None else None,
            cancel_event=cancel_event
        )

    def reserve_slot(
        self,
        physician_id: str,
        location_id: str,
        on_date: DateInput,
        start_time: TimeInput,
        end_time: TimeInput,
        patient_id: str,
        appointment_type: AppointmentType = AppointmentType.CONSULTATION,
        visit_type: VisitType = VisitType.IN_PERSON,
        notes: Optional[str] = None
    ) -> Appointment:
        request = self._build_request(
            physician_id, location_id, on_date, start_time, end_time, patient_id,
            appointment_type, visit_type, notes
        )
        try:
            appointment = self.guard.reserve(request)
        except (SlotConflict, PhysicianNotAtLocation) as e:
            logger.warning(f"Booking rejected: {e}")
            raise

        logger.info(
            f"Booked {appointment.id} for patient {patient_id}: {physician_id} at {location_id} "
            f"{request.appointment_date} {request.start_time.strftime('%H:%M')}"
        )
        return appointment

    def reschedule(
        self,
        appointment_id: str,
        on_date: Optional[DateInput] = None,
        start_time: Optional[TimeInput] = None,
        end_time: Optional[TimeInput] = None,
        location_id: Optional[str] = None,
        physician_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Appointment:
        """Move an appointment; unspecified fields keep their current values."""
        current = self.repository.get_appointment(appointment_id)
        if current is None:
            raise AppointmentNotFound(appointment_id)

        request = self._build_request(
            physician_id or current.physician_id,
            location_id or current.location_id,
            on_date if on_date is not None else current.appointment_date,
            start_time if start_time is not None else current.start_time,
            end_time if end_time is not None else current.end_time,
            current.patient_id,
            current.appointment_type,
            current.visit_type,
            notes
        )
        try:
            appointment = self.guard.reserve(request, reschedule_appointment_id=appointment_id)
        except (SlotConflict, PhysicianNotAtLocation) as e:
            logger.warning(f"Reschedule of {appointment_id} rejected: {e}")
            raise

        logger.info(f"Rescheduled {appointment_id} to {appointment.appointment_date} {appointment.start_time}")
        return appointment

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        appointment = self.guard.cancel(appointment_id, reason)
        logger.info(f"Cancelled {appointment_id}" + (f" ({reason})" if reason else ""))
        return appointment

    def _build_request(
        self,
        physician_id: str,
        location_id: str,
        on_date: DateInput,
        start_time: TimeInput,
        end_time: TimeInput,
        patient_id: str,
        appointment_type: AppointmentType,
        visit_type: VisitType,
        notes: Optional[str]
    ) -> BookingRequest:
        # Parse here so malformed times surface as InvalidTimeFormat, not a validation error
        return BookingRequest(
            patient_id=patient_id,
            physician_id=physician_id,
            location_id=location_id,
            appointment_date=_to_date(on_date),
            start_time=parse_time_of_day(start_time),
            end_time=parse_time_of_day(end_time),
            appointment_type=appointment_type,
            visit_type=visit_type,
            notes=notes
        )
