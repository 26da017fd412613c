"""
Booking Conflict Guard.

Availability is computed from a snapshot; by the time a patient clicks
"book", someone else may have taken the slot. The guard re-checks inside a
single transaction and only then writes:

    lock slot -> check assignment -> check conflicts -> insert/update -> commit

Any failure rolls the whole transaction back. The storage layer's unique
index on (physician, date, start_time) is the last-resort backstop.
"""

from typing import Optional

from models import Appointment, AppointmentStatus, BookingRequest

from .errors import AppointmentNotFound, PhysicianNotAtLocation, SlotConflict
from .repository import CopayEstimator, SchedulingRepository


class ConflictGuard:
    """Check-then-write for new bookings, reschedules and cancellations."""

    def __init__(self, repository: SchedulingRepository, copay_estimator: Optional[CopayEstimator] = None):
        self.repository = repository
        self.copay_estimator = copay_estimator

    def reserve(self, request: BookingRequest, reschedule_appointment_id: Optional[str] = None) -> Appointment:
        """
        Book (or move an existing appointment into) the requested slot.

        Raises:
            PhysicianNotAtLocation: no active assignment at the location on that date
            SlotConflict: the slot is occupied at commit time
            AppointmentNotFound: reschedule target does not exist
        """
        with self.repository.transaction() as tx:
            tx.lock_slot(request.slot_key)

            if not tx.has_location_assignment(request.physician_id, request.location_id, request.appointment_date):
                raise PhysicianNotAtLocation(request.physician_id, request.location_id, request.appointment_date)

            conflicts = tx.find_conflicts(
                request.physician_id,
                request.location_id,
                request.appointment_date,
                request.start_time,
                request.end_time,
                exclude_appointment_id=reschedule_appointment_id
            )
            if conflicts:
                raise SlotConflict(
                    request.physician_id,
                    request.location_id,
                    request.appointment_date,
                    request.start_time,
                    [c.appointment_id for c in conflicts]
                )

            if reschedule_appointment_id is None:
                return tx.insert_appointment(self._new_appointment(request))

            current = tx.get_appointment(reschedule_appointment_id)
            if current is None:
                raise AppointmentNotFound(reschedule_appointment_id)

            moved = current.model_copy(update={
                "physician_id": request.physician_id,
                "location_id": request.location_id,
                "appointment_date": request.appointment_date,
                "start_time": request.start_time,
                "end_time": request.end_time,
                "notes": request.notes or current.notes,
            })
            return tx.update_appointment(moved)

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        """Free the slot; the row stays for history."""
        with self.repository.transaction() as tx:
            current = tx.get_appointment(appointment_id)
            if current is None:
                raise AppointmentNotFound(appointment_id)
            cancelled = current.model_copy(update={
                "status": AppointmentStatus.CANCELLED,
                "cancellation_reason": reason,
            })
            return tx.update_appointment(cancelled)

    def _new_appointment(self, request: BookingRequest) -> Appointment:
        copay = self.copay_estimator.estimate(request.appointment_type) if self.copay_estimator else None
        return Appointment(
            patient_id=request.patient_id,
            physician_id=request.physician_id,
            location_id=request.location_id,
            appointment_date=request.appointment_date,
            start_time=request.start_time,
            end_time=request.end_time,
            appointment_type=request.appointment_type,
            visit_type=request.visit_type,
            notes=request.notes,
            estimated_copay=copay,
        )
