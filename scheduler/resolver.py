"""
Schedule Resolution.

This module answers the question: "What hours does Physician X keep at
Location Y on Date Z?"

Order of precedence:
1. A date-specific AvailabilityException (exact location first, then the
   location-agnostic one).
2. The recurring WorkingPeriod for that weekday, active on that date.
"""

from dataclasses import dataclass
from datetime import date as date_type
from typing import List, Optional, Tuple, Union

from models import AvailabilityException, ExceptionType, TimeInterval, WorkingPeriod

from .repository import SchedulingRepository


@dataclass(frozen=True)
class NoSchedule:
    """The physician does not work here that day. Not an error."""
    location_id: str


@dataclass(frozen=True)
class Unavailable:
    """An exception closes this location for the day."""
    location_id: str
    reason: Optional[str] = None
    relocated_to: Optional[str] = None


@dataclass(frozen=True)
class Working:
    """Regular hours from the WorkingPeriod."""
    location_id: str
    hours: TimeInterval
    lunch: Optional[TimeInterval] = None
    breaks: Tuple[TimeInterval, ...] = ()
    slot_duration_minutes: int = 30
    period_id: Optional[str] = None


@dataclass(frozen=True)
class ModifiedHours(Working):
    """Hours overridden by a modified_hours exception for this date only."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class Relocated(Working):
    """Hours moved here from another location by a location_change exception."""
    reason: Optional[str] = None
    relocated_from: Optional[str] = None


Resolution = Union[NoSchedule, Unavailable, Working]


def day_of_week(on_date: date_type) -> int:
    """0=Sunday ... 6=Saturday (Python's weekday() is 0=Monday)."""
    return (on_date.weekday() + 1) % 7


def pick_working_period(periods: List[WorkingPeriod], on_date: date_type) -> Optional[WorkingPeriod]:
    """
    Choose the applicable pattern for a date.
    Overlapping effective ranges resolve to the latest effective_date, then the highest id.
    """
    candidates = [p for p in periods if p.is_effective_on(on_date)]
    if not candidates:
        return None
    return max(candidates, key=lambda p: (p.effective_date, p.id))


def _working_from_period(
    period: WorkingPeriod,
    location_id: str,
    hours: Optional[TimeInterval] = None,
    cls=Working,
    **extra
) -> Working:
    return cls(
        location_id=location_id,
        hours=hours or period.hours,
        lunch=period.lunch,
        breaks=tuple(period.break_intervals),
        slot_duration_minutes=period.slot_duration_minutes,
        period_id=period.id,
        **extra
    )


class ScheduleResolver:
    """
    Resolves the effective working hours for a physician/location/date.
    Stateless apart from the injected repository.
    """

    def __init__(self, repository: SchedulingRepository):
        self.repository = repository

    def resolve(self, physician_id: str, location_id: str, on_date: date_type) -> Resolution:
        dow = day_of_week(on_date)
        exceptions = self.repository.fetch_exceptions(physician_id, on_date)
        exception = self._select_exception(exceptions, location_id)

        # 1. Time off is terminal
        if exception and exception.exception_type == ExceptionType.UNAVAILABLE:
            return Unavailable(location_id, reason=exception.reason)

        # 2. Physician moved away from this location today
        if (exception and exception.exception_type == ExceptionType.LOCATION_CHANGE
                and exception.alternate_location_id != location_id):
            return Unavailable(
                location_id,
                reason=exception.reason or f"Relocated to {exception.alternate_location_id}",
                relocated_to=exception.alternate_location_id
            )

        # 3. Recurring pattern
        period = pick_working_period(
            self.repository.fetch_working_periods(physician_id, dow, location_id), on_date
        )
        if period is None:
            return self._resolve_inbound_relocation(physician_id, location_id, on_date, dow, exceptions)

        if exception and exception.exception_type == ExceptionType.MODIFIED_HOURS:
            return _working_from_period(
                period, location_id, hours=exception.override_hours, cls=ModifiedHours, reason=exception.reason
            )

        return _working_from_period(period, location_id)

    def locations_for_day(self, physician_id: str, on_date: date_type) -> List[str]:
        """Locations with a working period, an exception, or an inbound relocation on this date."""
        dow = day_of_week(on_date)
        location_ids = {
            p.location_id
            for p in self.repository.fetch_working_periods(physician_id, dow)
            if p.is_effective_on(on_date)
        }
        for exc in self.repository.fetch_exceptions(physician_id, on_date):
            if exc.location_id is not None:
                location_ids.add(exc.location_id)
            if exc.exception_type == ExceptionType.LOCATION_CHANGE and exc.alternate_location_id:
                location_ids.add(exc.alternate_location_id)
        return sorted(location_ids)

    def _select_exception(
        self,
        exceptions: List[AvailabilityException],
        location_id: str
    ) -> Optional[AvailabilityException]:
        exact = [e for e in exceptions if e.location_id == location_id]
        if exact:
            return exact[0]
        everywhere = [e for e in exceptions if e.location_id is None]
        return everywhere[0] if everywhere else None

    def _resolve_inbound_relocation(
        self,
        physician_id: str,
        location_id: str,
        on_date: date_type,
        dow: int,
        exceptions: List[AvailabilityException]
    ) -> Resolution:
        """A location_change pointing here borrows the hours of the location it came from."""
        for exc in exceptions:
            if exc.exception_type != ExceptionType.LOCATION_CHANGE or exc.alternate_location_id != location_id:
                continue
            if exc.location_id == location_id:
                continue

            periods = self.repository.fetch_working_periods(physician_id, dow, exc.location_id)
            source = pick_working_period(periods, on_date)
            if source is None:
                continue
            return _working_from_period(
                source,
                location_id,
                hours=exc.override_hours,
                cls=Relocated,
                reason=exc.reason,
                relocated_from=source.location_id
            )
        return NoSchedule(location_id)
