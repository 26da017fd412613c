"""
Availability Aggregation.

Runs the ScheduleResolver and the slot generator for every location a
physician works at on a date, and assembles the per-location report.
"""

from datetime import date as date_type
from typing import List, Optional

from models import LocationAvailabilityReport, PhysicianAvailabilityResult

from .repository import SchedulingRepository
from .resolver import NoSchedule, Resolution, ScheduleResolver, Unavailable
from .slots import generate_for_resolution


class AvailabilityAggregator:
    """
    Builds PhysicianAvailabilityResult objects.
    Pure read path: safe to call concurrently.
    """

    def __init__(self, repository: SchedulingRepository, resolver: Optional[ScheduleResolver] = None):
        self.repository = repository
        self.resolver = resolver or ScheduleResolver(repository)

    def get_availability(
        self,
        physician_id: str,
        on_date: date_type,
        location_id: Optional[str] = None,
        slot_duration: Optional[int] = None
    ) -> PhysicianAvailabilityResult:
        if location_id is not None:
            location_ids = [location_id]
        else:
            location_ids = self.resolver.locations_for_day(physician_id, on_date)

        reports: List[LocationAvailabilityReport] = []
        for loc_id in location_ids:
            resolution = self.resolver.resolve(physician_id, loc_id, on_date)
            if isinstance(resolution, NoSchedule):
                continue
            reports.append(self._build_report(physician_id, on_date, resolution, slot_duration))

        return PhysicianAvailabilityResult(
            physician_id=physician_id,
            date=on_date,
            available=any(report.available for report in reports),
            locations=reports
        )

    def _build_report(
        self,
        physician_id: str,
        on_date: date_type,
        resolution: Resolution,
        slot_duration: Optional[int]
    ) -> LocationAvailabilityReport:
        location = self.repository.get_location(resolution.location_id)
        location_name = location.name if location else None

        if isinstance(resolution, Unavailable):
            return LocationAvailabilityReport(
                location_id=resolution.location_id,
                location_name=location_name,
                available=False,
                slots=[],
                reason=resolution.reason,
                relocated_to=resolution.relocated_to
            )

        bookings = self.repository.fetch_booked_intervals(physician_id, on_date)
        slots = generate_for_resolution(resolution, bookings, slot_duration=slot_duration)

        return LocationAvailabilityReport(
            location_id=resolution.location_id,
            location_name=location_name,
            available=bool(slots),
            slots=slots,
            reason=getattr(resolution, "reason", None)
        )
