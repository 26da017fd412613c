"""
Sample network generator for the Clinic Slot Scheduler.

Builds the Metro Health demo network (4 locations, 3 physicians, weekly
schedules per location) plus a few date-specific exceptions anchored on a
start date, and loads it into any repository that exposes the loading API
(InMemoryRepository, SqlRepository).

Output is deterministic: the same start date always yields the same data.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from models import (
    AvailabilityException,
    ExceptionType,
    Location,
    LocationType,
    Physician,
    PhysicianLocation,
    WorkingPeriod
)

logger = logging.getLogger(__name__)

NETWORK_START = date(2024, 1, 1)

# Sample copay amounts; the real figures come from billing configuration
SAMPLE_COPAY_SCHEDULE: Dict[str, str] = {
    "consultation": "50.00",
    "follow_up": "25.00",
    "procedure": "150.00",
    "default": "40.00",
}

# (physician, location, day_of_week 0=Sunday, start, end, lunch_start, lunch_end)
WEEKLY_SCHEDULES = [
    # Dr. Smith (Internal Medicine): Main Hospital Mon/Wed/Fri, North Side Tue/Thu
    ("phy_smith", "loc_main", 1, "08:00", "17:00", "12:00", "13:00"),
    ("phy_smith", "loc_main", 3, "08:00", "17:00", "12:00", "13:00"),
    ("phy_smith", "loc_main", 5, "08:00", "17:00", "12:00", "13:00"),
    ("phy_smith", "loc_north", 2, "09:00", "16:00", "12:00", "13:00"),
    ("phy_smith", "loc_north", 4, "09:00", "16:00", "12:00", "13:00"),

    # Dr. Jones (Cardiology): West End Mon/Tue, Downtown Wed/Thu, Main Hospital Fri
    ("phy_jones", "loc_west", 1, "07:00", "15:00", "12:00", "13:00"),
    ("phy_jones", "loc_west", 2, "07:00", "15:00", "12:00", "13:00"),
    ("phy_jones", "loc_downtown", 3, "08:00", "16:00", "12:00", "13:00"),
    ("phy_jones", "loc_downtown", 4, "08:00", "16:00", "12:00", "13:00"),
    ("phy_jones", "loc_main", 5, "08:00", "16:00", "12:00", "13:00"),

    # Dr. Wilson (Neurology): Downtown Mon/Wed/Fri, Main Hospital Tue/Thu
    ("phy_wilson", "loc_downtown", 1, "06:00", "14:00", "11:30", "12:30"),
    ("phy_wilson", "loc_downtown", 3, "06:00", "14:00", "11:30", "12:30"),
    ("phy_wilson", "loc_downtown", 5, "06:00", "14:00", "11:30", "12:30"),
    ("phy_wilson", "loc_main", 2, "10:00", "18:00", "13:00", "14:00"),
    ("phy_wilson", "loc_main", 4, "10:00", "18:00", "13:00", "14:00"),
]


def next_weekday(start: date, day_of_week: int) -> date:
    """First date on or after start with the given day (0=Sunday)."""
    python_weekday = (day_of_week - 1) % 7
    return start + timedelta(days=(python_weekday - start.weekday()) % 7)


class SampleNetworkFactory:
    """
    Generates the demo hospital network.
    """

    def __init__(self, start_date: Optional[date] = None):
        self.start_date = start_date or date.today()

    def generate_locations(self) -> List[Location]:
        return [
            Location(id="loc_main", name="Metro General Hospital",
                     location_type=LocationType.MAIN_HOSPITAL, city="Metro City"),
            Location(id="loc_north", name="North Side Clinic",
                     location_type=LocationType.SATELLITE_OFFICE, city="Metro City"),
            Location(id="loc_west", name="West End Outpatient Center",
                     location_type=LocationType.OUTPATIENT_CLINIC, city="Metro City"),
            Location(id="loc_downtown", name="Downtown Specialty Center",
                     location_type=LocationType.SPECIALTY_CENTER, city="Metro City"),
        ]

    def generate_physicians(self) -> List[Physician]:
        return [
            Physician(id="phy_smith", first_name="John", last_name="Smith",
                      specialty="Internal Medicine", subspecialty="Gastroenterology",
                      primary_location_id="loc_main"),
            Physician(id="phy_jones", first_name="Sarah", last_name="Jones",
                      specialty="Cardiology", subspecialty="Interventional Cardiology",
                      primary_location_id="loc_west"),
            Physician(id="phy_wilson", first_name="Michael", last_name="Wilson",
                      specialty="Neurology", subspecialty="Stroke Medicine",
                      primary_location_id="loc_downtown"),
        ]

    def generate_assignments(self) -> List[PhysicianLocation]:
        primaries = {p.id: p.primary_location_id for p in self.generate_physicians()}
        pairs = sorted({(phy, loc) for phy, loc, *_ in WEEKLY_SCHEDULES})
        return [
            PhysicianLocation(
                physician_id=phy,
                location_id=loc,
                is_primary_location=primaries.get(phy) == loc,
                start_date=NETWORK_START
            )
            for phy, loc in pairs
        ]

    def generate_working_periods(self) -> List[WorkingPeriod]:
        periods = []
        for phy, loc, dow, start, end, lunch_start, lunch_end in WEEKLY_SCHEDULES:
            periods.append(WorkingPeriod(
                id=f"wp_{phy[4:]}_{loc[4:]}_{dow}",
                physician_id=phy,
                location_id=loc,
                day_of_week=dow,
                start_time=start,
                end_time=end,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
                effective_date=NETWORK_START
            ))
        return periods

    def generate_exceptions(self) -> List[AvailabilityException]:
        """
        One of each exception kind, in the first week after start_date:
        Smith off on Monday, Jones on short hours Wednesday, Wilson moved on Tuesday.
        """
        monday = next_weekday(self.start_date, 1)
        tuesday = next_weekday(self.start_date, 2)
        wednesday = next_weekday(self.start_date, 3)
        return [
            AvailabilityException(
                id="exc_smith_conference",
                physician_id="phy_smith",
                exception_date=monday,
                exception_type=ExceptionType.UNAVAILABLE,
                reason="Medical conference"
            ),
            AvailabilityException(
                id="exc_jones_half_day",
                physician_id="phy_jones",
                location_id="loc_downtown",
                exception_date=wednesday,
                exception_type=ExceptionType.MODIFIED_HOURS,
                start_time="08:00",
                end_time="12:00",
                reason="Half day"
            ),
            AvailabilityException(
                id="exc_wilson_cover",
                physician_id="phy_wilson",
                location_id="loc_main",
                exception_date=tuesday,
                exception_type=ExceptionType.LOCATION_CHANGE,
                alternate_location_id="loc_downtown",
                reason="Covering Downtown stroke clinic"
            ),
        ]

    def load_into(self, repository) -> None:
        """Push the whole network into a repository (locations first for FK order)."""
        locations = self.generate_locations()
        physicians = self.generate_physicians()
        assignments = self.generate_assignments()
        periods = self.generate_working_periods()
        exceptions = self.generate_exceptions()

        for location in locations:
            repository.add_location(location)
        for physician in physicians:
            repository.add_physician(physician)
        for assignment in assignments:
            repository.assign(assignment)
        for period in periods:
            repository.add_working_period(period)
        for exception in exceptions:
            repository.add_exception(exception)

        logger.info(
            f"Loaded sample network: {len(locations)} locations, {len(physicians)} physicians, "
            f"{len(periods)} weekly schedules, {len(exceptions)} exceptions"
        )
