"""
Shared test data: a fixed calendar and a small clinic network that loads
into any repository exposing the loading API.
"""

from datetime import date

from models import Location, LocationType, Physician, PhysicianLocation, WorkingPeriod

# Fixed calendar: 2025-01-13 is a Monday
SUNDAY = date(2025, 1, 12)
MONDAY = date(2025, 1, 13)
TUESDAY = date(2025, 1, 14)
WEDNESDAY = date(2025, 1, 15)
SATURDAY = date(2025, 1, 18)

NETWORK_START = date(2024, 1, 1)


def build_clinic(repository):
    """
    Load the test network into a repository.

    - Smith (Internal Medicine): Main Mon 08-17 (lunch 12-13), North Tue 09-16,
      Wed split: Main 08-12 and North 13-17
    - Jones (Cardiology): West Mon-Fri 07-15 (lunch 12-13); assigned to Main, no hours there
    - Adams (Cardiology): Main Mon-Fri 09-12
    - Wilson (Neurology): Main Tue 10-18 (lunch 13-14); North assignment ended 2024-12-31
    """
    for location in (
        Location(id="loc_main", name="Metro General Hospital", location_type=LocationType.MAIN_HOSPITAL),
        Location(id="loc_north", name="North Side Clinic", location_type=LocationType.SATELLITE_OFFICE),
        Location(id="loc_west", name="West End Outpatient Center"),
    ):
        repository.add_location(location)

    for physician in (
        Physician(id="phy_smith", first_name="John", last_name="Smith", specialty="Internal Medicine"),
        Physician(id="phy_jones", first_name="Sarah", last_name="Jones", specialty="Cardiology"),
        Physician(id="phy_adams", first_name="Amy", last_name="Adams", specialty="Cardiology"),
        Physician(id="phy_wilson", first_name="Michael", last_name="Wilson", specialty="Neurology"),
    ):
        repository.add_physician(physician)

    for physician_id, location_id, end_date in (
        ("phy_smith", "loc_main", None),
        ("phy_smith", "loc_north", None),
        ("phy_jones", "loc_west", None),
        ("phy_jones", "loc_main", None),
        ("phy_adams", "loc_main", None),
        ("phy_wilson", "loc_main", None),
        ("phy_wilson", "loc_north", date(2024, 12, 31)),
    ):
        repository.assign(PhysicianLocation(
            physician_id=physician_id,
            location_id=location_id,
            start_date=NETWORK_START,
            end_date=end_date
        ))

    periods = [
        working_period("wp_smith_main_mon", "phy_smith", "loc_main", 1, "08:00", "17:00", "12:00", "13:00"),
        working_period("wp_smith_north_tue", "phy_smith", "loc_north", 2, "09:00", "16:00", "12:00", "13:00"),
        working_period("wp_smith_main_wed", "phy_smith", "loc_main", 3, "08:00", "12:00"),
        working_period("wp_smith_north_wed", "phy_smith", "loc_north", 3, "13:00", "17:00"),
        working_period("wp_wilson_main_tue", "phy_wilson", "loc_main", 2, "10:00", "18:00", "13:00", "14:00"),
    ]
    for dow in range(1, 6):
        periods.append(working_period(f"wp_jones_west_{dow}", "phy_jones", "loc_west", dow, "07:00", "15:00", "12:00", "13:00"))
        periods.append(working_period(f"wp_adams_main_{dow}", "phy_adams", "loc_main", dow, "09:00", "12:00"))

    for period in periods:
        repository.add_working_period(period)
    return repository


def working_period(period_id, physician_id, location_id, dow, start, end, lunch_start=None, lunch_end=None, **extra):
    return WorkingPeriod(
        id=period_id,
        physician_id=physician_id,
        location_id=location_id,
        day_of_week=dow,
        start_time=start,
        end_time=end,
        lunch_start=lunch_start,
        lunch_end=lunch_end,
        effective_date=extra.pop("effective_date", NETWORK_START),
        **extra
    )

